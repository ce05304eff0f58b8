from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional

from gqlmp.graphql.errors import ContextCancelled, DeadlineExceeded, TransportError


class CallContext:
    """
    Cancellation flag plus optional deadline for one or more client calls.

    Children observe their parent's cancellation and never outlive its
    deadline. cancel() may be called from any thread.
    """

    def __init__(self, deadline: Optional[float] = None, parent: Optional["CallContext"] = None) -> None:
        # deadline is a time.monotonic() value
        self._deadline = deadline
        self._parent = parent
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @classmethod
    def background(cls) -> "CallContext":
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> "CallContext":
        return cls(deadline=time.monotonic() + seconds)

    def child(self, timeout_s: Optional[float] = None) -> "CallContext":
        deadline = None if timeout_s is None else time.monotonic() + timeout_s
        return CallContext(deadline=deadline, parent=self)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Run ``callback`` when this context or any ancestor is cancelled.

        Runs it right away if that already happened. Returns a function that
        unregisters it; call that once the guarded work is over. The callback
        may run more than once, so it must be idempotent.
        """
        with self._lock:
            registered = not self._cancelled.is_set()
            if registered:
                self._callbacks.append(callback)
        if not registered:
            callback()
            return lambda: None

        remove_from_parent = self._parent.on_cancel(callback) if self._parent is not None else None

        def remove() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)
            if remove_from_parent is not None:
                remove_from_parent()

        return remove

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def deadline(self) -> Optional[float]:
        parent_deadline = self._parent.deadline if self._parent is not None else None
        if self._deadline is None:
            return parent_deadline
        if parent_deadline is None:
            return self._deadline
        return min(self._deadline, parent_deadline)

    def remaining(self) -> Optional[float]:
        deadline = self.deadline
        if deadline is None:
            return None
        return max(0.0, deadline - time.monotonic())

    def err(self) -> Optional[TransportError]:
        if self.cancelled:
            return ContextCancelled("context canceled")
        if self.remaining() == 0.0:
            return DeadlineExceeded("context deadline exceeded")
        return None

    def raise_if_done(self) -> None:
        err = self.err()
        if err is not None:
            raise err

    def __enter__(self) -> "CallContext":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()
