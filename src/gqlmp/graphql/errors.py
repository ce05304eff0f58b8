from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class GraphQLClientError(RuntimeError):
    """Base class for everything Client.run raises."""


class TransportError(GraphQLClientError):
    """The HTTP exchange failed before a response was obtained."""


class ContextCancelled(TransportError):
    pass


class DeadlineExceeded(TransportError):
    pass


class EncodingError(GraphQLClientError):
    """Query, variables or an attachment could not be turned into a body."""


class DecodeError(GraphQLClientError):
    """Response body is not an envelope, or data does not fit the target."""


class StatusError(GraphQLClientError):
    def __init__(self, status_code: int, body: bytes = b"") -> None:
        super().__init__(f"graphql: server returned a non-200 status code: {status_code}")
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class GraphQLErrorDetail:
    message: str
    locations: List[Dict[str, int]] = field(default_factory=list)
    path: List[Any] = field(default_factory=list)
    extensions: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, raw: Any) -> "GraphQLErrorDetail":
        if not isinstance(raw, dict):
            return cls(message=str(raw))
        return cls(
            message=str(raw.get("message", "")),
            locations=list(raw.get("locations") or []),
            path=list(raw.get("path") or []),
            extensions=dict(raw.get("extensions") or {}),
        )


class GraphQLError(GraphQLClientError):
    """
    The server answered 2xx but reported errors in the envelope.

    All messages are joined into one; the partial ``data`` is kept here for
    inspection but never bound to the caller's target.
    """

    def __init__(self, errors: List[GraphQLErrorDetail], data: Optional[Any] = None) -> None:
        super().__init__("graphql: " + "; ".join(e.message for e in errors))
        self.errors = errors
        self.data = data

    @property
    def messages(self) -> List[str]:
        return [e.message for e in self.errors]
