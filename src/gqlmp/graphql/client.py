from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, List, Mapping, Optional

import requests
from requests.structures import CaseInsensitiveDict

from gqlmp.common.context import CallContext
from gqlmp.graphql.decoding import decode_response
from gqlmp.graphql.encoding import READ_CHUNK_SIZE, EncodedBody, encode
from gqlmp.graphql.errors import TransportError
from gqlmp.graphql.request import Request

if TYPE_CHECKING:
    from gqlmp.config import Settings

logger = logging.getLogger(__name__)

ACCEPT = "application/json; charset=utf-8"


@dataclass(frozen=True)
class ClientConfig:
    """
    Everything a Client needs, fixed at construction.

    session: the HTTP transport, called as ``session.request("POST", url,
        data=..., headers=..., hooks=..., timeout=..., stream=True)`` and
        expected to return a ``requests.Response``. A ``requests.Session``
        (with whatever adapters are mounted on it) fits; connection pooling,
        TLS and proxies are its business.
    use_multipart_form: send multipart/form-data even when no files are attached.
    immediately_close_request_body: close the outgoing body stream as soon as
        the transport hands back a response instead of when run() returns.
        The body can then no longer be replayed, e.g. on a 307/308 redirect.
    headers: defaults sent with every request; per-request headers win.
    timeout_s: used when the call context has no deadline of its own.
    """

    session: requests.Session = field(default_factory=requests.Session)
    use_multipart_form: bool = False
    immediately_close_request_body: bool = False
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout_s: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


def _close_request_body(response: requests.Response, *args: Any, **kwargs: Any) -> None:
    body = response.request.body
    if hasattr(body, "close"):
        body.close()


class Client:
    """
    Runs GraphQL requests over HTTP, one POST per run() call.

    A Client holds nothing but its frozen config and may be shared between
    threads as long as the session can.
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        self.config = config or ClientConfig()

    @classmethod
    def from_settings(cls, settings: "Settings", session: Optional[requests.Session] = None) -> "Client":
        config = ClientConfig(
            session=session or requests.Session(),
            use_multipart_form=settings.use_multipart_form,
            immediately_close_request_body=settings.close_request_body,
            timeout_s=settings.timeout_s,
        )
        return cls(config)

    def run(self, ctx: CallContext, request: Request, target: Optional[Any] = None) -> Any:
        """
        Send ``request`` and return the response ``data``.

        When ``target`` is given (a dict, list or dataclass instance) the data
        is also bound into it. Raises a GraphQLClientError subclass on any
        failure; the target is only touched on success.

        Cancelling ``ctx`` while the response body is being read closes the
        response. While waiting for the response headers it is noticed once
        the transport returns, which the context deadline bounds.
        """
        encoded = encode(request, use_multipart_form=self.config.use_multipart_form)
        self._log_request(request, encoded)
        headers = self._headers(request, encoded)
        # the stream holds the only reference to the encoded bytes
        body = io.BytesIO(encoded.content)
        del encoded

        try:
            ctx.raise_if_done()
            response = self._send(ctx, request.endpoint, body, headers)

            remove_callback = ctx.on_cancel(response.close)
            try:
                ctx.raise_if_done()
                content = self._read_body(ctx, response)
                ctx.raise_if_done()
            finally:
                remove_callback()
                response.close()
        finally:
            body.close()

        logger.debug("<< %s %s", response.status_code, content.decode("utf-8", errors="replace"))
        return decode_response(response.status_code, content, target)

    def _send(
        self, ctx: CallContext, endpoint: str, body: io.BytesIO, headers: CaseInsensitiveDict
    ) -> requests.Response:
        hooks = {"response": [_close_request_body]} if self.config.immediately_close_request_body else {}
        try:
            return self.config.session.request(
                "POST",
                endpoint,
                data=body,
                headers=headers,
                hooks=hooks,
                timeout=self._timeout(ctx),
                stream=True,
            )
        except (requests.RequestException, ValueError) as exc:
            # ValueError: a redirect tried to rewind an already closed body
            err = ctx.err()
            if err is not None:
                raise err from exc
            raise TransportError(f"graphql: {exc}") from exc

    def _headers(self, request: Request, encoded: EncodedBody) -> CaseInsensitiveDict:
        headers = CaseInsensitiveDict({"Accept": ACCEPT})
        headers.update(self.config.headers)
        headers.update(request.headers)
        headers["Content-Type"] = encoded.content_type
        return headers

    def _timeout(self, ctx: CallContext) -> Optional[float]:
        remaining = ctx.remaining()
        if remaining is None:
            return self.config.timeout_s
        if self.config.timeout_s is None:
            return remaining
        return min(remaining, self.config.timeout_s)

    @staticmethod
    def _read_body(ctx: CallContext, response: requests.Response) -> bytes:
        chunks: List[bytes] = []
        try:
            for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
                ctx.raise_if_done()
                chunks.append(chunk)
        except TransportError:
            raise
        except Exception as exc:
            # a cancel closes the response under us; the read fails with whatever the stream raises
            err = ctx.err()
            if err is not None:
                raise err from exc
            if isinstance(exc, requests.RequestException):
                raise TransportError(f"graphql: reading response: {exc}") from exc
            raise
        return b"".join(chunks)

    @staticmethod
    def _log_request(request: Request, encoded: EncodedBody) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug(">> query: %s", request.query)
        logger.debug(">> variables: %s", request.vars)
        if encoded.multipart:
            logger.debug(">> files: %d", len(request.files))
