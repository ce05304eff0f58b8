from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple

from urllib3.filepost import encode_multipart_formdata

from gqlmp.graphql.errors import EncodingError
from gqlmp.graphql.request import File, Request

JSON_CONTENT_TYPE = "application/json"
FILE_CONTENT_TYPE = "application/octet-stream"
READ_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class EncodedBody:
    content: bytes
    content_type: str
    multipart: bool


def dump_json(value: Any) -> str:
    """Compact JSON followed by a newline, the way the server side expects it."""
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False) + "\n"
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"graphql: encode body: {exc}") from exc


def operations(request: Request) -> Dict[str, Any]:
    return {"query": request.query, "variables": dict(request.vars)}


def read_all(f: File) -> bytes:
    chunks: List[bytes] = []
    while True:
        try:
            chunk = f.reader.read(READ_CHUNK_SIZE)
        except (OSError, ValueError) as exc:
            # ValueError: read on a closed file object
            raise EncodingError(f"graphql: read file {f.name!r} for field {f.field!r}: {exc}") from exc
        if chunk is None:
            raise EncodingError(f"graphql: read file {f.name!r}: reader has no data ready (non-blocking stream)")
        if not chunk:
            break
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        elif not isinstance(chunk, (bytes, bytearray)):
            raise EncodingError(
                f"graphql: read file {f.name!r}: reader returned {type(chunk).__name__}, expected bytes"
            )
        chunks.append(bytes(chunk))
    return b"".join(chunks)


def encode_json(request: Request) -> EncodedBody:
    body = dump_json(operations(request)).encode("utf-8")
    return EncodedBody(content=body, content_type=JSON_CONTENT_TYPE, multipart=False)


def encode_multipart(request: Request) -> EncodedBody:
    """
    Build a multipart/form-data body.

    Parts, in order: ``query``, ``variables`` (only when any are bound),
    ``operations`` (the JSON-mode object), then one part per attached file
    using its field name and filename. Every reader is drained before the
    form is finalised, so a failing reader leaves nothing to send.
    """
    request_vars: Mapping[str, Any] = request.vars
    fields: List[Tuple[str, Any]] = [("query", request.query)]
    if request_vars:
        fields.append(("variables", dump_json(dict(request_vars))))
    fields.append(("operations", dump_json(operations(request))))

    for f in request.files:
        fields.append((f.field, (f.name, read_all(f), FILE_CONTENT_TYPE)))

    body, content_type = encode_multipart_formdata(fields)
    return EncodedBody(content=body, content_type=content_type, multipart=True)


def encode(request: Request, use_multipart_form: bool = False) -> EncodedBody:
    if request.files or use_multipart_form:
        return encode_multipart(request)
    return encode_json(request)
