from __future__ import annotations

import dataclasses
import json
from collections.abc import MutableMapping, MutableSequence
from dataclasses import dataclass, field
from typing import Any, List, Optional

from gqlmp.graphql.errors import DecodeError, GraphQLError, GraphQLErrorDetail, StatusError


@dataclass(frozen=True)
class Envelope:
    data: Any = None
    errors: List[GraphQLErrorDetail] = field(default_factory=list)


def parse_envelope(body: bytes) -> Envelope:
    try:
        obj = json.loads(body)
    except ValueError as exc:
        raise DecodeError(f"graphql: decoding response: {exc}") from exc

    if not isinstance(obj, dict):
        raise DecodeError(f"graphql: decoding response: expected a JSON object, got {type(obj).__name__}")

    raw_errors = obj.get("errors") or []
    if not isinstance(raw_errors, list):
        raise DecodeError("graphql: decoding response: 'errors' is not a list")

    return Envelope(
        data=obj.get("data"),
        errors=[GraphQLErrorDetail.from_json(e) for e in raw_errors],
    )


def _is_dataclass_instance(obj: Any) -> bool:
    return dataclasses.is_dataclass(obj) and not isinstance(obj, type)


def bind(data: Any, target: Any) -> None:
    """
    Copy ``data`` into a caller-owned target.

    Mappings are updated, sequences replaced and dataclass instances get the
    fields present in ``data`` assigned. A null ``data`` leaves the target as
    it was. Nothing is written unless the shapes match.
    """
    if data is None:
        return

    if isinstance(target, MutableMapping):
        if not isinstance(data, dict):
            raise DecodeError(f"graphql: decoding data: cannot bind {type(data).__name__} into a mapping")
        target.update(data)
    elif isinstance(target, MutableSequence):
        if not isinstance(data, list):
            raise DecodeError(f"graphql: decoding data: cannot bind {type(data).__name__} into a sequence")
        target[:] = data
    elif _is_dataclass_instance(target):
        if not isinstance(data, dict):
            raise DecodeError(
                f"graphql: decoding data: cannot bind {type(data).__name__} into {type(target).__name__}"
            )
        if target.__dataclass_params__.frozen:
            raise DecodeError(f"graphql: decoding data: {type(target).__name__} is frozen")
        for f in dataclasses.fields(target):
            if f.name in data:
                setattr(target, f.name, data[f.name])
    else:
        raise DecodeError(f"graphql: decoding data: unsupported target type {type(target).__name__}")


def decode_response(status_code: int, body: bytes, target: Optional[Any] = None) -> Any:
    """
    Classify a response and return its ``data``.

    The status check comes first, then envelope parsing, then GraphQL
    errors, then binding: exactly one error is raised per response.
    """
    envelope: Optional[Envelope] = None
    decode_err: Optional[DecodeError] = None
    try:
        envelope = parse_envelope(body)
    except DecodeError as exc:
        decode_err = exc

    if not 200 <= status_code < 300:
        raise StatusError(status_code, body) from decode_err

    if decode_err is not None:
        raise decode_err
    assert envelope is not None

    if envelope.errors:
        raise GraphQLError(envelope.errors, data=envelope.data)

    if target is not None:
        bind(envelope.data, target)
    return envelope.data
