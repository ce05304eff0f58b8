from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Protocol, Tuple, Union

from requests.structures import CaseInsensitiveDict


class Reader(Protocol):
    def read(self, size: int = -1) -> Union[bytes, str]: ...


@dataclass(frozen=True)
class File:
    field: str
    name: str
    reader: Reader


class Request:
    """
    A single GraphQL operation: query text, variables, uploads and headers.

    The client borrows a Request for one run() call; file readers stay
    owned by the caller and are never closed here.
    """

    def __init__(self, query: str, endpoint: str = "") -> None:
        self._query = query
        self.endpoint = endpoint
        self._vars: Dict[str, Any] = {}
        self._files: List[File] = []
        self._headers: CaseInsensitiveDict = CaseInsensitiveDict()

    @property
    def query(self) -> str:
        return self._query

    @property
    def vars(self) -> Mapping[str, Any]:
        return dict(self._vars)

    @property
    def files(self) -> Tuple[File, ...]:
        return tuple(self._files)

    @property
    def headers(self) -> Mapping[str, str]:
        return CaseInsensitiveDict(self._headers)

    def var(self, name: str, value: Any) -> None:
        self._vars[name] = value

    def file(self, field_name: str, file_name: str, reader: Reader) -> None:
        self._files.append(File(field=field_name, name=file_name, reader=reader))

    def header(self, name: str, value: str) -> None:
        self._headers[name] = value

    def __repr__(self) -> str:
        return f"Request(endpoint={self.endpoint!r}, vars={len(self._vars)}, files={len(self._files)})"
