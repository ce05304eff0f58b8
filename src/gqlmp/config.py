from dataclasses import dataclass
import os
from typing import Optional

from dotenv import load_dotenv

from gqlmp.graphql.request import Request

load_dotenv()

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    endpoint: str
    timeout_s: Optional[float]
    use_multipart_form: bool
    close_request_body: bool

    def request(self, query: str) -> Request:
        return Request(query, self.endpoint)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUE


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}")


def get_settings() -> Settings:
    return Settings(
        endpoint=os.getenv("GQLMP_ENDPOINT", "").strip(),
        timeout_s=_env_float("GQLMP_TIMEOUT_S"),
        use_multipart_form=_env_flag("GQLMP_USE_MULTIPART"),
        close_request_body=_env_flag("GQLMP_CLOSE_REQUEST_BODY"),
    )
