import logging
import os
from typing import Optional


def setup_logging(level: Optional[str] = None) -> None:
    """Log client traffic (>> request / << response) at DEBUG; urllib3 stays at WARNING."""
    level = (level or os.getenv("GQLMP_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s %(message)s",
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
