"""Startup configuration.

Environment variables (optionally from a local .env) are checked before the
server accepts requests so a missing backend URL fails at boot rather than
on the first tool call.
"""

import logging
import os
import sys
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

REQUIRED_VARS = [
    "PINPOINT_API_URL",
]

OPTIONAL_VARS = [
    "PINPOINT_API_KEY",
    "DRAFT_STORE_PATH",
    "LOG_LEVEL",
    "PORT",
]

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    api_url: str
    api_key: str = ""
    draft_store_path: str = ""
    log_level: str = "INFO"
    port: int = 8765

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        port = os.getenv("PORT", "8765")
        return cls(
            api_url=os.getenv("PINPOINT_API_URL", ""),
            api_key=os.getenv("PINPOINT_API_KEY", ""),
            draft_store_path=os.getenv("DRAFT_STORE_PATH", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=int(port) if port.isdigit() else 8765,
        )


def validate_config() -> None:
    """Validate environment variables at startup.

    Exits the process with a clear error if any required variable is missing
    or empty.  Logs warnings for missing optional variables.
    """
    missing = [var for var in REQUIRED_VARS if not os.getenv(var)]

    if missing:
        print(
            f"\nFATAL: Missing required environment variables:\n"
            f"  {', '.join(missing)}\n"
            f"\nSet them in .env (local) or the deployment's secrets.\n",
            file=sys.stderr,
        )
        sys.exit(1)

    for var in OPTIONAL_VARS:
        if not os.getenv(var):
            logger.warning("Optional env var %s is not set", var)


def configure_logging(level: str | None = None) -> None:
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
