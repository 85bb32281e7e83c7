"""
Alchemy Worker - Shared config and logging setup.
"""

import logging
import math
import os
import sys
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Alchemy Data API (transaction history lives under /v1/<key>/transactions/...)
DEFAULT_BASE_URL = "https://api.g.alchemy.com/data"
DEFAULT_REQUEST_TIMEOUT = 30.0


def resolve_log_level(level: str | None = None) -> int:
    """Numeric logging level for a name like "debug"; unknown names give INFO."""
    numeric = getattr(logging, (level or LOG_LEVEL).upper(), None)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric


def setup_logging(level: str | None = None):
    """Configure logging for the application."""
    logging.basicConfig(
        level=resolve_log_level(level),
        format=LOG_FORMAT,
        stream=sys.stderr,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name."""
    return logging.getLogger(name)


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Mask a credential for log output, keeping only the last few characters."""
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


@dataclass(frozen=True)
class AlchemyConfig:
    """Immutable Alchemy settings, built once at startup and handed to the plugin."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self):
        if not self.api_key:
            raise ValueError("Alchemy API key is required.")
        if not math.isfinite(self.request_timeout) or self.request_timeout <= 0:
            raise ValueError("Alchemy request timeout must be a positive number of seconds.")
        # Normalize so URL joins never produce a double slash
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, default_api_key: str | None = None) -> "AlchemyConfig":
        """
        Read ALCHEMY_API_KEY, ALCHEMY_BASE_URL and ALCHEMY_REQUEST_TIMEOUT.

        default_api_key is used when ALCHEMY_API_KEY is unset (e.g. "demo").
        An unparseable timeout falls back to the default.
        """
        raw_timeout = os.getenv("ALCHEMY_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT))
        try:
            timeout = float(raw_timeout)
        except ValueError:
            timeout = None
        if timeout is None or not math.isfinite(timeout):
            get_logger(__name__).warning(
                "Invalid ALCHEMY_REQUEST_TIMEOUT %r, using %ss", raw_timeout, DEFAULT_REQUEST_TIMEOUT
            )
            timeout = DEFAULT_REQUEST_TIMEOUT
        return cls(
            api_key=os.getenv("ALCHEMY_API_KEY") or default_api_key or "",
            base_url=os.getenv("ALCHEMY_BASE_URL") or DEFAULT_BASE_URL,
            request_timeout=timeout,
        )
