"""Runtime settings read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional

from .utils import decimal_from_str

DEFAULT_DATABASE_URL = "sqlite:///lending_ledger.sqlite3"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "WARNING"
    default_rate: Decimal = Decimal("10")  # percent per week
    secret_key: str = "dev-secret-key"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build ``Settings`` from ``environ`` (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ
    log_level = env.get("LEDGER_LOG_LEVEL", "WARNING").strip().upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(
            f"LEDGER_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}; got {log_level!r}"
        )
    return Settings(
        database_url=env.get("LEDGER_DATABASE_URL") or DEFAULT_DATABASE_URL,
        log_level=log_level,
        default_rate=decimal_from_str(env.get("LEDGER_DEFAULT_RATE", "10")),
        secret_key=env.get("FLASK_SECRET_KEY", "dev-secret-key"),
    )
