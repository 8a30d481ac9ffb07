"""
Environment-driven settings. A local .env file is loaded if present.
"""

import os
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from api_client import DEFAULT_API_URL
from debounce import DEFAULT_DELAY_SECONDS

DATA_SOURCES = ("backend", "sheet")


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    sheet_url: Optional[str] = None
    sheet_id: Optional[str] = None
    sheet_range: str = "Orders!A1:Z"
    service_account_file: Optional[str] = None
    client_secrets_file: Optional[str] = None
    token_file: Optional[str] = None
    data_source: str = "backend"
    cost_debounce_seconds: float = DEFAULT_DELAY_SECONDS
    state_dir: str = ".dashboard_state"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        if load_env_file:
            load_dotenv()

        data_source = os.environ.get("DATA_SOURCE", "backend").strip().lower()
        if data_source not in DATA_SOURCES:
            raise ValueError(f"DATA_SOURCE must be one of {', '.join(DATA_SOURCES)}, got {data_source!r}")

        return cls(
            api_url=os.environ.get("DASHBOARD_API_URL", DEFAULT_API_URL),
            sheet_url=os.environ.get("GOOGLE_SHEET_URL") or None,
            sheet_id=os.environ.get("GOOGLE_SHEET_ID") or None,
            sheet_range=os.environ.get("GOOGLE_SHEET_RANGE", "Orders!A1:Z"),
            service_account_file=os.environ.get("GOOGLE_SERVICE_ACCOUNT_FILE") or None,
            client_secrets_file=os.environ.get("GOOGLE_CLIENT_SECRETS_FILE") or None,
            token_file=os.environ.get("GOOGLE_TOKEN_FILE") or None,
            data_source=data_source,
            cost_debounce_seconds=_float_env("COST_DEBOUNCE_SECONDS", DEFAULT_DELAY_SECONDS),
            state_dir=os.environ.get("STATE_DIR", ".dashboard_state"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def state_file(self) -> str:
        return os.path.join(self.state_dir, "state.json")


def check_env_vars(settings: Settings) -> Tuple[bool, List[str]]:
    """Variables the chosen data source needs but that are not set."""
    missing = []
    if settings.data_source == "backend":
        if not settings.api_url:
            missing.append("DASHBOARD_API_URL")
    elif not settings.sheet_url and not settings.sheet_id:
        missing.append("GOOGLE_SHEET_URL or GOOGLE_SHEET_ID")
    if settings.data_source == "sheet" and settings.sheet_id and not settings.sheet_url:
        if not settings.service_account_file and not settings.client_secrets_file:
            missing.append("GOOGLE_SERVICE_ACCOUNT_FILE or GOOGLE_CLIENT_SECRETS_FILE")
    return len(missing) == 0, missing


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
