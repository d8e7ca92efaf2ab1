from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from market_dashboard.errors import ConfigurationError

WATCHLIST_KEY = "stock_watchlist"

_DEFAULT_DASHBOARD_URL = "http://localhost:3000"
_DEFAULT_STORAGE_PATH = "~/.market_dashboard/storage.json"


def _float_env(name: str, default: float) -> float:
  raw = os.getenv(name)
  if raw is None or raw == "":
    return default
  try:
    return float(raw)
  except ValueError as e:
    raise ConfigurationError(f"Environment variable '{name}' must be a number, got '{raw}'") from e


@dataclass(frozen=True)
class Settings:
  """Runtime settings, read from the environment (and a .env file via the CLI)."""

  alpha_vantage_api_key: str | None = None
  dashboard_api_url: str = _DEFAULT_DASHBOARD_URL
  storage_path: Path = Path(_DEFAULT_STORAGE_PATH).expanduser()
  refresh_delay: float = 1.0
  request_timeout: float = 30.0

  @classmethod
  def from_env(cls) -> Settings:
    return cls(
      alpha_vantage_api_key=os.getenv("ALPHA_VANTAGE_API_KEY") or None,
      dashboard_api_url=os.getenv("DASHBOARD_API_URL") or _DEFAULT_DASHBOARD_URL,
      storage_path=Path(
        os.getenv("MARKET_DASHBOARD_STORAGE") or _DEFAULT_STORAGE_PATH
      ).expanduser(),
      refresh_delay=_float_env("WATCHLIST_REFRESH_DELAY", 1.0),
      request_timeout=_float_env("REQUEST_TIMEOUT", 30.0),
    )
