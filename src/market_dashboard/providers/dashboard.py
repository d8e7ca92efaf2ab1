from __future__ import annotations

import functools
import logging
from typing import Any

import requests

from market_dashboard.errors import TransportError, UpstreamError
from market_dashboard.history import series_type_for, trim_history
from market_dashboard.interfaces import (
  ForexSeriesFetcher,
  PriceHistoryFetcher,
  QuoteFetcher,
  SearchFetcher,
)
from market_dashboard.models import (
  FOREX_INTERVALS,
  Candle,
  PricePoint,
  Quote,
  SearchResult,
)
from market_dashboard.utils.parsers import (
  SERIES_KEYS,
  parse_best_matches,
  parse_forex_series,
  parse_global_quote,
  parse_price_history,
  raise_for_error_payload,
)

# --- Module Constants ---
_DEFAULT_TIMEOUT = 30
_MIN_QUERY_LENGTH = 2

# --- Private Fetcher Implementations ---


def _get_json(session: requests.Session, url: str, timeout: float, params: dict) -> Any:
  try:
    response = session.get(url, params=params, timeout=timeout)
    response.raise_for_status()
    return response.json()
  except ValueError as e:
    raise UpstreamError(f"{url} returned invalid JSON: {e}") from e
  except requests.exceptions.RequestException as e:
    raise TransportError(f"HTTP error calling {url}: {e}") from e


def _stock(session: requests.Session, base_url: str, timeout: float, symbol: str, type_: str) -> Any:
  return _get_json(
    session, f"{base_url}/api/stock", timeout, {"symbol": symbol, "type": type_}
  )


def _get_quote_impl(
  session: requests.Session, base_url: str, timeout: float, **kwargs: Any
) -> Quote:
  symbol = kwargs["symbol"]
  payload = _stock(session, base_url, timeout, symbol, "quote")
  return parse_global_quote(payload, symbol, kwargs.get("name"))


def _search_impl(
  session: requests.Session, base_url: str, timeout: float, **kwargs: Any
) -> list[SearchResult]:
  query = kwargs.get("query", "").strip()
  if len(query) < _MIN_QUERY_LENGTH:
    return []
  payload = _stock(session, base_url, timeout, query, "search")
  return parse_best_matches(payload, query)


def _get_price_history_impl(
  session: requests.Session, base_url: str, timeout: float, **kwargs: Any
) -> list[PricePoint]:
  symbol = kwargs["symbol"]
  date_range = kwargs["date_range"]
  series_type = series_type_for(date_range)

  payload = raise_for_error_payload(
    _stock(session, base_url, timeout, symbol, series_type)
  )
  points = parse_price_history(payload.get(SERIES_KEYS[series_type]), series_type)
  return trim_history(points, date_range)


def _get_forex_series_impl(
  session: requests.Session, base_url: str, timeout: float, **kwargs: Any
) -> list[Candle]:
  symbol = kwargs["symbol"]
  interval = kwargs.get("interval", "5m")
  if interval not in FOREX_INTERVALS:
    raise ValueError(f"Unsupported forex interval '{interval}'. Valid: {FOREX_INTERVALS}")

  logging.debug(f"Fetching forex {interval} series for {symbol}")
  payload = _get_json(
    session,
    f"{base_url}/api/forex",
    timeout,
    {"action": "timeseries", "symbol": symbol, "interval": interval},
  )
  return parse_forex_series(payload, symbol)


# --- Public Provider Class ---


class DashboardProvider:
  """Talks to the dashboard's own `/api/stock` and `/api/forex` proxy routes.

  The stock route relays Alpha Vantage shaped payloads, so parsing is shared
  with the direct Alpha Vantage provider. No API key is needed on this side.
  """

  def __init__(self, base_url: str, timeout: float = _DEFAULT_TIMEOUT):
    if not base_url:
      raise ValueError("Dashboard provider requires a base URL.")

    session = requests.Session()
    base_url = base_url.rstrip("/")

    self._capabilities = {
      QuoteFetcher: functools.partial(_get_quote_impl, session, base_url, timeout),
      SearchFetcher: functools.partial(_search_impl, session, base_url, timeout),
      PriceHistoryFetcher: functools.partial(_get_price_history_impl, session, base_url, timeout),
      ForexSeriesFetcher: functools.partial(_get_forex_series_impl, session, base_url, timeout),
    }

  def supports(self, interface_class: type) -> bool:
    return interface_class in self._capabilities

  def get_fetcher(self, interface_class: type):
    if not self.supports(interface_class):
      raise TypeError(f"This provider does not support {interface_class.__name__}")
    return self._capabilities[interface_class]
