from __future__ import annotations

import functools
import logging
from typing import Any

import requests
from alpha_vantage.timeseries import TimeSeries

from market_dashboard.errors import TransportError, UpstreamError
from market_dashboard.history import series_type_for, trim_history
from market_dashboard.interfaces import PriceHistoryFetcher, QuoteFetcher, SearchFetcher
from market_dashboard.models import PricePoint, Quote, SearchResult
from market_dashboard.utils.parsers import (
  parse_best_matches,
  parse_global_quote,
  parse_price_history,
)

# --- Module Constants ---
_QUERY_URL = "https://www.alphavantage.co/query"
_DEFAULT_TIMEOUT = 30
_MIN_QUERY_LENGTH = 2

# --- Private Fetcher Implementations ---


def _query(api_key: str, timeout: float, **params: Any) -> Any:
  """Calls the Alpha Vantage query endpoint and returns the decoded JSON body."""
  params["apikey"] = api_key
  try:
    response = requests.get(_QUERY_URL, params=params, timeout=timeout)
    response.raise_for_status()
    return response.json()
  except ValueError as e:
    raise UpstreamError(f"Alpha Vantage returned invalid JSON: {e}") from e
  except requests.exceptions.RequestException as e:
    raise TransportError(f"HTTP error calling Alpha Vantage {params['function']}: {e}") from e


def _get_quote_impl(api_key: str, timeout: float, **kwargs: Any) -> Quote:
  symbol = kwargs["symbol"]
  logging.debug(f"Fetching Alpha Vantage quote for {symbol}")
  payload = _query(api_key, timeout, function="GLOBAL_QUOTE", symbol=symbol)
  return parse_global_quote(payload, symbol, kwargs.get("name"))


def _search_impl(api_key: str, timeout: float, **kwargs: Any) -> list[SearchResult]:
  query = kwargs.get("query", "").strip()
  if len(query) < _MIN_QUERY_LENGTH:
    return []
  payload = _query(api_key, timeout, function="SYMBOL_SEARCH", keywords=query)
  return parse_best_matches(payload, query)


def _fetch_series(ts_client: TimeSeries, series_type: str, symbol: str) -> dict:
  if series_type == "intraday":
    data, _ = ts_client.get_intraday(symbol=symbol, interval="5min")
  elif series_type == "daily":
    data, _ = ts_client.get_daily(symbol=symbol)
  elif series_type == "weekly":
    data, _ = ts_client.get_weekly(symbol=symbol)
  else:
    data, _ = ts_client.get_monthly(symbol=symbol)
  return data


def _get_price_history_impl(ts_client: TimeSeries, **kwargs: Any) -> list[PricePoint]:
  """Fetches close-price history through the alpha_vantage TimeSeries client."""
  symbol = kwargs["symbol"]
  date_range = kwargs["date_range"]
  series_type = series_type_for(date_range)
  logging.debug(f"Fetching Alpha Vantage {series_type} series for {symbol}")

  try:
    data = _fetch_series(ts_client, series_type, symbol)
  except requests.exceptions.RequestException as e:
    raise TransportError(f"HTTP error fetching {series_type} series for {symbol}: {e}") from e
  except ValueError as e:
    # The client raises ValueError carrying the API's error message.
    raise UpstreamError(str(e)) from e

  return trim_history(parse_price_history(data, series_type), date_range)


# --- Public Provider Class ---


class AlphaVantageProvider:
  """Alpha Vantage data provider: quotes, symbol search and price history."""

  def __init__(self, api_key: str, timeout: float = _DEFAULT_TIMEOUT):
    if not api_key:
      raise ValueError("Alpha Vantage provider requires an API key.")

    ts_client = TimeSeries(key=api_key, output_format="json")

    self._capabilities = {
      QuoteFetcher: functools.partial(_get_quote_impl, api_key, timeout),
      SearchFetcher: functools.partial(_search_impl, api_key, timeout),
      PriceHistoryFetcher: functools.partial(_get_price_history_impl, ts_client),
    }

  def supports(self, interface_class: type) -> bool:
    return interface_class in self._capabilities

  def get_fetcher(self, interface_class: type):
    if not self.supports(interface_class):
      raise TypeError(f"This provider does not support {interface_class.__name__}")
    return self._capabilities[interface_class]
