from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from market_dashboard.errors import DataNotFoundError, UpstreamError
from market_dashboard.models import Candle, PricePoint, Quote, SearchResult

# Keys Alpha Vantage (and the dashboard proxy) use to report a failed call.
_ERROR_KEYS = ("error", "Error Message", "Note", "Information")

# Time-series payload key for each history request type.
SERIES_KEYS = {
  "intraday": "Time Series (5min)",
  "daily": "Time Series (Daily)",
  "weekly": "Weekly Time Series",
  "monthly": "Monthly Time Series",
}


def raise_for_error_payload(payload: Any) -> dict[str, Any]:
  """Returns the payload if it is a dict without an upstream error message.

  Raises:
    UpstreamError: If the payload is not an object or reports an error.
  """
  if not isinstance(payload, dict):
    raise UpstreamError(f"Unexpected response type: {type(payload).__name__}")
  for key in _ERROR_KEYS:
    message = payload.get(key)
    if message:
      raise UpstreamError(str(message))
  return payload


def parse_float(value: Any) -> float:
  """Lenient float conversion: anything unparseable or NaN becomes 0."""
  try:
    result = float(str(value).strip().rstrip("%"))
  except (TypeError, ValueError):
    return 0.0
  return 0.0 if math.isnan(result) else result


def parse_int(value: Any) -> int:
  try:
    return int(float(str(value).strip()))
  except (TypeError, ValueError, OverflowError):
    return 0


def parse_timestamp(value: Any) -> int:
  """Converts an ISO date/datetime string (or epoch number) to unix seconds.

  Naive values are taken as UTC.
  """
  if isinstance(value, (int, float)):
    return int(value)
  text = str(value).strip()
  if text.endswith("Z"):
    text = text[:-1] + "+00:00"
  dt = datetime.fromisoformat(text)
  if dt.tzinfo is None:
    dt = dt.replace(tzinfo=timezone.utc)
  return int(dt.timestamp())


def parse_global_quote(
  payload: Any, symbol: str, name: str | None = None
) -> Quote:
  """Maps a `Global Quote` payload to a Quote."""
  payload = raise_for_error_payload(payload)
  raw = payload.get("Global Quote")
  if not raw:
    raise DataNotFoundError(f"No quote data found for {symbol}")

  return Quote(
    symbol=raw.get("01. symbol") or symbol,
    name=name,
    price=parse_float(raw.get("05. price")),
    change=parse_float(raw.get("09. change")),
    change_percent=parse_float(raw.get("10. change percent")),
    open=parse_float(raw.get("02. open")),
    high=parse_float(raw.get("03. high")),
    low=parse_float(raw.get("04. low")),
    volume=parse_int(raw.get("06. volume")),
    previous_close=parse_float(raw.get("08. previous close")),
    latest_trading_day=raw.get("07. latest trading day") or "",
  )


def parse_best_matches(payload: Any, query: str) -> list[SearchResult]:
  """Maps a `bestMatches` payload to search results."""
  payload = raise_for_error_payload(payload)
  matches = payload.get("bestMatches")
  if not matches:
    raise DataNotFoundError(f'No stock found for "{query}"')

  results = []
  for match in matches:
    try:
      results.append(
        SearchResult(
          symbol=match["1. symbol"],
          name=match.get("2. name"),
          type=match.get("3. type"),
          region=match.get("4. region"),
          currency=match.get("8. currency"),
        )
      )
    except (KeyError, ValidationError) as e:
      logging.warning(f"Skipping malformed search match {match!r}: {e}")
  return results


def parse_price_history(
  series: dict[str, dict[str, Any]] | None, series_type: str
) -> list[PricePoint]:
  """Maps a time-series mapping (date -> OHLC fields) to close-price points.

  Non-positive closes and unparseable dates are dropped; output is sorted by time.
  """
  if not series:
    raise DataNotFoundError(f"No chart data returned for {series_type} series")

  points = []
  for date_str, values in series.items():
    value = parse_float(values.get("4. close"))
    if value <= 0:
      continue
    try:
      points.append(PricePoint(time=parse_timestamp(date_str), value=value))
    except ValueError:
      logging.warning(f"Skipping {series_type} point with bad date '{date_str}'")
  points.sort(key=lambda p: p.time)
  return points


def parse_forex_series(payload: Any, symbol: str) -> list[Candle]:
  """Maps a forex timeseries payload (`{"data": [{time, open, ...}]}`) to candles."""
  payload = raise_for_error_payload(payload)
  rows = payload.get("data") or []

  candles = []
  for row in rows:
    try:
      candles.append(
        Candle(
          time=parse_timestamp(row["time"]),
          open=row["open"],
          high=row["high"],
          low=row["low"],
          close=row["close"],
        )
      )
    except (KeyError, ValueError, TypeError) as e:
      # pydantic's ValidationError is a ValueError
      logging.warning(f"Skipping forex candle for {symbol} due to validation error: {e}")
  candles.sort(key=lambda c: c.time)
  return candles
