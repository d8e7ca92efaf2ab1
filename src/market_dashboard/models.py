from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

MAX_CANDLES = 500

# Candle intervals the forex timeseries endpoint accepts.
FOREX_INTERVALS = ("1m", "5m", "15m", "30m", "1h", "1d")


class Candle(BaseModel):
  """A single OHLC candle. `time` is a unix timestamp in seconds."""

  model_config = ConfigDict(frozen=True, from_attributes=True)

  time: int
  open: float
  high: float
  low: float
  close: float

  @model_validator(mode="after")
  def check_ordering(self) -> Candle:
    if not self.low <= min(self.open, self.close):
      raise ValueError(f"low {self.low} is above open/close at {self.time}")
    if not max(self.open, self.close) <= self.high:
      raise ValueError(f"high {self.high} is below open/close at {self.time}")
    return self


class Timeframe(Enum):
  """Duration represented by one candle: (label, interval seconds, default count)."""

  M1 = ("1m", 60, 120)
  M5 = ("5m", 300, 144)
  M15 = ("15m", 900, 96)
  H1 = ("1h", 3600, 168)
  H4 = ("4h", 14400, 180)
  D1 = ("1d", 86400, 365)

  def __init__(self, label: str, interval: int, default_count: int):
    self.label = label
    self.interval = interval
    self.default_count = default_count

  @classmethod
  def from_label(cls, label: str) -> Timeframe:
    for member in cls:
      if member.label == label.lower():
        return member
    raise ValueError(f"Unknown timeframe '{label}'. Valid: {[m.label for m in cls]}")


class DateRange(Enum):
  """Total historical span requested: (label, days)."""

  D1 = ("1D", 1)
  W1 = ("1W", 7)
  M1 = ("1M", 30)
  M3 = ("3M", 90)
  M6 = ("6M", 180)
  Y1 = ("1Y", 365)
  ALL = ("ALL", 1825)

  def __init__(self, label: str, days: int):
    self.label = label
    self.days = days

  @classmethod
  def from_label(cls, label: str) -> DateRange:
    for member in cls:
      if member.label == label.upper():
        return member
    raise ValueError(f"Unknown date range '{label}'. Valid: {[m.label for m in cls]}")


class VolatilityClass(Enum):
  """How strongly randomness is scaled for an asset: (name, factor)."""

  CRYPTO = ("crypto", 3.0)
  EQUITY = ("equity", 1.0)
  COMMODITY = ("commodity", 1.0)
  MAJOR_FX = ("major_fx", 0.1)

  def __init__(self, label: str, factor: float):
    self.label = label
    self.factor = factor


class Asset(BaseModel):
  model_config = ConfigDict(frozen=True)

  symbol: str
  display_name: str
  base_price: float = Field(gt=0)
  volatility_class: VolatilityClass = VolatilityClass.EQUITY


class SeriesStats(BaseModel):
  """Summary figures shown above a chart."""

  current_price: float
  open_price: float
  previous_close: float
  price_change: float
  price_change_percent: float
  high_price: float
  low_price: float

  @classmethod
  def from_candles(cls, candles: list[Candle]) -> SeriesStats:
    """Computes the statistics from scratch over a whole series."""
    if not candles:
      raise ValueError("Cannot compute statistics for an empty series.")

    first, last = candles[0], candles[-1]
    previous_close = candles[-2].close if len(candles) > 1 else first.open
    price_change = last.close - first.open
    return cls(
      current_price=last.close,
      open_price=first.open,
      previous_close=previous_close,
      price_change=price_change,
      price_change_percent=_percent(price_change, first.open),
      high_price=max(c.high for c in candles),
      low_price=min(c.low for c in candles),
    )

  def apply_tick(self, candle: Candle) -> SeriesStats:
    """Returns the statistics after one live candle.

    Change is measured against the open captured when the series was loaded,
    and high/low only ever widen; they are not re-derived from the series.
    """
    price_change = candle.close - self.open_price
    return self.model_copy(
      update={
        "previous_close": self.current_price,
        "current_price": candle.close,
        "price_change": price_change,
        "price_change_percent": _percent(price_change, self.open_price),
        "high_price": max(self.high_price, candle.high),
        "low_price": min(self.low_price, candle.low),
      }
    )


def _percent(change: float, base: float) -> float:
  return change / base * 100 if base else 0.0


class WatchlistItem(BaseModel):
  """A followed symbol. Serialized as {symbol, name, addedAt}."""

  model_config = ConfigDict(populate_by_name=True)

  symbol: str = Field(min_length=1)
  name: str = ""
  added_at: datetime = Field(alias="addedAt")


class Quote(BaseModel):
  """A snapshot of a symbol's trading statistics. Never persisted."""

  symbol: str
  name: str | None = None
  price: float = 0.0
  change: float = 0.0
  change_percent: float = 0.0
  open: float = 0.0
  high: float = 0.0
  low: float = 0.0
  volume: int = 0
  previous_close: float = 0.0
  latest_trading_day: str = ""


class SearchResult(BaseModel):
  symbol: str
  name: str | None = None
  type: str | None = None
  region: str | None = None
  currency: str | None = None


class PricePoint(BaseModel):
  """One point of an area chart. `time` is a unix timestamp in seconds."""

  time: int
  value: float
