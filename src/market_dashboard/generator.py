from __future__ import annotations

import logging
import math
import random
import time
from collections.abc import Callable

from market_dashboard.models import MAX_CANDLES, Asset, Candle, DateRange, Timeframe

_SECONDS_PER_DAY = 86400

# Multipliers for (open jitter, candle range). Live ticks are gentler.
_HISTORY_MULTIPLIERS = (5, 10)
_LIVE_MULTIPLIERS = (3, 5)
_TREND_SCALE = 50
_MAX_TREND_STRENGTH = 0.5


def candle_count(timeframe: Timeframe, date_range: DateRange | None = None) -> int:
  """Number of candles to synthesize for a timeframe over a date range."""
  if date_range is None:
    return min(timeframe.default_count, MAX_CANDLES)
  return min(date_range.days * _SECONDS_PER_DAY // timeframe.interval, MAX_CANDLES)


class PriceSeriesGenerator:
  """Builds plausible OHLC series as a random walk with trend and volatility shaping.

  Args:
    rng: Source of randomness. Pass a seeded `random.Random` for repeatable output.
    clock: Returns the current unix time in seconds.
  """

  def __init__(
    self,
    rng: random.Random | None = None,
    clock: Callable[[], float] = time.time,
  ):
    self._rng = rng or random.Random()
    self._clock = clock

  def _candle(
    self,
    timestamp: int,
    last_close: float,
    interval: int,
    factor: float,
    multipliers: tuple[int, int],
    trend_effect: float = 0.0,
  ) -> Candle:
    jitter_scale, range_scale = multipliers
    scale = math.sqrt(interval / 60)

    volatility = self._rng.uniform(-0.5, 0.5) * scale * jitter_scale * factor
    open_price = last_close + volatility + trend_effect
    price_range = self._rng.random() * scale * range_scale * factor
    high = open_price + price_range
    low = open_price - price_range
    close = low + self._rng.random() * (high - low)

    return Candle(
      time=timestamp,
      open=open_price,
      high=high,
      low=low,
      close=min(max(close, low), high),
    )

  def generate_initial_series(
    self,
    asset: Asset,
    timeframe: Timeframe,
    date_range: DateRange | None = None,
  ) -> list[Candle]:
    """Generates a history ending at the current time, oldest candle first."""
    count = candle_count(timeframe, date_range)
    interval = timeframe.interval
    factor = asset.volatility_class.factor
    now = int(self._clock())

    last_close = asset.base_price * self._rng.uniform(0.9, 1.1)
    trend_direction = 1 if self._rng.random() > 0.5 else -1
    trend_strength = self._rng.random() * _MAX_TREND_STRENGTH

    logging.debug(
      f"Generating {count} {timeframe.label} candles for {asset.symbol} "
      f"(start {last_close:.4f}, trend {trend_direction * trend_strength:+.3f})"
    )

    candles = []
    for i in range(count - 1, -1, -1):
      progress = (count - 1 - i) / max(count - 1, 1)
      trend_effect = (
        trend_direction * trend_strength * progress * _TREND_SCALE * factor
      )
      candle = self._candle(
        now - i * interval,
        last_close,
        interval,
        factor,
        _HISTORY_MULTIPLIERS,
        trend_effect,
      )
      candles.append(candle)
      last_close = candle.close

    return candles

  def generate_next_candle(
    self, last_close: float, interval: int, asset: Asset
  ) -> Candle:
    """Generates one live candle stamped with the current wall-clock time."""
    return self._candle(
      int(self._clock()),
      last_close,
      interval,
      asset.volatility_class.factor,
      _LIVE_MULTIPLIERS,
    )
