from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from market_dashboard.chart import cancel_task
from market_dashboard.errors import MarketDataError
from market_dashboard.models import FOREX_INTERVALS, Candle

REFETCH_SECONDS = 60

SeriesFetchFunc = Callable[..., list[Candle]]
PriceCallback = Callable[[float, float], None]
SleepFunc = Callable[[float], Awaitable[None]]


def seconds_until_next_minute(now: float) -> float:
  """Seconds from `now` to the next wall-clock minute boundary, in (0, 60]."""
  return REFETCH_SECONDS - (now % REFETCH_SECONDS)


class ForexChartPoller:
  """Keeps a forex candle series fresh, refetching on minute boundaries.

  `start` fetches immediately, waits until the next :00, then refetches every
  60 seconds. Every fetch remembers the generation it was issued for; a
  response that lands after a symbol/interval change is dropped.

  Args:
    fetch_series: Called as `fetch_series(symbol=..., interval=...)`.
    on_price: Called with (last close, change from previous close) after each fetch.
    clock: Returns the current unix time in seconds.
    sleep: Coroutine used for both timer phases, injectable for tests.
  """

  def __init__(
    self,
    fetch_series: SeriesFetchFunc,
    on_price: PriceCallback | None = None,
    clock: Callable[[], float] = time.time,
    sleep: SleepFunc = asyncio.sleep,
  ):
    self._fetch_series = fetch_series
    self._on_price = on_price
    self._clock = clock
    self._sleep = sleep
    self._generation = 0
    self._task: asyncio.Task | None = None

    self.symbol: str | None = None
    self.interval: str | None = None
    self.candles: list[Candle] = []
    self.error: str | None = None
    self.loading = False
    self.last_update: datetime | None = None

  @property
  def running(self) -> bool:
    return self._task is not None and not self._task.done()

  async def start(self, symbol: str, interval: str = "5m") -> None:
    if interval not in FOREX_INTERVALS:
      raise ValueError(f"Unsupported forex interval '{interval}'. Valid: {FOREX_INTERVALS}")

    await self.stop()
    self.symbol, self.interval = symbol, interval
    self.candles, self.error = [], None
    generation = self._generation

    logging.info(f"Starting forex chart for {symbol} ({interval})")
    await self.refresh(generation)
    if generation == self._generation:
      self._task = asyncio.create_task(self._run(generation))

  async def _run(self, generation: int) -> None:
    await self._sleep(seconds_until_next_minute(self._clock()))
    while generation == self._generation:
      await self.refresh(generation)
      await self._sleep(REFETCH_SECONDS)

  async def refresh(self, generation: int | None = None) -> bool:
    """Fetches the series once. Returns True if the result was applied."""
    if self.symbol is None:
      return False
    if generation is None:
      generation = self._generation
    symbol, interval = self.symbol, self.interval

    self.loading = True
    try:
      candles = await asyncio.to_thread(
        self._fetch_series, symbol=symbol, interval=interval
      )
    except MarketDataError as e:
      if generation == self._generation:
        self.error = str(e)
        self.loading = False
      logging.error(f"Failed to fetch forex series for {symbol}: {e}")
      return False
    except Exception as e:
      if generation == self._generation:
        self.error = "Unknown error"
        self.loading = False
      logging.error(
        f"An unexpected error occurred fetching forex series for {symbol}: {e}",
        exc_info=True,
      )
      return False

    if generation != self._generation:
      logging.debug(f"Discarding stale forex series for {symbol} ({interval}).")
      return False

    self.loading = False
    self.error = None
    if not candles:
      logging.warning(f"Forex series for {symbol} came back empty.")
      return False

    self.candles = candles
    self.last_update = datetime.now(timezone.utc)
    self._notify_price()
    return True

  def _notify_price(self) -> None:
    if len(self.candles) < 2 or self._on_price is None:
      return
    last, prev = self.candles[-1], self.candles[-2]
    try:
      self._on_price(last.close, last.close - prev.close)
    except Exception as e:
      logging.error(f"Forex price callback failed for {self.symbol}: {e}", exc_info=True)

  async def stop(self) -> None:
    """Cancels both the wait-for-:00 phase and the recurring refetch."""
    self._generation += 1
    await cancel_task(self._task)
    self._task = None
    self.loading = False
