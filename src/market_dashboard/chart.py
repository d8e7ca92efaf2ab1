from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import Enum, auto

from market_dashboard.generator import PriceSeriesGenerator
from market_dashboard.models import Asset, Candle, DateRange, SeriesStats, Timeframe

_MAX_TICK_MS = 3000

SleepFunc = Callable[[float], Awaitable[None]]
UpdateCallback = Callable[[list[Candle], SeriesStats], None]


class ChartState(Enum):
  UNINITIALIZED = auto()
  LOADING = auto()
  READY = auto()


def tick_cadence(timeframe: Timeframe) -> float:
  """Seconds between live candles: faster than real time, at most one per 3s."""
  return min(timeframe.interval * 100, _MAX_TICK_MS) / 1000


async def cancel_task(task: asyncio.Task | None) -> None:
  """Cancels a task and waits for it to finish, unless it is the caller itself."""
  if task is None or task.done():
    return
  task.cancel()
  if task is asyncio.current_task():
    return
  with contextlib.suppress(asyncio.CancelledError):
    await task


class LiveChart:
  """A synthetic candlestick chart that keeps growing while it is ready.

  Lifecycle: UNINITIALIZED -> LOADING -> READY. Loading a new asset,
  timeframe or range discards the previous series and statistics outright.
  While READY, one timer task owned by the chart appends a candle per tick.
  The timer is cancelled before every re-arm and on `close()`.

  Args:
    generator: Candle source.
    on_update: Called with (candles, stats) after every load and tick.
    sleep: Coroutine used to wait between ticks, injectable for tests.
  """

  def __init__(
    self,
    generator: PriceSeriesGenerator | None = None,
    on_update: UpdateCallback | None = None,
    sleep: SleepFunc = asyncio.sleep,
  ):
    self._generator = generator or PriceSeriesGenerator()
    self._on_update = on_update
    self._sleep = sleep
    self._generation = 0
    self._timer: asyncio.Task | None = None

    self.state = ChartState.UNINITIALIZED
    self.asset: Asset | None = None
    self.timeframe: Timeframe | None = None
    self.date_range: DateRange | None = None
    self.candles: list[Candle] = []
    self.stats: SeriesStats | None = None
    self.error: str | None = None

  async def __aenter__(self) -> LiveChart:
    return self

  async def __aexit__(self, *exc_info) -> None:
    await self.close()

  async def load(
    self,
    asset: Asset,
    timeframe: Timeframe,
    date_range: DateRange | None = None,
  ) -> bool:
    """Generates a fresh series and arms the tick timer.

    Returns False if the load failed or was superseded by a newer one
    before it completed.
    """
    self._generation += 1
    generation = self._generation
    await cancel_task(self._timer)
    self._timer = None

    self.state = ChartState.LOADING
    self.asset, self.timeframe, self.date_range = asset, timeframe, date_range
    self.candles, self.stats, self.error = [], None, None
    logging.info(
      f"Loading {asset.symbol} {timeframe.label} chart "
      f"({date_range.label if date_range else 'default'} range)"
    )

    try:
      candles = await asyncio.to_thread(
        self._generator.generate_initial_series, asset, timeframe, date_range
      )
      stats = SeriesStats.from_candles(candles)
    except ValueError as e:
      if generation == self._generation:
        self.error = f"Could not generate chart data: {e}"
        self.state = ChartState.UNINITIALIZED
      logging.error(f"Failed to generate series for {asset.symbol}: {e}")
      return False

    if generation != self._generation:
      logging.debug(f"Discarding stale {asset.symbol} {timeframe.label} series.")
      return False

    self.candles, self.stats = candles, stats
    self.state = ChartState.READY
    self._timer = asyncio.create_task(self._run_timer(generation, tick_cadence(timeframe)))
    self._notify()
    return True

  async def _run_timer(self, generation: int, cadence: float) -> None:
    while True:
      await self._sleep(cadence)
      if generation != self._generation or self.state is not ChartState.READY:
        return
      self.tick()

  def tick(self) -> Candle:
    """Appends one live candle and updates the running statistics."""
    if self.state is not ChartState.READY:
      raise RuntimeError(f"Cannot tick a chart in state {self.state.name}")

    last = self.candles[-1]
    candle = self._generator.generate_next_candle(
      last.close, self.timeframe.interval, self.asset
    )
    if candle.time <= last.time:
      candle = candle.model_copy(update={"time": last.time + 1})

    self.candles.append(candle)
    self.stats = self.stats.apply_tick(candle)
    self._notify()
    return candle

  def _notify(self) -> None:
    if self._on_update is None:
      return
    try:
      self._on_update(self.candles, self.stats)
    except Exception as e:
      logging.error(f"Chart update callback failed: {e}", exc_info=True)

  async def close(self) -> None:
    """Stops the timer and drops the series."""
    self._generation += 1
    await cancel_task(self._timer)
    self._timer = None
    self.state = ChartState.UNINITIALIZED
    self.candles, self.stats = [], None
