import asyncio
import random

import pytest

from market_dashboard.generator import PriceSeriesGenerator
from market_dashboard.models import Asset, VolatilityClass
from market_dashboard.storage import LocalStorage

NOW = 1_700_000_000


class FakeSleep:
  """Async sleep stand-in that returns immediately `allowed` times, then blocks."""

  def __init__(self, allowed: int):
    self.allowed = allowed
    self.calls: list[float] = []
    self.exhausted = asyncio.Event()

  async def __call__(self, seconds: float) -> None:
    self.calls.append(seconds)
    if len(self.calls) > self.allowed:
      self.exhausted.set()
      await asyncio.Event().wait()
    await asyncio.sleep(0)


@pytest.fixture
def gold() -> Asset:
  return Asset(
    symbol="XAU/USD",
    display_name="Gold / US Dollar",
    base_price=2650.0,
    volatility_class=VolatilityClass.COMMODITY,
  )


@pytest.fixture
def generator() -> PriceSeriesGenerator:
  return PriceSeriesGenerator(rng=random.Random(42), clock=lambda: NOW)


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
  return LocalStorage(tmp_path / "storage.json")
