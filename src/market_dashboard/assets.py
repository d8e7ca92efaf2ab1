from __future__ import annotations

from market_dashboard.models import Asset, VolatilityClass

# Demo assets for the synthetic feed. Base prices are rough recent levels.
_ASSETS = [
  Asset(
    symbol="XAU/USD",
    display_name="Gold / US Dollar",
    base_price=2650.0,
    volatility_class=VolatilityClass.COMMODITY,
  ),
  Asset(
    symbol="XAG/USD",
    display_name="Silver / US Dollar",
    base_price=31.0,
    volatility_class=VolatilityClass.COMMODITY,
  ),
  Asset(
    symbol="BTC/USD",
    display_name="Bitcoin / US Dollar",
    base_price=97000.0,
    volatility_class=VolatilityClass.CRYPTO,
  ),
  Asset(
    symbol="ETH/USD",
    display_name="Ethereum / US Dollar",
    base_price=3400.0,
    volatility_class=VolatilityClass.CRYPTO,
  ),
  Asset(
    symbol="EUR/USD",
    display_name="Euro / US Dollar",
    base_price=1.08,
    volatility_class=VolatilityClass.MAJOR_FX,
  ),
  Asset(
    symbol="GBP/USD",
    display_name="British Pound / US Dollar",
    base_price=1.27,
    volatility_class=VolatilityClass.MAJOR_FX,
  ),
  Asset(
    symbol="USD/JPY",
    display_name="US Dollar / Japanese Yen",
    base_price=150.0,
    volatility_class=VolatilityClass.MAJOR_FX,
  ),
  Asset(
    symbol="AAPL",
    display_name="Apple Inc.",
    base_price=190.0,
    volatility_class=VolatilityClass.EQUITY,
  ),
]

ASSETS: dict[str, Asset] = {asset.symbol: asset for asset in _ASSETS}


def get_asset(symbol: str) -> Asset:
  """Looks up a catalog asset by symbol, ignoring case."""
  asset = ASSETS.get(symbol.upper())
  if asset is None:
    raise ValueError(f"Asset '{symbol}' not found. Available: {list(ASSETS)}")
  return asset
