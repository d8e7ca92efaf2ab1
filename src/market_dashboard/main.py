from __future__ import annotations

import asyncio
import functools
import logging
import random
import sys

import click
from dotenv import load_dotenv

from market_dashboard.assets import ASSETS, get_asset
from market_dashboard.chart import LiveChart
from market_dashboard.config import Settings
from market_dashboard.errors import MarketDataError
from market_dashboard.factory import PROVIDER_NAMES, ProviderFactory
from market_dashboard.forex import ForexChartPoller
from market_dashboard.generator import PriceSeriesGenerator
from market_dashboard.interfaces import (
  ForexSeriesFetcher,
  PriceHistoryFetcher,
  QuoteFetcher,
  SearchFetcher,
)
from market_dashboard.models import (
  FOREX_INTERVALS,
  DateRange,
  Quote,
  SeriesStats,
  Timeframe,
)
from market_dashboard.storage import LocalStorage
from market_dashboard.utils.savers import save_to_csv
from market_dashboard.watchlist import WatchlistStore

# --- Setup ---
logging.basicConfig(
  level=logging.INFO,
  format="%(asctime)s - %(levelname)s - %(message)s",
  stream=sys.stdout,
)

_TIMEFRAME_LABELS = [t.label for t in Timeframe]
_DATE_RANGE_LABELS = [d.label for d in DateRange]

# --- Error Handling Decorator ---


def cli_error_handler(func):
  """Decorator to handle common CLI errors, log them, and exit."""

  @functools.wraps(func)
  def wrapper(*args, **kwargs):
    try:
      return func(*args, **kwargs)
    except (MarketDataError, ValueError, TypeError) as e:
      logging.error(f"Error: {e}")
      sys.exit(1)
    except Exception as e:
      logging.error(f"An unexpected error occurred: {e}", exc_info=True)
      sys.exit(1)

  return wrapper


# --- Private Helpers ---


def _get_fetcher(provider_name: str, interface_class: type):
  """Helper to create a provider and get a specific fetcher component."""
  return ProviderFactory(Settings.from_env()).get_fetcher(provider_name, interface_class)


def _open_watchlist(fetch_quote=None) -> WatchlistStore:
  settings = Settings.from_env()
  return WatchlistStore(
    LocalStorage(settings.storage_path),
    fetch_quote=fetch_quote,
    delay=settings.refresh_delay,
  )


def _format_quote(quote: Quote) -> str:
  return (
    f"{quote.symbol:<10} {quote.price:>12.2f} {quote.change:>+10.2f} "
    f"({quote.change_percent:+.2f}%)  H {quote.high:.2f}  L {quote.low:.2f}  "
    f"Vol {quote.volume:,}  {quote.latest_trading_day}"
  )


def _format_stats(symbol: str, stats: SeriesStats) -> str:
  return (
    f"{symbol} {stats.current_price:.4f} {stats.price_change:+.4f} "
    f"({stats.price_change_percent:+.2f}%)  "
    f"H {stats.high_price:.4f}  L {stats.low_price:.4f}"
  )


provider_option = click.option(
  "--provider",
  type=click.Choice(PROVIDER_NAMES),
  default="alpha_vantage",
  show_default=True,
  envvar="MARKET_DASHBOARD_PROVIDER",
  help="The data provider to use.",
)

# --- CLI Commands ---


@click.group()
@click.option("--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose):
  """A CLI for the market dashboard: quotes, watchlist and synthetic charts."""
  load_dotenv()
  if verbose:
    logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
@click.argument("query")
@provider_option
@cli_error_handler
def search(query, provider):
  """Search for symbols matching QUERY."""
  logging.info(f"Executing 'search' for '{query}' on provider: {provider}")

  search_func = _get_fetcher(provider, SearchFetcher)
  results = search_func(query=query)

  if not results:
    logging.warning("No search results; queries need at least 2 characters.")
    return

  for result in results:
    click.echo(
      f"{result.symbol:<12} {result.name or '-':<40} "
      f"{result.type or '-':<10} {result.region or '-':<16} {result.currency or '-'}"
    )


@cli.command()
@click.argument("symbol")
@provider_option
@cli_error_handler
def quote(symbol, provider):
  """Show the latest quote for SYMBOL."""
  get_quote_func = _get_fetcher(provider, QuoteFetcher)
  click.echo(_format_quote(get_quote_func(symbol=symbol.upper())))


@cli.command()
@click.argument("symbol")
@provider_option
@click.option(
  "--range",
  "range_label",
  type=click.Choice(_DATE_RANGE_LABELS, case_sensitive=False),
  default="1M",
  show_default=True,
  help="Historical span to fetch.",
)
@cli_error_handler
def history(symbol, provider, range_label):
  """Fetch close-price history for SYMBOL and save it to CSV."""
  date_range = DateRange.from_label(range_label)
  logging.info(f"Executing 'history' for {symbol} ({date_range.label}) on provider: {provider}")

  get_history_func = _get_fetcher(provider, PriceHistoryFetcher)
  points = get_history_func(symbol=symbol.upper(), date_range=date_range)

  if not points:
    logging.warning("No price history was fetched.")
    return

  filename = f"{provider}_{symbol.upper()}_history_{date_range.label}.csv"
  logging.info(f"Saving {len(points)} points to {filename}...")
  save_to_csv([p.model_dump() for p in points], filename)


@cli.command()
@click.option(
  "--asset",
  "asset_symbol",
  default="XAU/USD",
  show_default=True,
  help=f"Catalog asset ({', '.join(ASSETS)}).",
)
@click.option(
  "--timeframe",
  type=click.Choice(_TIMEFRAME_LABELS, case_sensitive=False),
  default="1h",
  show_default=True,
)
@click.option(
  "--range",
  "range_label",
  type=click.Choice(_DATE_RANGE_LABELS, case_sensitive=False),
  default="1W",
  show_default=True,
)
@click.option("--seed", type=int, default=None, help="Seed for repeatable output.")
@cli_error_handler
def generate(asset_symbol, timeframe, range_label, seed):
  """Generate a synthetic OHLC series and save it to CSV."""
  asset = get_asset(asset_symbol)
  tf = Timeframe.from_label(timeframe)
  date_range = DateRange.from_label(range_label)

  generator = PriceSeriesGenerator(rng=random.Random(seed))
  candles = generator.generate_initial_series(asset, tf, date_range)
  stats = SeriesStats.from_candles(candles)
  click.echo(_format_stats(asset.symbol, stats))

  safe_symbol = asset.symbol.replace("/", "")
  filename = f"synthetic_{safe_symbol}_{tf.label}_{date_range.label}.csv"
  logging.info(f"Saving {len(candles)} candles to {filename}...")
  save_to_csv([c.model_dump() for c in candles], filename)


async def _run_simulation(asset, timeframe, date_range, ticks, seed) -> None:
  finished = asyncio.Event()
  updates = 0

  def on_update(candles, stats):
    nonlocal updates
    click.echo(f"[{len(candles):>4}] {_format_stats(asset.symbol, stats)}")
    updates += 1
    # The first update is the initial load.
    if updates > ticks:
      finished.set()

  generator = PriceSeriesGenerator(rng=random.Random(seed))
  async with LiveChart(generator, on_update=on_update) as chart:
    if not await chart.load(asset, timeframe, date_range):
      raise MarketDataError(chart.error or "Chart failed to load")
    await finished.wait()


@cli.command()
@click.option("--asset", "asset_symbol", default="XAU/USD", show_default=True)
@click.option(
  "--timeframe",
  type=click.Choice(_TIMEFRAME_LABELS, case_sensitive=False),
  default="1m",
  show_default=True,
)
@click.option(
  "--range",
  "range_label",
  type=click.Choice(_DATE_RANGE_LABELS, case_sensitive=False),
  default="1D",
  show_default=True,
)
@click.option("--ticks", type=int, default=10, show_default=True, help="Live candles to emit.")
@click.option("--seed", type=int, default=None)
@cli_error_handler
def simulate(asset_symbol, timeframe, range_label, ticks, seed):
  """Run the synthetic live chart and print stats on every tick."""
  asyncio.run(
    _run_simulation(
      get_asset(asset_symbol),
      Timeframe.from_label(timeframe),
      DateRange.from_label(range_label),
      ticks,
      seed,
    )
  )


async def _watch_forex(fetch_series, symbol: str, interval: str, updates: int) -> None:
  done = asyncio.Event()
  applied = 0

  def on_price(price, change):
    nonlocal applied
    applied += 1
    click.echo(f"{symbol} {price:.5f} {change:+.5f}")
    if applied >= updates:
      done.set()

  poller = ForexChartPoller(fetch_series, on_price=on_price)
  try:
    await poller.start(symbol, interval)
    if poller.error:
      logging.error(f"Forex chart error: {poller.error}")
    if applied < updates:
      await done.wait()
  finally:
    await poller.stop()


@cli.command("forex-watch")
@click.argument("symbol")
@click.option(
  "--interval",
  type=click.Choice(FOREX_INTERVALS),
  default="5m",
  show_default=True,
)
@click.option("--updates", type=int, default=1, show_default=True, help="Fetches to print before exiting.")
@cli_error_handler
def forex_watch(symbol, interval, updates):
  """Poll a forex pair from the dashboard API, refetching on each minute."""
  fetch_series = _get_fetcher("dashboard", ForexSeriesFetcher)
  asyncio.run(_watch_forex(fetch_series, symbol.upper(), interval, updates))


# --- Watchlist Commands ---


@cli.group()
def watchlist():
  """Manage the persisted watchlist."""
  pass


@watchlist.command("add")
@click.argument("symbol")
@click.option("--name", default="", help="Display name for the symbol.")
@cli_error_handler
def watchlist_add(symbol, name):
  store = _open_watchlist()
  if store.add(symbol.upper(), name):
    click.echo(f"Added {symbol.upper()}.")
  else:
    click.echo(f"{symbol.upper()} is already on the watchlist.")


@watchlist.command("remove")
@click.argument("symbol")
@cli_error_handler
def watchlist_remove(symbol):
  store = _open_watchlist()
  if store.remove(symbol.upper()):
    click.echo(f"Removed {symbol.upper()}.")
  else:
    click.echo(f"{symbol.upper()} is not on the watchlist.")


@watchlist.command("list")
@cli_error_handler
def watchlist_list():
  store = _open_watchlist()
  if not len(store):
    click.echo("Watchlist is empty.")
    return
  for item in store.items:
    click.echo(f"{item.symbol:<10} {item.name:<40} {item.added_at.isoformat()}")


@watchlist.command("refresh")
@provider_option
@cli_error_handler
def watchlist_refresh(provider):
  """Fetch a quote for every watchlist symbol, one at a time."""
  store = _open_watchlist(_get_fetcher(provider, QuoteFetcher))
  if not len(store):
    click.echo("Watchlist is empty.")
    return

  quotes = store.refresh_all()
  for item in store.items:
    found = quotes.get(item.symbol)
    click.echo(_format_quote(found) if found else f"{item.symbol:<10} unavailable")


if __name__ == "__main__":
  cli()
