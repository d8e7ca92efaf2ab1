import asyncio
import json
import threading
import time

import pytest

from market_dashboard.config import WATCHLIST_KEY
from market_dashboard.errors import TransportError, UpstreamError
from market_dashboard.models import Quote
from market_dashboard.storage import LocalStorage
from market_dashboard.watchlist import WatchlistStore


def _quote(symbol, name=None):
  return Quote(symbol=symbol, name=name, price=10.0)


def test_add_is_idempotent_and_keeps_first_position(storage):
  store = WatchlistStore(storage)

  assert store.add("AAPL", "Apple")
  assert store.add("MSFT", "Microsoft")
  assert not store.add("AAPL", "Apple again")

  assert [item.symbol for item in store.items] == ["AAPL", "MSFT"]
  assert store.items[0].name == "Apple"


def test_symbols_match_case_sensitively(storage):
  store = WatchlistStore(storage)
  store.add("AAPL")
  assert store.add("aapl")
  assert store.contains("AAPL") and store.contains("aapl")


def test_remove_then_contains_is_false(storage):
  store = WatchlistStore(storage)
  store.add("AAPL")
  store.add("TSLA")

  assert store.remove("AAPL")
  assert not store.contains("AAPL")
  assert [item.symbol for item in store.items] == ["TSLA"]


def test_remove_absent_symbol_is_noop(storage):
  store = WatchlistStore(storage)
  store.add("AAPL")
  before = storage.get_item(WATCHLIST_KEY)

  assert not store.remove("NOPE")
  assert storage.get_item(WATCHLIST_KEY) == before
  assert len(store) == 1


def test_persisted_list_reloads_identically(storage):
  store = WatchlistStore(storage)
  for symbol in ("NVDA", "AAPL", "JPM"):
    store.add(symbol, f"{symbol} Inc.")

  reloaded = WatchlistStore(LocalStorage(storage.path))
  assert reloaded.items == store.items


def test_stored_format_uses_added_at_key(storage):
  WatchlistStore(storage).add("AAPL", "Apple")
  saved = json.loads(storage.get_item(WATCHLIST_KEY))
  assert saved[0]["symbol"] == "AAPL"
  assert saved[0]["name"] == "Apple"
  assert "addedAt" in saved[0]


def test_malformed_stored_value_starts_empty(storage):
  storage.set_item(WATCHLIST_KEY, "{not json")
  store = WatchlistStore(storage)
  assert store.items == []
  assert store.add("AAPL")


def test_malformed_storage_file_starts_empty(tmp_path):
  path = tmp_path / "storage.json"
  path.write_text("[[[", encoding="utf-8")
  store = WatchlistStore(LocalStorage(path))
  assert store.items == []


def test_refresh_skips_failures_and_sleeps_between_requests(storage):
  calls = []
  sleeps = []

  def fetch_quote(symbol, name):
    calls.append(symbol)
    if symbol == "MSFT":
      raise TransportError("connection reset")
    return _quote(symbol, name)

  store = WatchlistStore(storage, fetch_quote=fetch_quote, sleep=sleeps.append)
  for symbol in ("AAPL", "MSFT", "TSLA"):
    store.add(symbol)

  quotes = store.refresh_all()

  assert calls == ["AAPL", "MSFT", "TSLA"]
  assert list(quotes) == ["AAPL", "TSLA"]
  assert sleeps == [1.0, 1.0]


def test_refresh_elapsed_time_covers_two_delays(storage):
  def fetch_quote(symbol, name):
    if symbol == "B":
      raise UpstreamError("rate limited")
    return _quote(symbol)

  store = WatchlistStore(storage, fetch_quote=fetch_quote, delay=1.0)
  for symbol in ("A", "B", "C"):
    store.add(symbol)

  started = time.monotonic()
  quotes = store.refresh_all()
  elapsed = time.monotonic() - started

  assert set(quotes) == {"A", "C"}
  assert elapsed >= 2.0


def test_refresh_discards_previous_quotes(storage):
  fail = {"AAPL": False}

  def fetch_quote(symbol, name):
    if fail[symbol]:
      raise UpstreamError("boom")
    return _quote(symbol)

  store = WatchlistStore(storage, fetch_quote=fetch_quote, sleep=lambda s: None)
  store.add("AAPL")
  assert "AAPL" in store.refresh_all()

  fail["AAPL"] = True
  assert store.refresh_all() == {}
  assert store.quotes == {}


def test_remove_evicts_cached_quote(storage):
  store = WatchlistStore(storage, fetch_quote=lambda symbol, name: _quote(symbol), sleep=lambda s: None)
  store.add("AAPL")
  store.add("MSFT")
  store.refresh_all()

  store.remove("AAPL")
  assert list(store.quotes) == ["MSFT"]


def test_overlapping_refresh_returns_last_completed_quotes(storage):
  store = None
  nested = {}

  def fetch_quote(symbol, name):
    # Re-entering while the first refresh is still running.
    nested["result"] = store.refresh_all()
    nested["refreshing"] = store.refreshing
    return _quote(symbol)

  store = WatchlistStore(storage, fetch_quote=fetch_quote, sleep=lambda s: None)
  store.add("AAPL")

  quotes = store.refresh_all()

  assert nested == {"result": {}, "refreshing": True}
  assert list(quotes) == ["AAPL"]
  assert not store.refreshing


def test_refresh_without_fetcher_raises(storage):
  with pytest.raises(TypeError):
    WatchlistStore(storage).refresh_all()


def test_async_refresh_leaves_event_loop_running(storage):
  loop_ran = threading.Event()
  waits = []

  def fetch_quote(symbol, name):
    waits.append(loop_ran.wait(timeout=2))
    return _quote(symbol)

  store = WatchlistStore(storage, fetch_quote=fetch_quote, sleep=lambda s: None)
  store.add("AAPL")
  store.add("MSFT")

  async def scenario():
    async def mark_loop_alive():
      await asyncio.sleep(0)
      loop_ran.set()

    marker = asyncio.create_task(mark_loop_alive())
    quotes = await store.refresh_all_async()
    await marker
    return quotes

  quotes = asyncio.run(scenario())

  assert waits == [True, True]
  assert list(quotes) == ["AAPL", "MSFT"]
