from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone

from pydantic import TypeAdapter, ValidationError

from market_dashboard.config import WATCHLIST_KEY
from market_dashboard.errors import MarketDataError
from market_dashboard.models import Quote, WatchlistItem
from market_dashboard.storage import LocalStorage

_DEFAULT_REFRESH_DELAY = 1.0

_ITEMS_ADAPTER = TypeAdapter(list[WatchlistItem])

QuoteFetchFunc = Callable[..., Quote]


class WatchlistStore:
  """A persisted, deduplicated, insertion-ordered list of followed symbols.

  The list is loaded once on construction and written back in full after
  every add/remove. Quotes live only in memory and are rebuilt by
  `refresh_all`.

  Args:
    storage: Where the list is persisted.
    fetch_quote: Quote fetcher, called as `fetch_quote(symbol=..., name=...)`.
    delay: Seconds to wait between consecutive quote requests.
    sleep: Sleep function, injectable for tests.
    key: Storage key holding the serialized list.
  """

  def __init__(
    self,
    storage: LocalStorage,
    fetch_quote: QuoteFetchFunc | None = None,
    delay: float = _DEFAULT_REFRESH_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    key: str = WATCHLIST_KEY,
  ):
    self._storage = storage
    self._fetch_quote = fetch_quote
    self._delay = delay
    self._sleep = sleep
    self._key = key
    self._refresh_lock = threading.Lock()
    self._items: list[WatchlistItem] = self._load()
    self._quotes: dict[str, Quote] = {}

  # --- Persistence ---

  def _load(self) -> list[WatchlistItem]:
    saved = self._storage.get_item(self._key)
    if not saved:
      return []
    try:
      items = _ITEMS_ADAPTER.validate_json(saved)
    except ValidationError as e:
      logging.error(f"Failed to parse watchlist from local storage, starting empty: {e}")
      return []

    # Keep the first occurrence of each symbol.
    unique: dict[str, WatchlistItem] = {}
    for item in items:
      unique.setdefault(item.symbol, item)
    logging.debug(f"Loaded {len(unique)} watchlist items from local storage.")
    return list(unique.values())

  def _save(self) -> None:
    payload = _ITEMS_ADAPTER.dump_json(self._items, by_alias=True).decode("utf-8")
    self._storage.set_item(self._key, payload)

  # --- List operations ---

  @property
  def items(self) -> list[WatchlistItem]:
    return list(self._items)

  @property
  def quotes(self) -> dict[str, Quote]:
    return dict(self._quotes)

  @property
  def refreshing(self) -> bool:
    return self._refresh_lock.locked()

  def __len__(self) -> int:
    return len(self._items)

  def contains(self, symbol: str) -> bool:
    return any(item.symbol == symbol for item in self._items)

  def add(self, symbol: str, name: str = "") -> bool:
    """Appends a symbol. Returns False (and changes nothing) if it is already listed."""
    if self.contains(symbol):
      logging.debug(f"{symbol} is already on the watchlist.")
      return False

    self._items.append(
      WatchlistItem(symbol=symbol, name=name, added_at=datetime.now(timezone.utc))
    )
    self._save()
    logging.info(f"Added {symbol} to the watchlist.")
    return True

  def remove(self, symbol: str) -> bool:
    """Removes a symbol and its cached quote. Returns False if it was not listed."""
    remaining = [item for item in self._items if item.symbol != symbol]
    self._quotes.pop(symbol, None)
    if len(remaining) == len(self._items):
      return False

    self._items = remaining
    self._save()
    logging.info(f"Removed {symbol} from the watchlist.")
    return True

  # --- Quotes ---

  def refresh_all(self) -> dict[str, Quote]:
    """Fetches one quote per symbol, in list order, pausing between requests.

    A symbol whose fetch fails is logged and left out of the result. The
    result replaces the previous quotes entirely. If another refresh is
    already running, the last completed quotes are returned untouched.

    Blocks the calling thread for the whole refresh. From a coroutine, use
    `refresh_all_async` instead.
    """
    if self._fetch_quote is None:
      raise TypeError("This watchlist was created without a quote fetcher.")

    if not self._refresh_lock.acquire(blocking=False):
      logging.warning("A watchlist refresh is already in progress; skipping.")
      return self.quotes

    try:
      items = list(self._items)
      if not items:
        self._quotes = {}
        return {}

      logging.info(f"Refreshing quotes for {len(items)} watchlist symbols (delay {self._delay}s)")

      new_quotes: dict[str, Quote] = {}
      for i, item in enumerate(items):
        try:
          new_quotes[item.symbol] = self._fetch_quote(symbol=item.symbol, name=item.name)
        except MarketDataError as e:
          logging.error(f"Failed to fetch quote for {item.symbol}: {e}")
        except Exception as e:
          logging.error(
            f"An unexpected error occurred fetching quote for {item.symbol}: {e}",
            exc_info=True,
          )

        # Apply delay between requests, but not after the last one
        if i < len(items) - 1:
          self._sleep(self._delay)

      missing = [item.symbol for item in items if item.symbol not in new_quotes]
      if missing:
        logging.warning(f"Quotes missing for symbols: {', '.join(missing)}")

      # Symbols removed while the refresh was running are not reported.
      self._quotes = {s: q for s, q in new_quotes.items() if self.contains(s)}
      return self.quotes
    finally:
      self._refresh_lock.release()

  async def refresh_all_async(self) -> dict[str, Quote]:
    """Runs `refresh_all` in a worker thread so the event loop keeps ticking."""
    return await asyncio.to_thread(self.refresh_all)
