from abc import ABC, abstractmethod
from typing import Any

from market_dashboard.models import Candle, PricePoint, Quote, SearchResult


class QuoteFetcher(ABC):
  """Abstract base class for single-symbol quote lookups."""

  @abstractmethod
  def get_quote(self, **kwargs: Any) -> Quote:
    """Fetches the latest quote for a symbol.

    Args:
      **kwargs: Expects 'symbol'; 'name' is copied onto the quote if given.

    Returns:
      A Quote object

    Raises:
      MarketDataError: If the quote could not be fetched or parsed
    """
    pass


class SearchFetcher(ABC):
  """Abstract base class for symbol search."""

  @abstractmethod
  def search(self, **kwargs: Any) -> list[SearchResult]:
    """Searches symbols matching a free-text query.

    Args:
      **kwargs: Expects 'query'

    Returns:
      List of SearchResult objects, best match first
    """
    pass


class PriceHistoryFetcher(ABC):
  """Abstract base class for close-price history used by area charts."""

  @abstractmethod
  def get_price_history(self, **kwargs: Any) -> list[PricePoint]:
    """Fetches close prices for a symbol over a date range.

    Args:
      **kwargs: Expects 'symbol' and 'date_range' (a DateRange)

    Returns:
      List of PricePoint objects sorted by time
    """
    pass


class ForexSeriesFetcher(ABC):
  """Abstract base class for forex candle series."""

  @abstractmethod
  def get_forex_series(self, **kwargs: Any) -> list[Candle]:
    """Fetches OHLC candles for a currency pair.

    Args:
      **kwargs: Expects 'symbol' and 'interval' (e.g. 1m, 5m, 1h)

    Returns:
      List of Candle objects, oldest first
    """
    pass
