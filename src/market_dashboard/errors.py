class MarketDataError(Exception):
  """Base class for every failure surfaced by the dashboard core."""

  pass


class TransportError(MarketDataError):
  """The upstream service could not be reached or answered with a bad status."""

  pass


class UpstreamError(MarketDataError):
  """The upstream service answered with an error payload."""

  pass


class DataNotFoundError(MarketDataError):
  """The upstream payload is missing the data shape we expected."""

  pass


class ConfigurationError(MarketDataError):
  pass


class APIKeyNotFoundError(ConfigurationError):
  """Custom exception for missing API keys."""

  pass
