import pytest

from market_dashboard.errors import DataNotFoundError, UpstreamError
from market_dashboard.history import trim_history
from market_dashboard.models import DateRange, PricePoint
from market_dashboard.utils.parsers import (
  parse_best_matches,
  parse_float,
  parse_forex_series,
  parse_global_quote,
  parse_price_history,
  parse_timestamp,
)

GLOBAL_QUOTE = {
  "Global Quote": {
    "01. symbol": "IBM",
    "02. open": "181.2000",
    "03. high": "183.5000",
    "04. low": "180.1000",
    "05. price": "182.9000",
    "06. volume": "3521477",
    "07. latest trading day": "2024-05-10",
    "08. previous close": "180.7000",
    "09. change": "2.2000",
    "10. change percent": "1.2175%",
  }
}


def test_parse_global_quote():
  quote = parse_global_quote(GLOBAL_QUOTE, "IBM", name="IBM Corp")

  assert quote.symbol == "IBM"
  assert quote.name == "IBM Corp"
  assert quote.price == 182.9
  assert quote.change_percent == pytest.approx(1.2175)
  assert quote.volume == 3521477
  assert quote.previous_close == 180.7
  assert quote.latest_trading_day == "2024-05-10"


def test_parse_global_quote_defaults_missing_fields_to_zero():
  quote = parse_global_quote({"Global Quote": {"05. price": "n/a"}}, "XYZ")
  assert quote.symbol == "XYZ"
  assert quote.price == 0.0
  assert quote.volume == 0
  assert quote.latest_trading_day == ""


@pytest.mark.parametrize("payload", [{}, {"Global Quote": {}}])
def test_empty_quote_is_data_not_found(payload):
  with pytest.raises(DataNotFoundError):
    parse_global_quote(payload, "IBM")


@pytest.mark.parametrize(
  "payload",
  [
    {"error": "API limit reached"},
    {"Note": "Thank you for using Alpha Vantage! Our standard API call frequency is 5 calls per minute."},
    {"Error Message": "Invalid API call."},
    ["not", "a", "dict"],
  ],
)
def test_error_payloads_raise_upstream_error(payload):
  with pytest.raises(UpstreamError):
    parse_global_quote(payload, "IBM")


def test_parse_best_matches():
  payload = {
    "bestMatches": [
      {
        "1. symbol": "TSCO.LON",
        "2. name": "Tesco PLC",
        "3. type": "Equity",
        "4. region": "United Kingdom",
        "8. currency": "GBX",
      },
      {"2. name": "missing symbol"},
    ]
  }
  results = parse_best_matches(payload, "tesco")

  assert len(results) == 1
  assert results[0].symbol == "TSCO.LON"
  assert results[0].currency == "GBX"


def test_no_matches_is_data_not_found():
  with pytest.raises(DataNotFoundError, match="zzzz"):
    parse_best_matches({"bestMatches": []}, "zzzz")


def test_parse_price_history_sorts_and_drops_bad_points():
  series = {
    "2024-05-10": {"4. close": "182.90"},
    "2024-05-08": {"4. close": "180.00"},
    "2024-05-09": {"4. close": "0"},
    "not-a-date": {"4. close": "1.0"},
  }
  points = parse_price_history(series, "daily")

  assert [p.value for p in points] == [180.0, 182.9]
  assert points[0].time < points[1].time


def test_parse_price_history_intraday_timestamps():
  points = parse_price_history(
    {"2024-05-10 16:00:00": {"4. close": "1"}, "2024-05-10 15:55:00": {"4. close": "2"}},
    "intraday",
  )
  assert points[1].time - points[0].time == 300


def test_empty_history_is_data_not_found():
  with pytest.raises(DataNotFoundError):
    parse_price_history(None, "weekly")


def test_trim_history_keeps_trailing_window():
  points = [PricePoint(time=i, value=1.0) for i in range(100)]
  assert len(trim_history(points, DateRange.W1)) == 7
  assert trim_history(points, DateRange.M3)[-1].time == 99
  assert len(trim_history(points, DateRange.ALL)) == 100


def test_parse_forex_series_skips_invalid_rows():
  payload = {
    "data": [
      {"time": "2024-05-10T10:01:00Z", "open": 1.1, "high": 1.2, "low": 1.0, "close": 1.15},
      {"time": "2024-05-10T10:00:00Z", "open": 1.1, "high": 1.2, "low": 1.0, "close": 1.12},
      {"time": "2024-05-10T10:02:00Z", "open": 1.1, "high": 1.0, "low": 1.05, "close": 1.15},
      {"open": 1.1},
    ]
  }
  candles = parse_forex_series(payload, "EUR/USD")

  assert [c.close for c in candles] == [1.12, 1.15]


def test_parse_forex_series_without_data_is_empty():
  assert parse_forex_series({}, "EUR/USD") == []


def test_parse_helpers():
  assert parse_float("1.5%") == 1.5
  assert parse_float(None) == 0.0
  assert parse_float("nan") == 0.0
  assert parse_timestamp("1970-01-01T00:01:00Z") == 60
  assert parse_timestamp("1970-01-02") == 86400
  assert parse_timestamp(1234) == 1234
