from __future__ import annotations

from market_dashboard.models import DateRange, PricePoint

# Which series to request for each range, and how many trailing points to keep.
# None keeps the whole series.
HISTORY_REQUESTS: dict[DateRange, tuple[str, int | None]] = {
  DateRange.D1: ("intraday", 78),  # 5min bars in a trading day
  DateRange.W1: ("daily", 7),
  DateRange.M1: ("daily", 30),
  DateRange.M3: ("weekly", 13),
  DateRange.M6: ("weekly", 26),
  DateRange.Y1: ("weekly", 52),
  DateRange.ALL: ("monthly", None),
}


def series_type_for(date_range: DateRange) -> str:
  return HISTORY_REQUESTS[date_range][0]


def trim_history(points: list[PricePoint], date_range: DateRange) -> list[PricePoint]:
  """Keeps the trailing window of a sorted history that belongs to the range."""
  _, keep = HISTORY_REQUESTS[date_range]
  if keep is None:
    return points
  return points[-keep:]
