"""Time-series parsing, period filtering and chart labels."""

from datetime import datetime, timedelta
from typing import Any

import pandas as pd

from stock_watch.utils.formatting import DataFormatError


class ChartFormatError(DataFormatError):
    """Raised when a time-series payload is missing or malformed."""

    pass


# Known series blocks, checked in this order
TIME_SERIES_LABELS: tuple[str, ...] = (
    "Time Series (Daily)",
    "Time Series (60min)",
    "Weekly Time Series",
    "Monthly Time Series",
)

# Period -> lookback window
PERIOD_DAYS: dict[str, int] = {
    "1W": 7,
    "1M": 30,
    "3M": 90,
    "6M": 180,
    "1Y": 365,
    "5Y": 5 * 365,
}

# Period -> most recent points kept after the cutoff
PERIOD_MAX_POINTS: dict[str, int] = {
    "1W": 30,
    "1M": 30,
    "3M": 60,
    "6M": 120,
    "1Y": 250,
    "5Y": 1000,
}

POINT_COLUMNS = ["date", "open", "high", "low", "close", "volume"]
_PRICE_FIELDS = {
    "open": "1. open",
    "high": "2. high",
    "low": "3. low",
    "close": "4. close",
}
_VOLUME_FIELD = "5. volume"


def find_time_series(payload: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """
    Locate the series block in a raw payload.

    Returns:
        Tuple of (label, block)

    Raises:
        ChartFormatError: If no known block is present
    """
    for label in TIME_SERIES_LABELS:
        block = payload.get(label)
        if block:
            return label, block
    raise ChartFormatError("No time series data found")


def parse_time_series(block: dict[str, Any]) -> pd.DataFrame:
    """
    Parse a raw series block into numeric OHLCV rows.

    Output columns: date (original string), timestamp, open, high, low,
    close, volume. Sorted ascending by timestamp.

    Raises:
        ChartFormatError: If any entry is missing a field or is not numeric
    """
    try:
        rows = []
        for date, values in block.items():
            row = {"date": date, "volume": values[_VOLUME_FIELD]}
            for column, field in _PRICE_FIELDS.items():
                row[column] = values[field]
            rows.append(row)

        df = pd.DataFrame(rows, columns=POINT_COLUMNS)
        df["timestamp"] = pd.to_datetime(df["date"], format="ISO8601")
        for column in _PRICE_FIELDS:
            df[column] = pd.to_numeric(df[column]).astype("float64")
        df["volume"] = pd.to_numeric(df["volume"]).astype("int64")
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ChartFormatError("Invalid time series data format") from e

    return df.sort_values("timestamp", kind="stable").reset_index(drop=True)


def filter_by_period(df: pd.DataFrame, period: str, now: datetime) -> pd.DataFrame:
    """
    Keep rows inside the period window, capped to the period's point limit.

    Order is preserved (ascending). Unrecognized periods return df unchanged.
    """
    days = PERIOD_DAYS.get(period)
    if days is None:
        return df

    cutoff = now - timedelta(days=days)
    filtered = df[df["timestamp"] >= cutoff]
    return filtered.tail(PERIOD_MAX_POINTS[period]).reset_index(drop=True)


def format_date_label(timestamp: datetime, period: str) -> str:
    """
    Display label granularity by period.

    1W -> weekday ("Mon"), 1M/3M/6M -> month and day ("Jan 5"),
    1Y -> month and 2-digit year ("Jan 24"), 5Y -> year ("2024").
    """
    if period == "1W":
        return timestamp.strftime("%a")
    if period == "1Y":
        return timestamp.strftime("%b %y")
    if period == "5Y":
        return str(timestamp.year)
    return f"{timestamp.strftime('%b')} {timestamp.day}"


def frame_to_points(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Convert to JSON-ready point dicts (native Python numbers)."""
    return df[POINT_COLUMNS].to_dict("records")


def build_chart_series(
    payload: dict[str, Any],
    period: str,
    now: datetime,
    symbol: str | None = None,
) -> dict[str, Any]:
    """
    Reshape a raw time-series response into the chart payload.

    Args:
        payload: Raw API response
        period: Chart period (1W, 1M, 3M, 6M, 1Y, 5Y)
        now: Reference time for the period cutoff
        symbol: Fallback symbol when the payload has no metadata

    Returns:
        Dict with symbol, last_refreshed, period, labels, raw_data, data_points
    """
    _, block = find_time_series(payload)
    df = filter_by_period(parse_time_series(block), period, now)

    meta = payload.get("Meta Data") or {}
    return {
        "symbol": meta.get("2. Symbol", symbol),
        "last_refreshed": meta.get("3. Last Refreshed", now.isoformat()),
        "period": period,
        "labels": [format_date_label(ts, period) for ts in df["timestamp"]],
        "raw_data": frame_to_points(df),
        "data_points": len(df),
    }
