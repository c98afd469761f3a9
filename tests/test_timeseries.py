"""Tests for time-series parsing and period filtering."""

from datetime import datetime, timedelta

import pandas as pd
import pytest

from stock_watch.utils.timeseries import (
    PERIOD_MAX_POINTS,
    ChartFormatError,
    build_chart_series,
    filter_by_period,
    find_time_series,
    format_date_label,
    frame_to_points,
    parse_time_series,
)

NOW = datetime(2024, 1, 15, 12, 0, 0)


def _bar(close: float) -> dict[str, str]:
    return {
        "1. open": str(close - 1),
        "2. high": str(close + 1),
        "3. low": str(close - 2),
        "4. close": str(close),
        "5. volume": "1000",
    }


def _daily_block(end: datetime, days: int) -> dict[str, dict[str, str]]:
    return {
        (end - timedelta(days=i)).strftime("%Y-%m-%d"): _bar(100.0 + i) for i in range(days)
    }


class TestFindTimeSeries:
    """Tests for series block discovery."""

    def test_daily_preferred(self) -> None:
        payload = {"Weekly Time Series": {"a": 1}, "Time Series (Daily)": {"b": 2}}
        label, block = find_time_series(payload)
        assert label == "Time Series (Daily)"
        assert block == {"b": 2}

    def test_order_of_variants(self) -> None:
        payload = {"Monthly Time Series": {"m": 1}, "Time Series (60min)": {"h": 1}}
        assert find_time_series(payload)[0] == "Time Series (60min)"
        assert find_time_series({"Monthly Time Series": {"m": 1}})[0] == "Monthly Time Series"

    def test_missing_block(self) -> None:
        with pytest.raises(ChartFormatError, match="No time series data found"):
            find_time_series({"Meta Data": {}})


class TestParseTimeSeries:
    """Tests for OHLCV parsing."""

    def test_sorted_ascending_numeric(self) -> None:
        block = {"2024-01-03": _bar(12.5), "2024-01-01": _bar(10.25), "2024-01-02": _bar(11.0)}
        df = parse_time_series(block)

        assert list(df["date"]) == ["2024-01-01", "2024-01-02", "2024-01-03"]
        assert list(df["close"]) == [10.25, 11.0, 12.5]
        assert df["volume"].dtype == "int64"

    def test_intraday_timestamps(self) -> None:
        block = {"2024-01-05 16:00:00": _bar(5.0), "2024-01-05 15:00:00": _bar(4.0)}
        df = parse_time_series(block)
        assert list(df["date"]) == ["2024-01-05 15:00:00", "2024-01-05 16:00:00"]

    def test_missing_field(self) -> None:
        with pytest.raises(ChartFormatError, match="Invalid time series data format"):
            parse_time_series({"2024-01-01": {"4. close": "1.0"}})

    def test_non_numeric(self) -> None:
        bar = _bar(1.0)
        bar["4. close"] = "n/a"
        with pytest.raises(ChartFormatError):
            parse_time_series({"2024-01-01": bar})

    def test_points_are_native_types(self) -> None:
        points = frame_to_points(parse_time_series({"2024-01-01": _bar(10.0)}))
        assert points == [
            {"date": "2024-01-01", "open": 9.0, "high": 11.0, "low": 8.0, "close": 10.0, "volume": 1000}
        ]
        assert type(points[0]["close"]) is float
        assert type(points[0]["volume"]) is int


class TestFilterByPeriod:
    """Tests for cutoff + point cap filtering."""

    def test_week_cutoff(self) -> None:
        df = parse_time_series(_daily_block(NOW, 20))
        filtered = filter_by_period(df, "1W", NOW)
        # 2024-01-09 .. 2024-01-15 fall on or after the cutoff (2024-01-08 12:00)
        assert list(filtered["date"]) == [f"2024-01-{d:02d}" for d in range(9, 16)]

    def test_cap_keeps_most_recent_points(self) -> None:
        df = parse_time_series(_daily_block(NOW, 90))
        filtered = filter_by_period(df, "1M", NOW)
        assert len(filtered) == PERIOD_MAX_POINTS["1M"]
        assert filtered["date"].iloc[-1] == "2024-01-15"
        assert filtered["timestamp"].is_monotonic_increasing

    def test_five_year_window(self) -> None:
        block = {
            "2018-01-31": _bar(1.0),
            "2020-01-31": _bar(2.0),
            "2023-12-29": _bar(3.0),
        }
        filtered = filter_by_period(parse_time_series(block), "5Y", NOW)
        assert list(filtered["date"]) == ["2020-01-31", "2023-12-29"]

    def test_unknown_period_returns_all(self) -> None:
        df = parse_time_series(_daily_block(NOW - timedelta(days=4000), 5))
        assert len(filter_by_period(df, "MAX", NOW)) == 5

    def test_empty_frame(self) -> None:
        df = parse_time_series({})
        assert filter_by_period(df, "1M", NOW).empty


class TestLabels:
    """Tests for per-period label granularity."""

    @pytest.mark.parametrize(
        "period,expected",
        [
            ("1W", "Fri"),
            ("1M", "Jan 5"),
            ("3M", "Jan 5"),
            ("6M", "Jan 5"),
            ("1Y", "Jan 24"),
            ("5Y", "2024"),
        ],
    )
    def test_label(self, period: str, expected: str) -> None:
        assert format_date_label(pd.Timestamp("2024-01-05"), period) == expected


class TestBuildChartSeries:
    """Tests for the full reshape."""

    def test_symbol_fallback_without_metadata(self) -> None:
        payload = {"Weekly Time Series": _daily_block(NOW, 3)}
        chart = build_chart_series(payload, "3M", NOW, symbol="IBM")
        assert chart["symbol"] == "IBM"
        assert chart["last_refreshed"] == NOW.isoformat()
        assert chart["data_points"] == 3
        assert len(chart["labels"]) == 3
