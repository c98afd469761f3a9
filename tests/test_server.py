"""Tests for response envelopes and error mapping."""

import json

import pytest

from stock_watch import SCHEMA_VERSION
from stock_watch.container import create_services
from stock_watch.server import _error, _fetch_response
from stock_watch.services.stock_data import (
    SOURCE_FALLBACK,
    SOURCE_LIVE,
    FetchResult,
    MarketDataUnavailableError,
)
from stock_watch.services.wishlists import (
    DuplicateStockError,
    WishlistNotFoundError,
    WishlistPersistenceError,
)
from stock_watch.utils.formatting import DataFormatError
from stock_watch.utils.provenance import build_meta, build_provenance, to_iso
from stock_watch.utils.timeseries import ChartFormatError


class TestProvenance:
    """Tests for provenance helpers."""

    def test_meta(self) -> None:
        meta = build_meta("get_chart_data", 12.345)
        assert meta["schema_version"] == SCHEMA_VERSION
        assert meta["operation"] == "get_chart_data"
        assert meta["duration_ms"] == 12.3

    def test_to_iso(self) -> None:
        assert to_iso(0) == "1970-01-01T00:00:00Z"
        assert to_iso(None) is None

    def test_provenance_defaults(self) -> None:
        prov = build_provenance(source="live")
        assert prov == {"source": "live", "is_stale": False, "warnings": []}

    def test_fetch_result_provenance(self) -> None:
        result = FetchResult({"x": 1}, SOURCE_FALLBACK, error="HTTP error! status: 503")
        prov = result.to_provenance()
        assert prov["is_stale"] is True
        assert prov["warnings"] == ["HTTP error! status: 503"]
        assert "as_of" not in prov


class TestErrorMapping:
    """Tests for exception to error_type mapping."""

    @pytest.mark.parametrize(
        "error,error_type",
        [
            (MarketDataUnavailableError("down", cache_key="k"), "data_unavailable"),
            (DataFormatError("bad"), "invalid_data"),
            (ChartFormatError("No time series data found"), "invalid_data"),
            (WishlistNotFoundError("1"), "not_found"),
            (DuplicateStockError("1", "AAPL"), "duplicate"),
            (WishlistPersistenceError("disk"), "storage_error"),
            (ValueError("Symbol is required"), "invalid_parameters"),
            (RuntimeError("boom"), "internal_error"),
        ],
    )
    def test_error_type(self, error: Exception, error_type: str) -> None:
        body = json.loads(_error(error, symbol="AAPL"))
        assert body["error"] is True
        assert body["error_type"] == error_type
        assert body["message"] == str(error)
        assert body["symbol"] == "AAPL"

    def test_fetch_response_envelope(self) -> None:
        body = json.loads(_fetch_response("get_market_movers", FetchResult([1], SOURCE_LIVE), 0.0))
        assert body["meta"]["operation"] == "get_market_movers"
        assert body["data_provenance"]["source"] == "live"
        assert body["data"] == [1]


def test_create_services_shares_one_store(tmp_path) -> None:
    services = create_services(store_dir=str(tmp_path), api_key="test")
    try:
        assert services.cache.store is services.store
        assert services.wishlists.store is services.store
        assert services.stocks.cache is services.cache
        assert services.search.cache is services.cache
    finally:
        services.close()
