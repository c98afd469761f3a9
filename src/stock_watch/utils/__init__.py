"""Utility modules."""

from stock_watch.utils.formatting import (
    DataFormatError,
    clean_text,
    format_company_overview,
    format_movers,
    get_company_name,
)
from stock_watch.utils.provenance import build_error_response, build_meta, build_provenance
from stock_watch.utils.timeseries import (
    ChartFormatError,
    build_chart_series,
    filter_by_period,
    parse_time_series,
)
from stock_watch.utils.validators import ChartParams, normalize_symbol

__all__ = [
    "DataFormatError",
    "clean_text",
    "format_company_overview",
    "format_movers",
    "get_company_name",
    "build_error_response",
    "build_meta",
    "build_provenance",
    "ChartFormatError",
    "build_chart_series",
    "filter_by_period",
    "parse_time_series",
    "ChartParams",
    "normalize_symbol",
]
