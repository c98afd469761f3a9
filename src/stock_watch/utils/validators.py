"""Request parameter normalization."""

from dataclasses import dataclass
from typing import Any

from stock_watch.data import alpha_vantage_client as av

VALID_PERIODS = ("1W", "1M", "3M", "6M", "1Y", "5Y")
DEFAULT_PERIOD = "1M"


def normalize_symbol(symbol: str) -> str:
    """Uppercase and strip a ticker symbol."""
    return symbol.upper().strip()


@dataclass(frozen=True)
class ChartParams:
    """Immutable chart request. Used for cache key + endpoint selection."""

    symbol: str
    period: str = DEFAULT_PERIOD

    def __post_init__(self) -> None:
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Symbol is required")
        object.__setattr__(self, "symbol", normalize_symbol(self.symbol))
        # Unknown periods are kept as-is; they fetch the default series unfiltered
        object.__setattr__(self, "period", self.period.upper().strip())

    @property
    def is_known_period(self) -> bool:
        return self.period in VALID_PERIODS

    def cache_key(self) -> str:
        return f"chart_{self.symbol}_{self.period}"

    def endpoint(self) -> tuple[str, dict[str, Any]]:
        """
        Endpoint id and query parameters for this period.

        Short periods read the compact daily series, medium periods the
        weekly series and 5Y the monthly series.
        """
        if self.period in ("3M", "6M", "1Y"):
            return av.TIME_SERIES_WEEKLY, {"symbol": self.symbol}
        if self.period == "5Y":
            return av.TIME_SERIES_MONTHLY, {"symbol": self.symbol}
        return av.TIME_SERIES_DAILY, {"symbol": self.symbol, "outputsize": "compact"}
