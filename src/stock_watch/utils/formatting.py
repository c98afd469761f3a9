"""Reshaping of raw upstream payloads into display models."""

import re
from typing import Any


class DataFormatError(ValueError):
    """Raised when a structurally successful response lacks the expected shape."""

    pass


# Local ticker -> display name table. Unknown tickers get a synthesized label.
COMPANY_NAMES: dict[str, str] = {
    "AAPL": "Apple Inc.",
    "TSLA": "Tesla Inc.",
    "MSFT": "Microsoft Corp.",
    "AMZN": "Amazon.com Inc.",
    "GOOGL": "Alphabet Inc.",
    "META": "Meta Platforms Inc.",
    "NFLX": "Netflix Inc.",
    "NVDA": "NVIDIA Corp.",
    "BRK.A": "Berkshire Hathaway",
    "BRK.B": "Berkshire Hathaway",
    "UNH": "UnitedHealth Group",
    "JNJ": "Johnson & Johnson",
    "JPM": "JPMorgan Chase",
    "V": "Visa Inc.",
    "PG": "Procter & Gamble",
    "HD": "Home Depot",
    "MA": "Mastercard Inc.",
    "BAC": "Bank of America",
    "ABBV": "AbbVie Inc.",
    "PFE": "Pfizer Inc.",
    "KO": "Coca-Cola",
    "AVGO": "Broadcom Inc.",
    "PEP": "PepsiCo Inc.",
    "TMO": "Thermo Fisher",
    "COST": "Costco Wholesale",
    "DIS": "Walt Disney",
    "ABT": "Abbott Laboratories",
    "ACN": "Accenture",
    "VZ": "Verizon",
    "ADBE": "Adobe Inc.",
    "DHR": "Danaher Corp.",
    "WMT": "Walmart Inc.",
    "TXN": "Texas Instruments",
    "NEE": "NextEra Energy",
    "BMY": "Bristol Myers",
    "T": "AT&T Inc.",
    "PM": "Philip Morris",
    "RTX": "Raytheon Tech.",
    "LOW": "Lowe's Companies",
    "ORCL": "Oracle Corp.",
    "QCOM": "Qualcomm Inc.",
}

# Upstream OVERVIEW field -> internal field. Pure projection, no computation.
FUNDAMENTALS_FIELDS: tuple[tuple[str, str], ...] = (
    ("Symbol", "symbol"),
    ("Name", "name"),
    ("Description", "description"),
    ("Exchange", "exchange"),
    ("Currency", "currency"),
    ("Country", "country"),
    ("Sector", "sector"),
    ("Industry", "industry"),
    ("MarketCapitalization", "market_cap"),
    ("PERatio", "pe_ratio"),
    ("PEGRatio", "peg_ratio"),
    ("BookValue", "book_value"),
    ("DividendYield", "dividend_yield"),
    ("EPS", "eps"),
    ("RevenuePerShareTTM", "revenue_per_share"),
    ("ProfitMargin", "profit_margin"),
    ("OperatingMarginTTM", "operating_margin"),
    ("ReturnOnAssetsTTM", "return_on_assets"),
    ("ReturnOnEquityTTM", "return_on_equity"),
    ("52WeekHigh", "week52_high"),
    ("52WeekLow", "week52_low"),
    ("50DayMovingAverage", "moving_average_50"),
    ("200DayMovingAverage", "moving_average_200"),
    ("SharesOutstanding", "shares_outstanding"),
    ("Beta", "beta"),
    ("Address", "address"),
)


def get_company_name(ticker: str) -> str:
    """Resolve a display name from the local table, else synthesize one."""
    return COMPANY_NAMES.get(ticker, f"{ticker} Corp.")


def format_currency(value: Any) -> str:
    """Format a numeric (or numeric string) value as '$123.45'."""
    return f"${float(value):.2f}"


def format_mover(entry: dict[str, Any], index: int) -> dict[str, Any]:
    """
    Reshape one raw mover entry.

    Args:
        entry: Raw entry with ticker, price, change_amount, change_percentage, volume
        index: 1-based position within its list

    Returns:
        StockQuote dict
    """
    ticker = entry["ticker"]
    return {
        "id": index,
        "ticker": ticker,
        "name": get_company_name(ticker),
        "price": format_currency(entry["price"]),
        "change": entry.get("change_percentage"),
        "change_amount": format_currency(entry["change_amount"]),
        "volume": entry.get("volume"),
    }


def format_movers(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Reshape the TOP_GAINERS_LOSERS payload.

    Raises:
        DataFormatError: If an entry lacks ticker, price or change_amount
    """
    def _format_list(entries: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
        return [format_mover(entry, i) for i, entry in enumerate(entries or [], start=1)]

    try:
        return {
            "metadata": payload.get("metadata"),
            "last_updated": payload.get("last_updated"),
            "top_gainers": _format_list(payload.get("top_gainers")),
            "top_losers": _format_list(payload.get("top_losers")),
            "most_active": _format_list(payload.get("most_actively_traded")),
        }
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DataFormatError(f"Invalid market movers data format: {e}") from e


def format_company_overview(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Project the OVERVIEW payload onto internal field names.

    Raises:
        DataFormatError: If the payload is empty (unknown symbol)
    """
    if not isinstance(payload, dict) or not payload:
        raise DataFormatError("No company overview data found")
    return {internal: payload.get(upstream) for upstream, internal in FUNDAMENTALS_FIELDS}


def clean_text(text: str | None, max_length: int | None = 100) -> str | None:
    """
    Strip control characters and surrounding whitespace from display text.

    Text longer than max_length is truncated with an ellipsis. Pass
    max_length=None to keep the full text.
    """
    if text is None:
        return None

    text = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", text).strip()
    if max_length is not None and len(text) > max_length:
        text = text[:max_length].rstrip() + "..."
    return text
