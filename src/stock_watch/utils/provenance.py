"""Freshness metadata and response envelope helpers."""

from datetime import datetime, timezone
from typing import Any

from stock_watch import SCHEMA_VERSION, SERVER_VERSION


def build_meta(operation: str, duration_ms: float | None = None) -> dict[str, Any]:
    """
    Build standard metadata block for responses.

    Args:
        operation: Name of the operation producing this response
        duration_ms: Execution time in milliseconds (optional)
    """
    meta: dict[str, Any] = {
        "server_version": SERVER_VERSION,
        "schema_version": SCHEMA_VERSION,
        "operation": operation,
    }
    if duration_ms is not None:
        meta["duration_ms"] = round(duration_ms, 1)
    return meta


def to_iso(epoch_seconds: float | None) -> str | None:
    """Render an epoch timestamp as ISO-8601 UTC ("...Z")."""
    if epoch_seconds is None:
        return None
    dt = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def build_provenance(
    source: str,
    as_of: datetime | str | None = None,
    is_stale: bool = False,
    **kwargs: Any,
) -> dict[str, Any]:
    """
    Build a data provenance block.

    Args:
        source: Where the data came from (live, cache, stale_cache, fallback)
        as_of: When the data was produced
        is_stale: True when serving past-TTL or built-in fallback data
        **kwargs: Additional provenance fields

    Returns:
        Provenance dict, always with a warnings list
    """
    prov: dict[str, Any] = {"source": source, "is_stale": is_stale}

    if as_of is not None:
        prov["as_of"] = as_of.isoformat() if isinstance(as_of, datetime) else as_of

    prov.update(kwargs)
    prov.setdefault("warnings", [])
    return prov


def build_error_response(
    error_type: str,
    message: str,
    symbol: str | None = None,
) -> dict[str, Any]:
    """
    Build standardized error response.

    Args:
        error_type: invalid_parameters, data_unavailable, invalid_data,
            not_found, duplicate, storage_error
        message: Human-readable error message
        symbol: Symbol that caused the error (if applicable)
    """
    response: dict[str, Any] = {
        "error": True,
        "error_type": error_type,
        "message": message,
        "meta": build_meta("error"),
    }
    if symbol is not None:
        response["symbol"] = symbol
    return response
