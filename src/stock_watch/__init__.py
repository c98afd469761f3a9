"""Stock Watch: market movers, fundamentals, charts and wishlists."""

import os


def get_server_version() -> str:
    """Get version with fallback for dev mode."""
    if version := os.environ.get("SERVER_VERSION"):
        return version
    try:
        from importlib.metadata import version as pkg_version

        return pkg_version("stock-watch")
    except Exception:
        return "dev"


SERVER_VERSION = get_server_version()
# Bump when payload shape changes materially (new fields, renamed fields, structure changes)
# v1: Movers, fundamentals, chart payloads with data_provenance freshness block
SCHEMA_VERSION = "1"
