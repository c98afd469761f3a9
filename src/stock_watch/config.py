"""Environment-driven settings."""

import os

# Alpha Vantage
ALPHA_VANTAGE_API_KEY = os.environ.get("ALPHA_VANTAGE_API_KEY", "demo")
ALPHA_VANTAGE_BASE_URL = os.environ.get(
    "ALPHA_VANTAGE_BASE_URL", "https://www.alphavantage.co/query"
)
ALPHA_VANTAGE_TIMEOUT = float(os.environ.get("ALPHA_VANTAGE_TIMEOUT", "10"))  # seconds

# Persistent key-value store
STORE_DIR = os.environ.get("STORE_DIR", ".cache/stock_watch")
STORE_MAX_WORKERS = int(os.environ.get("STORE_MAX_WORKERS", "4"))

# Cache TTLs (seconds)
DEFAULT_CACHE_TTL = int(os.environ.get("DEFAULT_CACHE_TTL", "300"))  # 5 minutes
MOVERS_CACHE_TTL = int(os.environ.get("MOVERS_CACHE_TTL", "300"))  # 5 minutes
FUNDAMENTALS_CACHE_TTL = int(os.environ.get("FUNDAMENTALS_CACHE_TTL", "1800"))  # 30 minutes
CHART_CACHE_TTL = int(os.environ.get("CHART_CACHE_TTL", "600"))  # 10 minutes
SEARCH_CACHE_TTL = int(os.environ.get("SEARCH_CACHE_TTL", "900"))  # 15 minutes

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
