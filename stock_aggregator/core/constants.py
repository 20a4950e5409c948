"""
Stock Aggregator Constants

Defaults and fixed values shared across modules.
"""

# =============================================================================
# Query Defaults
# =============================================================================

# History window when the caller omits ?minutes=
DEFAULT_HISTORY_MINUTES: int = 50

# Correlation is pairwise
CORRELATION_TICKER_COUNT: int = 2


# =============================================================================
# Upstream
# =============================================================================

DEFAULT_UPSTREAM_BASE_URL: str = "http://20.244.56.144/evaluation-service"

# Bound on every upstream round-trip (auth, list, fetch)
DEFAULT_UPSTREAM_TIMEOUT_SECONDS: float = 10.0

# Responses that mean the bearer token was rejected
UNAUTHORIZED_STATUS_CODES: frozenset[int] = frozenset({401, 403})

NOT_FOUND_STATUS_CODE: int = 404

# Upstream bodies are truncated to this many characters in errors and logs
MAX_ERROR_BODY_CHARS: int = 200

# Upstream endpoint names (metrics labels)
ENDPOINT_AUTH: str = "auth"
ENDPOINT_STOCKS: str = "stocks"
ENDPOINT_HISTORY: str = "history"
