"""
Core Module - Constants.

============================================================
RESPONSIBILITY
============================================================
Defines all engine-wide constants.

- Single source of truth for scales and fixed thresholds
- Each constant is documented
- No business logic here

============================================================
"""

# ============================================================
# FIXED-POINT SCALES
# ============================================================

PRECISION = 10 ** 18
"""Fixed-point scale for internal statistical math (1.0 == 10**18)."""

BPS = 10_000
"""Basis-point denominator: scores and thresholds live in [0, BPS]."""

MAX_SCORE = BPS
MIN_SCORE = 0

# ============================================================
# TIME CONSTANTS
# ============================================================

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600

# ============================================================
# RISK CONSTANTS
# ============================================================

HIGH_RISK_THRESHOLD = 7_500
"""Score at or above which a position or pool is considered high risk."""

CACHE_DURATION_SECONDS = 5 * SECONDS_PER_MINUTE
"""Maximum age at which a memoized risk score is still served."""

MIN_VOLATILITY_WINDOW = 2
"""Smallest volatility window that can produce a standard deviation."""

LIQUIDITY_HISTORY_SIZE = 24
"""Capacity of the per-pool liquidity history ring."""

# ============================================================
# NOTIFICATION CONSTANTS
# ============================================================

MAX_NOTIFICATIONS_PER_USER = 100
"""Live notifications a single user can hold before pruning."""

MIN_RISK_LEVEL = 1
MAX_RISK_LEVEL = 4

DEFAULT_NOTIFICATION_PAGE_SIZE = 20

# ============================================================
# ROLES / RESOURCES
# ============================================================

RESOURCE_OWNER = "owner"
RESOURCE_REGISTRY_ADMIN = "registry.admin"
RESOURCE_REGISTRY_CONTROL = "registry.control"
RESOURCE_NOTIFIER = "notifier"
RESOURCE_PRICE_FEEDER = "oracle.price_feeder"


def pool_manager_resource(pool_id: str) -> str:
    """Resource key for the manager allow-list of a pool."""
    return f"pool.manager:{pool_id}"
