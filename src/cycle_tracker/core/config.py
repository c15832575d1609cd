"""
Configuration constants for the cycle tracker.

All fixed limits and defaults are centralized here. Runtime settings
(data directory, user, log level) come from engine/config_loader.py.
"""

from typing import Final

# =============================================================================
# PLAN SHAPE
# =============================================================================

MAX_SESSIONS: Final[int] = 30  # Upper bound on sessions per plan
NEW_PLAN_SESSIONS: Final[int] = 7  # Session count of a freshly created plan
MIN_EDITOR_SESSIONS: Final[int] = 1  # The plan editor never goes below one row

DEFAULT_PLAN_NAME: Final[str] = "My Plan"
NEW_PLAN_NAME_TEMPLATE: Final[str] = "New Plan {n}"
FREE_TEXT: Final[str] = "Free"  # Stored for non-rest sessions saved without text

# Generic non-negative integer cap used when coercing document fields
SAFE_INT_MAX: Final[int] = 1000

# =============================================================================
# ATTENDANCE STATUS
# =============================================================================

UNSET: Final[int] = 0
DONE: Final[int] = 1
PARTIAL: Final[int] = 2
MISSED: Final[int] = 3
STATUS_COUNT: Final[int] = 4  # toggle cycles through 0..STATUS_COUNT-1

STATUS_LABELS: Final[dict[int, str]] = {
    UNSET: "unset",
    DONE: "done",
    PARTIAL: "partial",
    MISSED: "missed",
}

# =============================================================================
# CYCLE NAVIGATION
# =============================================================================

NEXT: Final[str] = "next"
PREV: Final[str] = "prev"

# =============================================================================
# CHART
# =============================================================================

CHART_TOTAL_HEIGHT: Final[float] = 200.0  # Positive + negative band height

# =============================================================================
# STORAGE
# =============================================================================

DEFAULT_APP_ID: Final[str] = "default-app-id"
PLANS_COLLECTION: Final[str] = "plans"
TRACKING_COLLECTION: Final[str] = "trackingData"
