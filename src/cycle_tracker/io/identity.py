"""User identity resolution."""

import getpass
import os
from typing import Any

from .errors import AuthFailure

ENV_USER = "CYCLE_TRACKER_USER"


def _valid_user_id(user_id: str) -> bool:
    return bool(user_id) and user_id not in (".", "..") and "/" not in user_id and "\\" not in user_id


def resolve_user_id(explicit: str | None = None, settings: dict[str, Any] | None = None) -> str:
    """
    Establish the user id for all document operations.

    Order: explicit value, CYCLE_TRACKER_USER, settings["user"], then the OS
    login name. There is no anonymous fallback.

    Raises:
        AuthFailure: If no usable identity can be established
    """
    candidate = explicit or os.environ.get(ENV_USER) or (settings or {}).get("user")
    if not candidate:
        try:
            candidate = getpass.getuser()
        except (OSError, KeyError) as e:
            raise AuthFailure(f"Could not determine the current user: {e}") from e

    candidate = str(candidate).strip()
    if not _valid_user_id(candidate):
        raise AuthFailure(f"Invalid user id: {candidate!r}")
    return candidate
