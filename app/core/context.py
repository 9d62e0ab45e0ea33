"""
Request context using contextvars.

Holds the request id for log correlation and the authenticated caller.
Subscription updates read the caller's role from here to confirm a
SUPERADMIN is acting.
"""

import contextvars
from typing import Any

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_user_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "user_id", default=None
)
_role: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "role", default=None
)

_VARS = {
    "request_id": _request_id,
    "user_id": _user_id,
    "role": _role,
}


def set_request_context(**values: str | None) -> None:
    """
    Set context values by name; None values are skipped.

    Usage:
        set_request_context(user_id=user.id, role=user.role_name)
    """
    for key, value in values.items():
        if value is not None:
            _VARS[key].set(value)


def get_request_context() -> dict[str, Any]:
    """Values that are set, keyed by name."""
    return {key: var.get() for key, var in _VARS.items() if var.get() is not None}


def get_current_role() -> str | None:
    return _role.get()


def clear_request_context() -> None:
    for var in _VARS.values():
        var.set(None)
