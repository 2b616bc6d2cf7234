"""
Request context management using contextvars.

Holds the identity of whoever is acting in the current request so the
authorization facade can resolve it without threading it through every
call. Values are set by the HTTP layer after the bearer token is decoded
and are automatically scoped to the current async task.

Usage:
    set_current_actor(user_id="42", display_name="Sok Dara", role="teacher",
                      ip_address="10.0.0.5", user_agent="Mozilla/5.0")

    actor = get_actor_context()  # ActorContext snapshot, fields may be None
"""

from contextvars import ContextVar
from dataclasses import dataclass

_current_user_id: ContextVar[str | None] = ContextVar("current_user_id", default=None)
_current_display_name: ContextVar[str | None] = ContextVar("current_display_name", default=None)
_current_role: ContextVar[str | None] = ContextVar("current_role", default=None)
_current_ip_address: ContextVar[str | None] = ContextVar("current_ip_address", default=None)
_current_user_agent: ContextVar[str | None] = ContextVar("current_user_agent", default=None)


@dataclass(frozen=True)
class ActorContext:
    """Immutable snapshot of the unverified actor supplied by the session layer."""

    user_id: str | None
    display_name: str | None = None
    role: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


def set_current_actor(
    user_id: str | None,
    display_name: str | None = None,
    role: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """Set the current actor for this request."""
    _current_user_id.set(user_id)
    _current_display_name.set(display_name)
    _current_role.set(role)
    _current_ip_address.set(ip_address)
    _current_user_agent.set(user_agent)


def clear_current_actor() -> None:
    """Clear the current actor context."""
    set_current_actor(None)


def get_actor_context() -> ActorContext:
    """Get a snapshot of the current actor context."""
    return ActorContext(
        user_id=_current_user_id.get(),
        display_name=_current_display_name.get(),
        role=_current_role.get(),
        ip_address=_current_ip_address.get(),
        user_agent=_current_user_agent.get(),
    )
