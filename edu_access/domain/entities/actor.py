"""
Authorized actor entity.

Returned by the authorization facade once a request has been allowed and
passed unchanged into the audit recorder, so the identity that was checked
is the identity that is recorded.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class AuthorizedActor:
    """Actor identity captured at authorization time."""

    user_id: str
    display_name: str
    role: str
    resource: str | None = None
    action: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    def validate(self) -> bool:
        """An audit trail needs at least an id and a role"""
        if not self.user_id:
            raise ValueError("Actor user_id is required")
        if not self.role:
            raise ValueError("Actor role is required")
        return True
