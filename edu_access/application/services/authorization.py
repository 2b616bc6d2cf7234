"""Single entry point for request authorization."""

from __future__ import annotations

from edu_access.application.services.permission_resolver import (
    PermissionResolver, normalize_action)
from edu_access.domain.entities import AuthorizedActor
from edu_access.domain.exceptions import (AuthenticationException,
                                          ForbiddenError)
from edu_access.shared.context import ActorContext, get_actor_context
from edu_access.shared.logging import get_logger

logger = get_logger(__name__)


class AuthorizationFacade:
    """
    Authorize an actor for an action on a resource.

    Flow: authorize -> perform the domain mutation -> record the change
    with the returned AuthorizedActor. A store failure or timeout
    propagates as StoreUnavailableError and must be treated as a denial.
    """

    def __init__(self, resolver: PermissionResolver):
        self.resolver = resolver

    async def authorize(
        self,
        actor: ActorContext | None,
        resource_name: str,
        action: str,
        *,
        timeout: float | None = None,
    ) -> AuthorizedActor:
        """
        Args:
            actor: Explicit actor, or None for the current request context
            resource_name: Page name, e.g. "teachers"
            action: One of the page actions, e.g. "delete"
            timeout: Deadline in seconds; defaults to the resolver's

        Raises:
            AuthenticationException: no actor identity available
            ForbiddenError: the resolver denied the action
            StoreUnavailableError: the decision could not be made in time
        """
        actor = actor or get_actor_context()
        if not actor.user_id or not actor.role:
            raise AuthenticationException()

        action = normalize_action(action)
        allowed = await self.resolver.can_perform(
            actor.role, resource_name, action, timeout=timeout
        )
        if not allowed:
            logger.info(
                "Denied %s on %s for role %s (user %s)",
                action,
                resource_name,
                actor.role,
                actor.user_id,
            )
            raise ForbiddenError(resource_name, action)

        return AuthorizedActor(
            user_id=actor.user_id,
            display_name=actor.display_name or actor.user_id,
            role=actor.role,
            resource=resource_name,
            action=action,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
        )
