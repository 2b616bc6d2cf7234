"""
Permission resolution.

Answers "can role R perform action A on page P?" with a three-tier
fallback:

    1. An action grant (role, page, action) is authoritative, including an
       explicit deny.
    2. Without one, `view` follows the resource grant (role, page).
    3. Without one, any other action is allowed only for the superuser role
       holding resource-tier access.
    4. On a store with no grants at all, only the superuser role passes.

The single check and the bulk matrix share `decide()` so they can never
disagree. Store failures and timeouts raise StoreUnavailableError, which
callers treat as a denial.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from edu_access.application.interfaces.permission_store import IPermissionStore
from edu_access.domain.enums import PageAction
from edu_access.domain.exceptions import InvalidGrantSpecError, StoreUnavailableError
from edu_access.infrastructure.cache.redis_cache import CacheService, permissions_key
from edu_access.infrastructure.config.settings import get_settings
from edu_access.shared.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

PermissionMatrix = dict[str, dict[str, bool]]

_DEFAULT_PAGE_ACTIONS: dict[str, list[str]] = {
    "schools": ["view", "create", "update", "delete", "export"],
    "users": ["view", "create", "update", "delete", "export"],
    "observations": ["view", "create", "update", "delete", "export"],
    "reports": ["view", "export"],
    "settings": ["view", "update"],
}


def decide(
    action: str,
    action_grant: bool | None,
    resource_grant: bool | None,
    is_superuser: bool,
    store_has_grants: bool,
) -> bool:
    """Pure three-tier decision over already-loaded grant values."""
    if action_grant is not None:
        return action_grant
    if not store_has_grants:
        return is_superuser
    if action == PageAction.VIEW.value:
        return bool(resource_grant)
    return bool(resource_grant) and is_superuser


def normalize_action(action: str) -> str:
    """Validate an action name, returning its canonical value"""
    if isinstance(action, PageAction):
        return action.value
    candidate = (action or "").strip().lower()
    if candidate not in PageAction.values():
        raise InvalidGrantSpecError(
            f"Unknown action '{action}'. Expected one of: {', '.join(PageAction.values())}",
            action=action,
        )
    return candidate


class PermissionResolver:
    """Three-tier permission checks over an injected permission store."""

    def __init__(
        self,
        store: IPermissionStore,
        cache: CacheService | None = None,
        superuser_role: str | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self.store = store
        self.cache = cache
        self.superuser_role = (superuser_role or settings.superuser_role).lower()
        self.timeout = timeout if timeout is not None else settings.authorization_timeout_seconds
        self.cache_ttl = settings.cache_ttl_permissions

    def is_superuser(self, role: str) -> bool:
        return bool(role) and role.lower() == self.superuser_role

    async def can_perform(
        self, role: str, resource_name: str, action: str, *, timeout: float | None = None
    ) -> bool:
        """
        Decide whether `role` may perform `action` on `resource_name`.

        Raises:
            InvalidGrantSpecError: action is not one of the known page actions
            StoreUnavailableError: the store failed or the deadline passed
        """
        action = normalize_action(action)
        if not role:
            return False
        return await self._bounded(
            self._resolve(role, resource_name, action), "can_perform", timeout
        )

    async def _resolve(self, role: str, resource_name: str, action: str) -> bool:
        action_grant = await self.store.get_action_grant(role, resource_name, action)
        if action_grant is not None:
            return action_grant

        resource_grant = await self.store.get_resource_grant(role, resource_name)
        store_has_grants = True
        if resource_grant is None:
            store_has_grants = await self.store.has_any_grants()

        allowed = decide(
            action, None, resource_grant, self.is_superuser(role), store_has_grants
        )
        if not store_has_grants:
            logger.debug(f"No grants configured; superuser fallback for role '{role}'")
        return allowed

    async def get_effective_permissions(
        self, role: str, *, timeout: float | None = None
    ) -> PermissionMatrix:
        """
        Capability matrix {page_name: {action: allowed}} for every page and
        every action. Cached per role when a cache is configured.
        """
        cache_key = permissions_key(role)
        if self.cache and self.cache.is_available():
            cached = await self.cache.get(cache_key)
            if cached is not None:
                return cached

        matrix = await self._bounded(
            self._build_matrix(role), "get_effective_permissions", timeout
        )

        if self.cache and self.cache.is_available():
            await self.cache.set(cache_key, matrix, ttl=self.cache_ttl)
        return matrix

    async def _build_matrix(self, role: str) -> PermissionMatrix:
        pages = await self.store.list_pages()
        resource_grants = await self.store.list_resource_grants(role)
        action_grants = await self.store.list_action_grants(role)
        store_has_grants = bool(resource_grants or action_grants) or await self.store.has_any_grants()
        is_superuser = self.is_superuser(role)

        matrix: PermissionMatrix = {}
        for page in pages:
            page_actions = action_grants.get(page.page_name, {})
            matrix[page.page_name] = {
                action: decide(
                    action,
                    page_actions.get(action),
                    resource_grants.get(page.page_name),
                    is_superuser,
                    store_has_grants,
                )
                for action in PageAction.values()
            }
        return matrix

    async def invalidate_role_cache(self, role: str) -> None:
        """Drop a role's cached matrix after its grants change"""
        if self.cache and self.cache.is_available():
            await self.cache.delete(permissions_key(role))

    async def invalidate_all(self) -> None:
        if self.cache and self.cache.is_available():
            await self.cache.delete_pattern(f"{permissions_key('')}*")

    @staticmethod
    def get_available_actions() -> list[str]:
        return PageAction.values()

    @staticmethod
    def get_default_actions_for_page(page_name: str) -> list[str]:
        """Suggested actions for a page, e.g. 'reports' -> ['view', 'export']"""
        normalized = "_".join(page_name.lower().split())
        return list(_DEFAULT_PAGE_ACTIONS.get(normalized, ["view"]))

    async def _bounded(self, awaitable: Awaitable[T], operation: str, timeout: float | None) -> T:
        deadline = timeout if timeout is not None else self.timeout
        try:
            return await asyncio.wait_for(awaitable, timeout=deadline)
        except TimeoutError as e:
            logger.error(f"Permission store {operation} timed out after {deadline}s")
            raise StoreUnavailableError(operation, "timeout") from e
