from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from edu_access.application.services.audit_recorder import (AuditRecorder,
                                                            SessionFactory)
from edu_access.application.services.authorization import AuthorizationFacade
from edu_access.application.services.menu_composer import MenuComposer
from edu_access.application.services.permission_admin import \
    PermissionAdminService
from edu_access.application.services.permission_resolver import \
    PermissionResolver
from edu_access.domain.entities import AuthorizedActor
from edu_access.domain.exceptions import AuthenticationException
from edu_access.infrastructure.cache.redis_cache import CacheService
from edu_access.infrastructure.persistence.database import (
    AsyncSessionLocal, get_db, get_db_transactional, on_commit)
from edu_access.infrastructure.persistence.repositories import \
    SqlPermissionStore
from edu_access.infrastructure.security.jwt import verify_token
from edu_access.shared.context import (ActorContext, get_actor_context,
                                       set_current_actor)

security = HTTPBearer(auto_error=False)

# Global cache instance, connected on app startup
_cache_service: CacheService | None = None


async def get_cache_service() -> CacheService:
    """
    Cache service dependency (singleton)

    Returns the global cache service instance.
    Connected on app startup in main.py
    """
    global _cache_service
    if _cache_service is None:
        _cache_service = CacheService()
    return _cache_service


def set_cache_service(cache_service: CacheService | None):
    """Set global cache service (called on app startup)"""
    global _cache_service
    _cache_service = cache_service


def get_session_factory() -> SessionFactory | None:
    """Session factory for best-effort READ audit entries"""
    return AsyncSessionLocal


async def get_current_actor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> ActorContext:
    """
    Decode the bearer token and publish the actor to the request context.
    Token must contain 'sub' (user id) and 'role'; 'name' is optional.
    """
    if credentials is None:
        raise AuthenticationException()

    payload = verify_token(credentials.credentials)
    set_current_actor(
        user_id=str(payload["sub"]),
        display_name=payload.get("name"),
        role=str(payload["role"]),
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return get_actor_context()


def _build_resolver(db: AsyncSession, cache: CacheService | None) -> PermissionResolver:
    return PermissionResolver(SqlPermissionStore(db), cache=cache)


async def get_permission_resolver(
    db: AsyncSession = Depends(get_db), cache: CacheService = Depends(get_cache_service)
) -> PermissionResolver:
    """Resolver dependency with caching"""
    return _build_resolver(db, cache)


async def get_authorization_facade(
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> AuthorizationFacade:
    return AuthorizationFacade(resolver)


def require_action(resource: str, action: str):
    """
    Dependency factory for route-level authorization.

    Usage:
        @router.delete("/teachers/{id}")
        async def delete_teacher(
            actor: Annotated[AuthorizedActor, Depends(require_action("teachers", "delete"))],
        ):
            ...
    """

    async def action_checker(
        actor: ActorContext = Depends(get_current_actor),
        facade: AuthorizationFacade = Depends(get_authorization_facade),
    ) -> AuthorizedActor:
        return await facade.authorize(actor, resource, action)

    return action_checker


async def get_menu_composer(
    db: AsyncSession = Depends(get_db), cache: CacheService = Depends(get_cache_service)
) -> MenuComposer:
    store = SqlPermissionStore(db)
    return MenuComposer(store, PermissionResolver(store, cache=cache))


async def get_menu_composer_transactional(
    db: AsyncSession = Depends(get_db_transactional),
    cache: CacheService = Depends(get_cache_service),
) -> MenuComposer:
    """Menu composer whose customization writes commit with the request"""
    store = SqlPermissionStore(db)
    return MenuComposer(store, PermissionResolver(store, cache=cache))


async def get_audit_recorder(
    db: AsyncSession = Depends(get_db),
    session_factory: SessionFactory | None = Depends(get_session_factory),
) -> AuditRecorder:
    """Recorder for read endpoints; READ entries use their own session"""
    return AuditRecorder(db, session_factory=session_factory)


async def get_audit_recorder_transactional(
    db: AsyncSession = Depends(get_db_transactional),
) -> AuditRecorder:
    """Recorder whose entries commit or roll back with the request's changes"""
    return AuditRecorder(db)


async def get_permission_admin_service(
    db: AsyncSession = Depends(get_db_transactional),
    cache: CacheService = Depends(get_cache_service),
) -> PermissionAdminService:
    """Admin service whose cache invalidations run only after the request commits"""
    store = SqlPermissionStore(db)
    service = PermissionAdminService(
        store=store,
        recorder=AuditRecorder(db),
        resolver=PermissionResolver(store, cache=cache),
    )
    on_commit(db, service.apply_cache_invalidations)
    return service
