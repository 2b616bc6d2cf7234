"""Unit tests for PermissionResolver"""

from unittest.mock import AsyncMock

import pytest

from edu_access.application.services.permission_resolver import (
    PermissionResolver, decide)
from edu_access.domain.enums import PageAction
from edu_access.domain.exceptions import (InvalidGrantSpecError,
                                          StoreUnavailableError)

ALL_ACTIONS = PageAction.values()


@pytest.fixture
def resolver(fake_store):
    return PermissionResolver(fake_store, superuser_role="admin", timeout=1.0)


@pytest.fixture
def store_with_pages(fake_store):
    for name in ("students", "teachers", "reports"):
        fake_store.add_page(name)
    return fake_store


class TestDecide:
    """Tests for the pure three-tier decision"""

    @pytest.mark.parametrize("resource_grant", [True, False, None])
    @pytest.mark.parametrize("is_superuser", [True, False])
    def test_action_grant_is_authoritative(self, resource_grant, is_superuser):
        assert decide("delete", False, resource_grant, is_superuser, True) is False
        assert decide("delete", True, resource_grant, is_superuser, True) is True

    def test_view_follows_resource_grant(self):
        assert decide("view", None, True, False, True) is True
        assert decide("view", None, False, False, True) is False
        assert decide("view", None, None, False, True) is False

    def test_non_view_requires_superuser_with_resource_access(self):
        assert decide("export", None, True, True, True) is True
        assert decide("export", None, True, False, True) is False
        assert decide("export", None, None, True, True) is False

    def test_empty_store_falls_back_to_superuser(self):
        assert decide("delete", None, None, True, False) is True
        assert decide("view", None, None, False, False) is False


class TestCanPerform:
    """Tests for can_perform"""

    async def test_explicit_action_deny_overrides_resource_grant(self, resolver, store_with_pages):
        """
        GIVEN a resource grant allowing 'teacher' on 'students'
        AND an explicit action grant denying 'view'
        WHEN checking view
        THEN the action grant wins
        """
        store_with_pages.grant_resource("teacher", "students", True)
        store_with_pages.grant_action("teacher", "students", "view", False)

        assert await resolver.can_perform("teacher", "students", "view") is False

    async def test_explicit_action_allow_without_resource_grant(self, resolver, store_with_pages):
        store_with_pages.grant_resource("teacher", "reports", False)
        store_with_pages.grant_action("teacher", "students", "export", True)

        assert await resolver.can_perform("teacher", "students", "export") is True

    async def test_view_falls_back_to_resource_grant(self, resolver, store_with_pages):
        store_with_pages.grant_resource("teacher", "students", True)

        assert await resolver.can_perform("teacher", "students", "view") is True
        assert await resolver.can_perform("teacher", "teachers", "view") is False

    async def test_non_superuser_cannot_mutate_with_resource_grant_only(
        self, resolver, store_with_pages
    ):
        store_with_pages.grant_resource("director", "students", True)

        for action in ("create", "update", "delete", "export", "bulk_update"):
            assert await resolver.can_perform("director", "students", action) is False

    async def test_superuser_with_resource_grant_passes_every_action(
        self, resolver, store_with_pages
    ):
        store_with_pages.grant_resource("admin", "students", True)

        for action in ALL_ACTIONS:
            assert await resolver.can_perform("admin", "students", action) is True

    async def test_superuser_role_compared_case_insensitively(self, resolver, store_with_pages):
        store_with_pages.grant_resource("Admin", "students", True)

        assert await resolver.can_perform("Admin", "students", "delete") is True

    async def test_superuser_without_resource_grant_is_denied_once_configured(
        self, resolver, store_with_pages
    ):
        store_with_pages.grant_resource("teacher", "students", True)

        assert await resolver.can_perform("admin", "reports", "delete") is False

    async def test_empty_store_denies_everyone_but_superuser(self, resolver, store_with_pages):
        """
        GIVEN no grants at all
        WHEN checking any action
        THEN only the superuser role passes
        """
        for role in ("teacher", "director", "student"):
            for action in ALL_ACTIONS:
                assert await resolver.can_perform(role, "students", action) is False

        for action in ALL_ACTIONS:
            assert await resolver.can_perform("admin", "students", action) is True

    async def test_unknown_action_is_rejected(self, resolver, store_with_pages):
        with pytest.raises(InvalidGrantSpecError):
            await resolver.can_perform("admin", "students", "approve")

        assert store_with_pages.calls == []

    async def test_action_name_is_normalized(self, resolver, store_with_pages):
        store_with_pages.grant_resource("teacher", "students", True)

        assert await resolver.can_perform("teacher", "students", " VIEW ") is True

    async def test_empty_role_is_denied(self, resolver, store_with_pages):
        assert await resolver.can_perform("", "students", "view") is False

    async def test_store_failure_fails_closed(self, resolver, store_with_pages):
        store_with_pages.unavailable = True

        with pytest.raises(StoreUnavailableError):
            await resolver.can_perform("admin", "students", "view")

    async def test_timeout_fails_closed(self, resolver, store_with_pages):
        """
        GIVEN a store slower than the deadline
        WHEN checking permission
        THEN StoreUnavailableError is raised instead of allowing
        """
        store_with_pages.delay = 0.2

        with pytest.raises(StoreUnavailableError) as exc_info:
            await resolver.can_perform("admin", "students", "view", timeout=0.01)

        assert exc_info.value.operation == "can_perform"
        assert exc_info.value.to_dict()["details"] == {}


class TestEffectivePermissions:
    """Tests for get_effective_permissions"""

    async def test_matrix_covers_every_page_and_action(self, resolver, store_with_pages):
        store_with_pages.grant_resource("teacher", "students", True)

        matrix = await resolver.get_effective_permissions("teacher")

        assert set(matrix) == {"students", "teachers", "reports"}
        for actions in matrix.values():
            assert set(actions) == set(ALL_ACTIONS)

    @pytest.mark.parametrize("role", ["admin", "teacher", "director", "nobody"])
    async def test_matrix_matches_single_checks(self, resolver, store_with_pages, role):
        store_with_pages.grant_resource("admin", "students", True)
        store_with_pages.grant_resource("admin", "reports", True)
        store_with_pages.grant_action("admin", "reports", "delete", False)
        store_with_pages.grant_resource("teacher", "students", True)
        store_with_pages.grant_resource("teacher", "teachers", False)
        store_with_pages.grant_action("teacher", "teachers", "view", True)
        store_with_pages.grant_action("teacher", "students", "export", True)
        store_with_pages.grant_resource("director", "reports", True)

        matrix = await resolver.get_effective_permissions(role)

        for page_name, actions in matrix.items():
            for action, allowed in actions.items():
                assert allowed == await resolver.can_perform(role, page_name, action), (
                    f"{role} {action} {page_name}"
                )

    async def test_matrix_on_empty_store_matches_single_checks(self, resolver, store_with_pages):
        admin_matrix = await resolver.get_effective_permissions("admin")
        teacher_matrix = await resolver.get_effective_permissions("teacher")

        assert all(all(actions.values()) for actions in admin_matrix.values())
        assert not any(any(actions.values()) for actions in teacher_matrix.values())

    async def test_matrix_is_cached_per_role(self, store_with_pages):
        cache = AsyncMock()
        cache.is_available = lambda: True
        cache.get.return_value = None
        resolver = PermissionResolver(store_with_pages, cache=cache, superuser_role="admin")

        matrix = await resolver.get_effective_permissions("Teacher")

        cache.get.assert_awaited_once_with("permissions:Teacher")
        cache.set.assert_awaited_once()
        assert cache.set.call_args[0][:2] == ("permissions:Teacher", matrix)

    async def test_cached_matrix_skips_store(self, store_with_pages):
        cached = {"students": {"view": True}}
        cache = AsyncMock()
        cache.is_available = lambda: True
        cache.get.return_value = cached
        resolver = PermissionResolver(store_with_pages, cache=cache)

        assert await resolver.get_effective_permissions("teacher") == cached
        assert store_with_pages.calls == []

    async def test_cached_matrix_not_shared_across_role_case(self, store_with_pages, memory_cache):
        """
        GIVEN 'teacher' holds a grant and its matrix is cached
        WHEN the matrix for 'Teacher' is requested
        THEN it agrees with can_perform for 'Teacher', not with the cached 'teacher' entry
        """
        store_with_pages.grant_resource("teacher", "students", True)
        resolver = PermissionResolver(store_with_pages, cache=memory_cache, superuser_role="admin")

        assert (await resolver.get_effective_permissions("teacher"))["students"]["view"] is True
        matrix = await resolver.get_effective_permissions("Teacher")

        assert matrix["students"]["view"] is False
        assert matrix["students"]["view"] == await resolver.can_perform(
            "Teacher", "students", "view"
        )

    async def test_invalidate_role_cache(self, store_with_pages):
        cache = AsyncMock()
        cache.is_available = lambda: True
        resolver = PermissionResolver(store_with_pages, cache=cache)

        await resolver.invalidate_role_cache("teacher")

        cache.delete.assert_awaited_once_with("permissions:teacher")

    async def test_invalidate_all(self, store_with_pages):
        cache = AsyncMock()
        cache.is_available = lambda: True
        resolver = PermissionResolver(store_with_pages, cache=cache)

        await resolver.invalidate_all()

        cache.delete_pattern.assert_awaited_once_with("permissions:*")

    async def test_store_failure_propagates(self, resolver, store_with_pages):
        store_with_pages.unavailable = True

        with pytest.raises(StoreUnavailableError):
            await resolver.get_effective_permissions("admin")


class TestActionHelpers:
    def test_available_actions(self):
        assert PermissionResolver.get_available_actions() == [
            "view",
            "create",
            "update",
            "delete",
            "export",
            "bulk_update",
        ]

    @pytest.mark.parametrize(
        "page_name,expected",
        [
            ("reports", ["view", "export"]),
            ("Settings", ["view", "update"]),
            ("schools", ["view", "create", "update", "delete", "export"]),
            ("training", ["view"]),
        ],
    )
    def test_default_actions_for_page(self, page_name, expected):
        assert PermissionResolver.get_default_actions_for_page(page_name) == expected
