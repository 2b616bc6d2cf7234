"""Tests for the post-commit callback helpers"""

from unittest.mock import AsyncMock

from edu_access.infrastructure.persistence.database import (
    discard_after_commit, on_commit, run_after_commit)


async def test_callbacks_run_once_in_order(test_db):
    calls = []

    async def first():
        calls.append("first")

    async def second():
        calls.append("second")

    on_commit(test_db, first)
    on_commit(test_db, second)

    await run_after_commit(test_db)
    await run_after_commit(test_db)

    assert calls == ["first", "second"]


async def test_discarded_callbacks_never_run(test_db):
    callback = AsyncMock()
    on_commit(test_db, callback)

    discard_after_commit(test_db)
    await run_after_commit(test_db)

    callback.assert_not_awaited()
