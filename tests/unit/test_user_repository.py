"""
User Repository Unit Tests

Covers sign-in upsert, the atomic counter statements and the shared
pagination/transaction helpers, using a mocked AsyncSession.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from brainer.models import User
from brainer.repositories.users import user_repository


def scalars_result(rows):
    result = MagicMock()
    result.scalars.return_value.first.return_value = rows[0] if rows else None
    result.scalars.return_value.all.return_value = rows
    return result


@pytest.mark.asyncio
async def test_upsert_creates_free_user_on_first_sign_in(session):
    session.execute.return_value = scalars_result([])

    user = await user_repository.upsert(session, "uid-1", "a@example.com", "Ada")

    assert isinstance(user, User)
    assert user.id == "uid-1"
    assert user.subscription_plan.value == "free"
    assert user.last_usage_reset is not None
    session.add.assert_called_once_with(user)
    session.commit.assert_awaited_once()
    session.refresh.assert_awaited_once_with(user)


@pytest.mark.asyncio
async def test_upsert_keeps_name_when_not_provided(session):
    existing = User(id="uid-1", email="old@example.com", name="Ada")
    session.execute.return_value = scalars_result([existing])

    user = await user_repository.upsert(session, "uid-1", "new@example.com")

    assert user is existing
    assert user.email == "new@example.com"
    assert user.name == "Ada"
    session.add.assert_not_called()


@pytest.mark.asyncio
async def test_increment_counter_is_a_single_relative_update(session):
    await user_repository.increment_counter(session, "uid-1", "voice_transcriptions")

    stmt = session.execute.call_args.args[0]
    sql = str(stmt.compile(dialect=postgresql.dialect()))
    assert "monthly_voice_transcriptions=(users.monthly_voice_transcriptions +" in sql
    session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_counter_reset_rolls_back_to_savepoint(session):
    session.execute.side_effect = RuntimeError("deadlock detected")

    with pytest.raises(RuntimeError):
        await user_repository.reset_counters(session, "uid-1")

    savepoint = session.begin_nested.return_value
    assert savepoint.__aexit__.await_args.args[0] is RuntimeError
    session.rollback.assert_not_awaited()
    session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_commit_rolls_back_whole_transaction(session):
    session.commit.side_effect = RuntimeError("connection lost")

    with pytest.raises(RuntimeError):
        await user_repository.increment_counter(session, "uid-1", "notes")

    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_page_is_ordered_by_primary_key(session):
    session.execute.return_value = scalars_result([])

    await user_repository.page(session, offset=200, limit=50)

    sql = str(session.execute.call_args.args[0].compile(dialect=postgresql.dialect()))
    assert "ORDER BY users.id" in sql
    assert "LIMIT" in sql and "OFFSET" in sql
