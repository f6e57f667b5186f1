"""
Tests for password reset and email verification tokens
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import insert, select

from app.models import User, UserToken
from app.services.user_tokens import (
    PURPOSE_EMAIL_VERIFICATION,
    PURPOSE_PASSWORD_RESET,
    consume_token,
    hash_token,
    issue_token,
    purge_expired_tokens,
)
from tests.helpers import make_database

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
async def database():
    db = make_database()
    await db.create_schema()
    yield db
    await db.dispose()


@pytest.fixture
async def user_id(database):
    result = await database.query_with_retry(
        insert(User.__table__)
        .values(name="Jordan Lee", email="jordan@example.com", password="x", role="customer", is_active=True)
        .returning(User.__table__.c.id)
    )
    return result.rows[0]["id"]


async def stored_tokens(database):
    result = await database.query_with_retry(select(UserToken.__table__))
    return result.rows


class TestIssue:
    async def test_only_the_hash_is_stored(self, database, user_id):
        token = await issue_token(database, user_id, PURPOSE_PASSWORD_RESET, now=NOW)

        rows = await stored_tokens(database)
        assert len(token) == 64
        assert [r["token_hash"] for r in rows] == [hash_token(token)]
        assert token not in {r["token_hash"] for r in rows}

    async def test_lifetimes(self, database, user_id):
        reset = await issue_token(database, user_id, PURPOSE_PASSWORD_RESET, now=NOW)
        verify = await issue_token(database, user_id, PURPOSE_EMAIL_VERIFICATION, now=NOW)

        assert await consume_token(database, reset, PURPOSE_PASSWORD_RESET, now=NOW + timedelta(minutes=61)) is None
        assert await consume_token(
            database, verify, PURPOSE_EMAIL_VERIFICATION, now=NOW + timedelta(days=6)
        ) is not None

    async def test_other_purpose_is_untouched(self, database, user_id):
        verify = await issue_token(database, user_id, PURPOSE_EMAIL_VERIFICATION, now=NOW)
        await issue_token(database, user_id, PURPOSE_PASSWORD_RESET, now=NOW)

        assert await consume_token(database, verify, PURPOSE_EMAIL_VERIFICATION, now=NOW) is not None


class TestConsume:
    async def test_returns_owner_once(self, database, user_id):
        token = await issue_token(database, user_id, PURPOSE_PASSWORD_RESET, now=NOW)

        spent = await consume_token(database, token, PURPOSE_PASSWORD_RESET, now=NOW)

        assert spent["user_id"] == user_id
        assert await consume_token(database, token, PURPOSE_PASSWORD_RESET, now=NOW) is None

    async def test_wrong_purpose(self, database, user_id):
        token = await issue_token(database, user_id, PURPOSE_EMAIL_VERIFICATION, now=NOW)

        assert await consume_token(database, token, PURPOSE_PASSWORD_RESET, now=NOW) is None

    async def test_unknown_token(self, database, user_id):
        assert await consume_token(database, "f" * 64, PURPOSE_PASSWORD_RESET, now=NOW) is None


class TestPurge:
    async def test_removes_only_expired(self, database, user_id):
        await issue_token(database, user_id, PURPOSE_PASSWORD_RESET, now=NOW - timedelta(hours=2))
        await issue_token(database, user_id, PURPOSE_EMAIL_VERIFICATION, now=NOW)

        assert await purge_expired_tokens(database, now=NOW) == 1
        assert [r["purpose"] for r in await stored_tokens(database)] == [PURPOSE_EMAIL_VERIFICATION]
