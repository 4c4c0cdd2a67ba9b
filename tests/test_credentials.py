"""Credential verifier tests.

Learn: Covers the happy path, every flavor of "no", and the two
properties that matter for security: unknown emails cost the same bcrypt
work as wrong passwords, and a store outage is never reported as bad
credentials.
"""

import pytest
from sqlalchemy.exc import OperationalError

from teamhub.auth import credentials
from teamhub.auth.credentials import verify_credentials
from teamhub.auth.identity import Identity
from teamhub.auth.password import dummy_hash, hash_password
from teamhub.db.models import User
from teamhub.errors import InvalidCredentials, UpstreamFailure
from teamhub.services.user_service import UserService


@pytest.mark.asyncio
async def test_valid_credentials_return_identity(db_session):
    user = await UserService(db_session).register_user("a@b.com", "Ann", "correct")
    await db_session.commit()

    identity = await verify_credentials(db_session, "a@b.com", "correct")
    assert identity == Identity(id=str(user.id), email="a@b.com")


@pytest.mark.asyncio
async def test_email_match_is_case_insensitive(db_session):
    await UserService(db_session).register_user("mixed@example.com", "Mix", "password_123")
    await db_session.commit()

    identity = await verify_credentials(db_session, "  Mixed@Example.COM ", "password_123")
    assert identity.email == "mixed@example.com"


@pytest.mark.asyncio
async def test_wrong_password_rejected(db_session):
    await UserService(db_session).register_user("a@b.com", "Ann", "correct")
    await db_session.commit()

    with pytest.raises(InvalidCredentials) as exc:
        await verify_credentials(db_session, "a@b.com", "wrong")
    assert exc.value.message == "Invalid email or password"


@pytest.mark.asyncio
async def test_unknown_email_rejected_with_same_error(db_session):
    with pytest.raises(InvalidCredentials) as exc:
        await verify_credentials(db_session, "nobody@example.com", "whatever")
    assert exc.value.message == "Invalid email or password"
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_oauth_only_account_rejected(db_session):
    db_session.add(User(email="oauth@example.com", name="OAuth", password_hash=None))
    await db_session.commit()

    with pytest.raises(InvalidCredentials):
        await verify_credentials(db_session, "oauth@example.com", "anything")


@pytest.mark.asyncio
async def test_inactive_account_rejected(db_session):
    db_session.add(
        User(
            email="off@example.com",
            name="Off",
            password_hash=hash_password("password_123"),
            is_active=False,
        )
    )
    await db_session.commit()

    with pytest.raises(InvalidCredentials):
        await verify_credentials(db_session, "off@example.com", "password_123")


@pytest.mark.asyncio
async def test_unknown_email_does_the_same_bcrypt_work(db_session, monkeypatch):
    """No email-enumeration oracle: both failure paths run one bcrypt check."""
    await UserService(db_session).register_user("a@b.com", "Ann", "correct")
    await db_session.commit()

    checked_hashes = []
    real_verify = credentials.verify_password

    def counting_verify(password, password_hash):
        checked_hashes.append(password_hash)
        return real_verify(password, password_hash)

    monkeypatch.setattr(credentials, "verify_password", counting_verify)

    with pytest.raises(InvalidCredentials):
        await verify_credentials(db_session, "a@b.com", "wrong")
    with pytest.raises(InvalidCredentials):
        await verify_credentials(db_session, "ghost@b.com", "wrong")

    assert len(checked_hashes) == 2
    # Both are real bcrypt hashes of the same cost
    assert all(h.startswith("$2") for h in checked_hashes)
    assert checked_hashes[0][:7] == checked_hashes[1][:7]


@pytest.mark.asyncio
async def test_timing_hash_is_built_at_startup(cookie_app):
    """The first unknown-email login must not also pay for building the hash."""
    dummy_hash.cache_clear()
    async with cookie_app.router.lifespan_context(cookie_app):
        assert dummy_hash.cache_info().currsize == 1


class _BrokenSession:
    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT users", {}, Exception("connection refused"))


@pytest.mark.asyncio
async def test_store_failure_is_upstream_failure_not_invalid_credentials():
    with pytest.raises(UpstreamFailure) as exc:
        await verify_credentials(_BrokenSession(), "a@b.com", "correct")
    assert not isinstance(exc.value, InvalidCredentials)
    assert exc.value.status_code == 500
