"""Email/password credential verification.

Learn: The verifier answers one question, "does this email/password pair
match a stored credential?", and it answers it the same way for every
kind of "no": unknown email, OAuth-only account, disabled account and
wrong password all raise InvalidCredentials after the same amount of
bcrypt work. A store outage is a different answer (UpstreamFailure), so
it can never be mistaken for a bad password.
"""

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from teamhub.auth.identity import Identity
from teamhub.auth.password import dummy_hash, verify_password
from teamhub.db.models import User
from teamhub.errors import InvalidCredentials, UpstreamFailure


async def verify_credentials(db: AsyncSession, email: str, password: str) -> Identity:
    """Return the matching Identity or raise InvalidCredentials."""
    try:
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        user = result.scalars().first()
    except (SQLAlchemyError, OSError) as e:
        raise UpstreamFailure() from e

    stored_hash = user.password_hash if user is not None else None
    # bcrypt is CPU-bound; keep it off the event loop
    matched = await run_in_threadpool(
        verify_password, password, stored_hash or dummy_hash()
    )

    if user is None or not stored_hash or not user.is_active or not matched:
        raise InvalidCredentials()

    return Identity(id=str(user.id), email=user.email)
