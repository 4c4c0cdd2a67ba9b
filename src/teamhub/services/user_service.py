"""User service — accounts, registration and workspace bootstrap.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database. Services flush,
routes commit, so one request is one transaction.

Every new user gets a personal workspace and becomes its owner; that
workspace is their "current workspace" until they pick another one.
The OAuth callback relies on this association to know where to send
the user after login.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from teamhub.auth.password import hash_password
from teamhub.db.models import Account, Member, ProviderEnum, RoleEnum, User, Workspace
from teamhub.errors import ConflictError, NotFoundError


class UserService:
    """Business logic for users and their workspace membership."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Lookups ────────────────────────────────────────

    async def get_user(self, user_id: str) -> User:
        try:
            uid = uuid.UUID(str(user_id))
        except ValueError:
            raise NotFoundError("User not found")
        user = await self.db.get(User, uid)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalars().first()

    async def list_workspaces(self, user_id: str) -> list[Workspace]:
        user = await self.get_user(user_id)
        result = await self.db.execute(
            select(Workspace)
            .join(Member, Member.workspace_id == Workspace.id)
            .where(Member.user_id == user.id)
            .order_by(Workspace.created_at)
        )
        return list(result.scalars().all())

    # ─── Registration ───────────────────────────────────

    async def register_user(self, email: str, name: str, password: str) -> User:
        """Create an email/password user with a personal workspace."""
        email = email.strip().lower()
        if await self.get_by_email(email) is not None:
            raise ConflictError("Email already exists")

        password_hash = await run_in_threadpool(hash_password, password)
        user = User(email=email, name=name, password_hash=password_hash)
        self.db.add(user)
        await self.db.flush()

        self.db.add(
            Account(user_id=user.id, provider=ProviderEnum.EMAIL, provider_id=email)
        )
        await self._create_personal_workspace(user)
        return user

    async def login_or_create_account(
        self,
        provider: str,
        provider_id: str,
        email: str,
        name: Optional[str] = None,
        picture: Optional[str] = None,
    ) -> User:
        """Resolve a federated login to a user, provisioning one if needed.

        Learn: Lookup order is provider account first (stable even if
        the email changes at the provider), then email (links the
        provider to an existing password account), then create.
        """
        result = await self.db.execute(
            select(Account).where(
                Account.provider == provider, Account.provider_id == provider_id
            )
        )
        account = result.scalars().first()
        if account is not None:
            return await self.get_user(str(account.user_id))

        user = await self.get_by_email(email)
        if user is None:
            user = User(
                email=email.strip().lower(),
                name=name or email.split("@", 1)[0],
                profile_picture=picture,
            )
            self.db.add(user)
            await self.db.flush()
            await self._create_personal_workspace(user)
        elif picture and not user.profile_picture:
            user.profile_picture = picture

        self.db.add(Account(user_id=user.id, provider=provider, provider_id=provider_id))
        await self.db.flush()
        return user

    async def record_login(self, user_id: str) -> None:
        user = await self.get_user(user_id)
        user.last_login_at = datetime.now(timezone.utc)
        await self.db.flush()

    async def _create_personal_workspace(self, user: User) -> Workspace:
        workspace = Workspace(
            name="My Workspace",
            description=f"Workspace created for {user.name}",
            owner_id=user.id,
        )
        self.db.add(workspace)
        await self.db.flush()

        self.db.add(Member(user_id=user.id, workspace_id=workspace.id, role=RoleEnum.OWNER))
        user.current_workspace_id = workspace.id
        await self.db.flush()
        return workspace
