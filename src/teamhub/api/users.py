"""User API routes (protected)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth.dependencies import require_auth
from teamhub.auth.identity import AuthContext
from teamhub.db.engine import get_db
from teamhub.schemas.user import UserRead
from teamhub.services.user_service import UserService

router = APIRouter(prefix="/user")


@router.get("/current")
async def get_current_user(
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """The logged-in user's profile."""
    user = await UserService(db).get_user(auth.user_id)
    return {
        "message": "User fetch successfully",
        "user": UserRead.model_validate(user).model_dump(mode="json"),
    }
