"""Workspace API routes (protected)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth.dependencies import require_auth
from teamhub.auth.identity import AuthContext
from teamhub.db.engine import get_db
from teamhub.schemas.user import WorkspaceRead
from teamhub.services.user_service import UserService

router = APIRouter(prefix="/workspace")


@router.get("/all")
async def list_user_workspaces(
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """Workspaces the logged-in user is a member of."""
    workspaces = await UserService(db).list_workspaces(auth.user_id)
    return {
        "message": "User workspaces fetched successfully",
        "workspaces": [
            WorkspaceRead.model_validate(w).model_dump(mode="json") for w in workspaces
        ],
    }
