"""Pydantic schemas for users and workspaces (read side only)."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class UserRead(BaseModel):
    """Public view of a user — never includes the password hash."""
    id: uuid.UUID
    email: str
    name: str
    profile_picture: Optional[str] = None
    current_workspace_id: Optional[uuid.UUID] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class WorkspaceRead(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    owner_id: uuid.UUID
    invite_code: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
