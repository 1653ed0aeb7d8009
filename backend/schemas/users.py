# Pydantic schemas for user-related requests/responses
# fastapi-users provides the base read/create/update schemas; we add the profile fields

from pydantic import BaseModel
from uuid import UUID
from fastapi_users import schemas
from typing import Optional

from core.principal import UserRole


class UserRead(schemas.BaseUser[UUID]):
    name: Optional[str] = None
    role: UserRole = "seller"


class UserCreate(schemas.BaseUserCreate):
    name: Optional[str] = None


class UserUpdate(schemas.BaseUserUpdate):
    name: Optional[str] = None


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserStatusUpdate(BaseModel):
    is_active: bool
