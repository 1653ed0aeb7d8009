import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import require_roles
from core.principal import ADMIN_ROLES, SUPER_ADMIN, Principal
from db.database import get_async_session, User
from schemas.users import UserRead, UserRoleUpdate, UserStatusUpdate

logger = logging.getLogger(__name__)

# Role and status management; login/register/me come from fastapi-users (see main.py)
router = APIRouter()


async def _get_user_or_404(db: AsyncSession, user_id: UUID) -> User:
    res = await db.execute(select(User).where(User.id == user_id))
    u = res.scalar_one_or_none()
    if not u:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return u


@router.get("/", response_model=List[UserRead])
async def list_users(
    principal: Principal = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(select(User).order_by(func.lower(User.email).asc()))
    return [UserRead.model_validate(u, from_attributes=True) for u in res.scalars().all()]


@router.patch("/{user_id}/role", response_model=UserRead)
async def update_user_role(
    user_id: UUID,
    payload: UserRoleUpdate,
    principal: Principal = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_async_session),
):
    u = await _get_user_or_404(db, user_id)
    touches_super_admin = payload.role == SUPER_ADMIN or u.role == SUPER_ADMIN or u.is_superuser
    if touches_super_admin and principal.role != SUPER_ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only a super admin can change super admin access")
    if u.id == principal.user_id and payload.role != principal.role:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role")

    u.role = payload.role
    u.is_superuser = payload.role == SUPER_ADMIN
    await db.commit()
    await db.refresh(u)
    logger.info("User %s role set to %s by %s", u.id, u.role, principal.user_id)
    return UserRead.model_validate(u, from_attributes=True)


@router.patch("/{user_id}/status", response_model=UserRead)
async def update_user_status(
    user_id: UUID,
    payload: UserStatusUpdate,
    principal: Principal = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_async_session),
):
    u = await _get_user_or_404(db, user_id)
    if u.id == principal.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate yourself")
    if (u.role == SUPER_ADMIN or u.is_superuser) and principal.role != SUPER_ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only a super admin can change super admin access")

    u.is_active = payload.is_active
    await db.commit()
    await db.refresh(u)
    logger.info("User %s is_active=%s by %s", u.id, u.is_active, principal.user_id)
    return UserRead.model_validate(u, from_attributes=True)
