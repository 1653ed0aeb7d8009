import logging
from typing import Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_principal, require_roles
from core.principal import ADMIN_ROLES, Principal
from db.database import (
    get_async_session,
    InventoryItem as InventoryItemModel,
    Location as LocationModel,
)
from schemas.locations import LocationCreate, LocationRead, LocationUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_location_or_404(db: AsyncSession, location_id: UUID) -> LocationModel:
    res = await db.execute(select(LocationModel).where(LocationModel.id == location_id))
    m = res.scalar_one_or_none()
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    return m


async def _name_taken(db: AsyncSession, name: str, exclude_id: UUID | None = None) -> bool:
    stmt = select(LocationModel.id).where(func.lower(LocationModel.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(LocationModel.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def _clear_default(db: AsyncSession) -> None:
    # only one default location at a time
    res = await db.execute(select(LocationModel).where(LocationModel.is_default.is_(True)))
    for loc in res.scalars().all():
        loc.is_default = False


@router.get("/", response_model=List[LocationRead])
async def list_locations(
    include_inactive: bool = False,
    principal: Principal = Depends(current_principal),
    db: AsyncSession = Depends(get_async_session),
):
    stmt = select(LocationModel).order_by(LocationModel.is_default.desc(), func.lower(LocationModel.name).asc())
    if not include_inactive:
        stmt = stmt.where(LocationModel.is_active.is_(True))
    res = await db.execute(stmt)
    return [LocationRead(**m.to_schema) for m in res.scalars().all()]


@router.get("/{location_id}", response_model=LocationRead)
async def get_location(
    location_id: UUID,
    principal: Principal = Depends(current_principal),
    db: AsyncSession = Depends(get_async_session),
):
    m = await _get_location_or_404(db, location_id)
    return LocationRead(**m.to_schema)


@router.post("/", response_model=LocationRead, status_code=status.HTTP_201_CREATED)
async def create_location(
    payload: LocationCreate,
    principal: Principal = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_async_session),
):
    if await _name_taken(db, payload.name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Location already exists")

    has_default = (
        await db.execute(select(LocationModel.id).where(LocationModel.is_default.is_(True)))
    ).first() is not None
    # The first location becomes the default one
    is_default = bool(payload.is_default) or not has_default
    if is_default and not payload.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The default location must be active")
    if is_default and has_default:
        await _clear_default(db)

    m = LocationModel(
        name=payload.name,
        description=payload.description,
        address=payload.address,
        is_active=payload.is_active,
        is_default=is_default,
    )
    db.add(m)
    await db.commit()
    await db.refresh(m)
    logger.info("Location %s (%s) created by %s", m.id, m.name, principal.user_id)
    return LocationRead(**m.to_schema)


@router.patch("/{location_id}", response_model=LocationRead)
async def update_location(
    location_id: UUID,
    payload: LocationUpdate,
    principal: Principal = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_async_session),
):
    m = await _get_location_or_404(db, location_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("name") is not None:
        name = data["name"].strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="name is required")
        if await _name_taken(db, name, exclude_id=m.id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Location already exists")
        m.name = name
    if "description" in data:
        m.description = data["description"]
    if "address" in data:
        m.address = data["address"]

    if m.is_default:
        if data.get("is_default") is False:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Choose another default location instead of unsetting this one",
            )
        if data.get("is_active") is False:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The default location must be active")
    elif data.get("is_default"):
        if data.get("is_active") is False or (not m.is_active and data.get("is_active") is not True):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The default location must be active")
        await _clear_default(db)
        m.is_default = True

    if data.get("is_active") is not None:
        m.is_active = bool(data["is_active"])

    await db.commit()
    await db.refresh(m)
    return LocationRead(**m.to_schema)


@router.delete("/{location_id}", response_model=Dict)
async def delete_location(
    location_id: UUID,
    principal: Principal = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_async_session),
):
    m = await _get_location_or_404(db, location_id)
    if m.is_default:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The default location cannot be deleted")

    item_count = (
        await db.execute(
            select(func.count()).select_from(InventoryItemModel).where(InventoryItemModel.location_id == m.id)
        )
    ).scalar_one()
    if item_count:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Location still holds {item_count} inventory items; transfer or delete them first",
        )

    await db.delete(m)
    await db.commit()
    logger.info("Location %s deleted by %s", location_id, principal.user_id)
    return {"ok": True}
