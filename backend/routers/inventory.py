import logging
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_principal, require_roles
from core.config import settings
from core.principal import STOCK_WRITER_ROLES, Principal
from db.database import (
    get_async_session,
    InventoryItem as InventoryItemModel,
    Location as LocationModel,
)
from schemas.inventory import (
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    InventoryTransferCreate,
    InventoryTransferOut,
)
from services.errors import (
    ConflictError,
    InsufficientStockError,
    InvalidTransferError,
    InventoryError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    WriteError,
)
from services.inventory_store import SqlAlchemyInventoryStore
from services.transfers import TransferIntent, transfer_stock

logger = logging.getLogger(__name__)

router = APIRouter()


def _minor_from_price(price: Optional[float]) -> int:
    if price is None:
        return 0
    return int(round(float(price) * 100))


def _write_error_detail(e: WriteError) -> Dict:
    if e.compensated is False:
        message = (
            "The transfer failed and the source stock could not be restored. "
            "Check the stock at both locations before trying again."
        )
    else:
        message = "The transfer could not be saved. No stock was moved."
    return {"message": message, "stage": e.stage, "compensated": e.compensated}


def _http_error(e: InventoryError) -> HTTPException:
    """Map a domain error to the response the user sees."""
    if isinstance(e, InvalidTransferError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if isinstance(e, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, (InsufficientStockError, ConflictError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    if isinstance(e, WriteError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=_write_error_detail(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)


async def _get_item_or_404(db: AsyncSession, item_id: UUID) -> InventoryItemModel:
    res = await db.execute(
        select(InventoryItemModel)
        .where(InventoryItemModel.id == item_id)
        .execution_options(populate_existing=True)
    )
    model = res.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return model


async def _identity_taken(
    db: AsyncSession,
    *,
    location_id: UUID,
    name: str,
    category: str,
    language: str,
    exclude_id: Optional[UUID] = None,
) -> bool:
    stmt = select(InventoryItemModel.id).where(
        InventoryItemModel.location_id == location_id,
        InventoryItemModel.name == name,
        InventoryItemModel.category == category,
        InventoryItemModel.language == language,
    )
    if exclude_id is not None:
        stmt = stmt.where(InventoryItemModel.id != exclude_id)
    res = await db.execute(stmt)
    return res.first() is not None


@router.get("/items", response_model=List[InventoryItemOut])
async def list_inventory_items(
    location_id: Optional[UUID] = None,
    category: Optional[str] = None,
    language: Optional[str] = None,
    q: Optional[str] = Query(None, description="Search in name and description"),
    principal: Principal = Depends(current_principal),
    db: AsyncSession = Depends(get_async_session),
):
    stmt = select(InventoryItemModel).order_by(func.lower(InventoryItemModel.name).asc(), InventoryItemModel.language)
    if location_id:
        stmt = stmt.where(InventoryItemModel.location_id == location_id)
    if category:
        stmt = stmt.where(InventoryItemModel.category == category)
    if language:
        stmt = stmt.where(InventoryItemModel.language == language)
    term = (q or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(
            or_(
                func.lower(InventoryItemModel.name).like(pattern),
                func.lower(func.coalesce(InventoryItemModel.description, "")).like(pattern),
            )
        )
    res = await db.execute(stmt)
    return [InventoryItemOut(**m.to_schema) for m in res.scalars().all()]


@router.get("/items/low-stock", response_model=List[InventoryItemOut])
async def list_low_stock_items(
    location_id: Optional[UUID] = None,
    threshold: Optional[int] = Query(None, ge=0),
    principal: Principal = Depends(current_principal),
    db: AsyncSession = Depends(get_async_session),
):
    limit = settings.low_stock_threshold if threshold is None else threshold
    stmt = (
        select(InventoryItemModel)
        .where(InventoryItemModel.stock <= limit)
        .order_by(InventoryItemModel.stock.asc(), func.lower(InventoryItemModel.name).asc())
    )
    if location_id:
        stmt = stmt.where(InventoryItemModel.location_id == location_id)
    res = await db.execute(stmt)
    return [InventoryItemOut(**m.to_schema) for m in res.scalars().all()]


@router.get("/items/{item_id}", response_model=InventoryItemOut)
async def get_inventory_item(
    item_id: UUID,
    principal: Principal = Depends(current_principal),
    db: AsyncSession = Depends(get_async_session),
):
    model = await _get_item_or_404(db, item_id)
    return InventoryItemOut(**model.to_schema)


@router.post("/items", response_model=InventoryItemOut, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryItemCreate,
    principal: Principal = Depends(require_roles(*STOCK_WRITER_ROLES)),
    db: AsyncSession = Depends(get_async_session),
):
    location = await db.get(LocationModel, payload.location_id)
    if not location:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")

    if await _identity_taken(
        db,
        location_id=payload.location_id,
        name=payload.name,
        category=payload.category,
        language=payload.language,
    ):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{payload.name} ({payload.category}/{payload.language}) already exists at {location.name}",
        )

    model = InventoryItemModel(
        location_id=payload.location_id,
        name=payload.name,
        category=payload.category,
        language=payload.language,
        price_minor=_minor_from_price(payload.price),
        description=payload.description,
        stock=payload.stock,
    )
    db.add(model)
    await db.commit()
    await db.refresh(model)
    logger.info("Inventory item %s created at %s by %s", model.id, location.name, principal.user_id)
    return InventoryItemOut(**model.to_schema)


@router.patch("/items/{item_id}", response_model=InventoryItemOut)
async def update_inventory_item(
    item_id: UUID,
    payload: InventoryItemUpdate,
    principal: Principal = Depends(require_roles(*STOCK_WRITER_ROLES)),
    db: AsyncSession = Depends(get_async_session),
):
    model = await _get_item_or_404(db, item_id)
    data = payload.model_dump(exclude_unset=True)

    name = data.get("name") or model.name
    category = data.get("category") or model.category
    language = data.get("language") or model.language
    if (name, category, language) != (model.name, model.category, model.language):
        if await _identity_taken(
            db,
            location_id=model.location_id,
            name=name,
            category=category,
            language=language,
            exclude_id=model.id,
        ):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"{name} ({category}/{language}) already exists at this location",
            )
    model.name = name
    model.category = category
    model.language = language
    if data.get("price") is not None:
        model.price_minor = _minor_from_price(data["price"])
    if "description" in data:
        model.description = data["description"]

    try:
        if data.get("stock") is not None:
            await SqlAlchemyInventoryStore(db).set_stock(model.id, int(data["stock"]))
        await db.commit()
    except StoreError as e:
        await db.rollback()
        logger.exception("update_inventory_item failed for %s", item_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to update item: {e}")

    await db.refresh(model)
    return InventoryItemOut(**model.to_schema)


@router.delete("/items/{item_id}", response_model=Dict)
async def delete_inventory_item(
    item_id: UUID,
    principal: Principal = Depends(require_roles(*STOCK_WRITER_ROLES)),
    db: AsyncSession = Depends(get_async_session),
):
    model = await _get_item_or_404(db, item_id)
    await db.delete(model)
    await db.commit()
    logger.info("Inventory item %s deleted by %s", item_id, principal.user_id)
    return {"ok": True}


@router.post("/transfers", response_model=InventoryTransferOut, status_code=status.HTTP_201_CREATED)
async def create_transfer(
    payload: InventoryTransferCreate,
    principal: Principal = Depends(require_roles(*STOCK_WRITER_ROLES)),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Move stock of one item to another location.

    - The item must exist at from_location_id with enough stock.
    - The destination row (same name/category/language) is created if missing.
    - Only the destination must be active; stock can still be moved out of an
      inactive location to empty it.
    - Runs in one transaction: nothing is kept unless both sides are saved.
    """
    destination = await db.get(LocationModel, payload.to_location_id)
    if not destination:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Destination location not found")
    if not destination.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Destination location is not active")

    intent = TransferIntent(
        item_id=payload.item_id,
        source_location_id=payload.from_location_id,
        destination_location_id=payload.to_location_id,
        quantity=payload.quantity,
    )
    try:
        receipt = await transfer_stock(SqlAlchemyInventoryStore(db), intent, principal)
        await db.commit()
    except InventoryError as e:
        await db.rollback()
        raise _http_error(e)
    except Exception as e:
        await db.rollback()
        logger.exception("create_transfer failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to create transfer: {e}")

    return InventoryTransferOut(
        item_id=receipt.item_id,
        from_location_id=receipt.source_location_id,
        to_location_id=receipt.destination_location_id,
        destination_item_id=receipt.destination_item_id,
        quantity=receipt.quantity,
        source_stock=receipt.source_stock,
        destination_stock=receipt.destination_stock,
        created_destination=receipt.created_destination,
    )
