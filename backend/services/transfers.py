"""
Inventory transfer between locations.

Moves `quantity` units of one SKU from its row at the source location to the
row with the same identity key (name + category + language) at the destination,
creating that row when the destination has never stocked the SKU.

Ordering:
1) read + validate the source (nothing is written before this passes)
2) look up the matching destination row
3) conditional decrement of the source (fails instead of going negative)
4) increment the destination row, or create it (an insert that tops up a row
   created concurrently since step 2)
5) if 4) fails: add the quantity back to the source and raise WriteError

The source decrement is a single conditional UPDATE, so two concurrent transfers
cannot both spend the same stock. Step 5 is the fallback for stores without
multi-row transactions; the HTTP route additionally runs everything in one
database transaction and rolls it back on any error.

Not idempotent: re-running a transfer after a WriteError moves the stock again.
"""

import logging
import uuid
from dataclasses import dataclass
from uuid import UUID

from core.principal import Principal
from services.errors import (
    ConflictError,
    InsufficientStockError,
    InvalidTransferError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    WriteError,
)
from services.inventory_store import InventoryRecord, InventoryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferIntent:
    item_id: UUID
    source_location_id: UUID
    destination_location_id: UUID
    quantity: int


@dataclass(frozen=True)
class TransferReceipt:
    item_id: UUID
    source_location_id: UUID
    source_stock: int
    destination_item_id: UUID
    destination_location_id: UUID
    destination_stock: int
    quantity: int
    created_destination: bool


def validate_intent(intent: TransferIntent) -> None:
    qty = intent.quantity
    # bool is an int subclass; True is not a quantity
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise InvalidTransferError("quantity must be a whole number greater than 0")
    if intent.source_location_id == intent.destination_location_id:
        raise InvalidTransferError("Source and destination locations must be different")


async def _credit_destination(
    store: InventoryStore,
    source: InventoryRecord,
    destination: InventoryRecord | None,
    intent: TransferIntent,
) -> tuple[InventoryRecord, int, bool]:
    if destination is not None:
        new_stock = await store.increment_stock(destination.id, intent.quantity)
        return destination, new_stock, False

    new_id = uuid.uuid4()
    credited = await store.create_item(
        location_id=intent.destination_location_id,
        name=source.name,
        category=source.category,
        language=source.language,
        stock=intent.quantity,
        price_minor=source.price_minor,
        description=source.description,
        item_id=new_id,
    )
    # a different id means the row appeared after our lookup and was topped up
    return credited, credited.stock, credited.id == new_id


async def transfer_stock(store: InventoryStore, intent: TransferIntent, principal: Principal) -> TransferReceipt:
    if not principal.can_write_stock:
        raise PermissionDeniedError("Your role is not allowed to transfer stock")
    validate_intent(intent)

    log_ctx = {
        "item_id": str(intent.item_id),
        "from_location_id": str(intent.source_location_id),
        "to_location_id": str(intent.destination_location_id),
        "quantity": intent.quantity,
        "user_id": str(principal.user_id),
    }

    try:
        source = await store.get_item(intent.item_id, intent.source_location_id)
    except StoreError as e:
        raise WriteError(e, stage="read_source") from e
    if source is None:
        logger.info("transfer rejected: item not found at source", extra=log_ctx)
        raise NotFoundError("Item not found at the source location")
    if source.stock < intent.quantity:
        logger.info("transfer rejected: insufficient stock (%s available)", source.stock, extra=log_ctx)
        raise InsufficientStockError(available=source.stock, requested=intent.quantity)

    try:
        destination = await store.find_by_identity(source.identity, intent.destination_location_id)
    except StoreError as e:
        logger.warning("transfer failed looking up the destination: %s", e, extra=log_ctx)
        raise WriteError(e, stage="lookup_destination") from e

    try:
        remaining = await store.decrement_stock(source.id, intent.quantity)
    except StoreError as e:
        logger.warning("transfer failed before any stock moved: %s", e, extra=log_ctx)
        raise WriteError(e, stage="decrement_source") from e
    if remaining is None:
        # Someone else spent the stock between our read and the decrement
        logger.info("transfer rejected: source stock changed concurrently", extra=log_ctx)
        raise ConflictError(source.id, intent.quantity)

    try:
        dest, dest_stock, created = await _credit_destination(store, source, destination, intent)
    except StoreError as e:
        compensated = await _restore_source(store, source, intent, log_ctx)
        logger.warning(
            "transfer failed crediting destination (compensated=%s): %s", compensated, e, extra=log_ctx
        )
        raise WriteError(e, stage="credit_destination", compensated=compensated) from e

    logger.info(
        "transferred %s x %r (%s/%s)", intent.quantity, source.name, source.category, source.language, extra=log_ctx
    )
    return TransferReceipt(
        item_id=source.id,
        source_location_id=intent.source_location_id,
        source_stock=remaining,
        destination_item_id=dest.id,
        destination_location_id=intent.destination_location_id,
        destination_stock=dest_stock,
        quantity=intent.quantity,
        created_destination=created,
    )


async def _restore_source(store: InventoryStore, source: InventoryRecord, intent: TransferIntent, log_ctx: dict) -> bool:
    # one attempt only
    try:
        await store.increment_stock(source.id, intent.quantity)
    except StoreError as e:
        logger.error(
            "could not restore %s units to source item %s; stock is now inconsistent: %s",
            intent.quantity,
            source.id,
            e,
            extra=log_ctx,
        )
        return False
    return True
