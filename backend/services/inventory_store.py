"""
Inventory Store: the storage boundary the transfer workflow talks to.

`InventoryStore` is the contract; `SqlAlchemyInventoryStore` is the production
implementation over the request's AsyncSession. The store never commits; the
caller owns the transaction.
"""

import uuid
from dataclasses import dataclass
from typing import NamedTuple, Optional, Protocol
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.inventory.item import InventoryItem as InventoryItemModel
from services.errors import StoreError


class IdentityKey(NamedTuple):
    name: str
    category: str
    language: str


@dataclass(frozen=True)
class InventoryRecord:
    id: UUID
    location_id: UUID
    name: str
    category: str
    language: str
    stock: int
    price_minor: int = 0
    description: Optional[str] = None

    @property
    def identity(self) -> IdentityKey:
        return IdentityKey(self.name, self.category, self.language)

    @classmethod
    def from_model(cls, m: InventoryItemModel) -> "InventoryRecord":
        return cls(
            id=m.id,
            location_id=m.location_id,
            name=m.name,
            category=m.category,
            language=m.language,
            stock=int(m.stock or 0),
            price_minor=int(m.price_minor or 0),
            description=m.description,
        )


class InventoryStore(Protocol):
    async def get_item(self, item_id: UUID, location_id: UUID) -> Optional[InventoryRecord]: ...

    async def find_by_identity(self, identity: IdentityKey, location_id: UUID) -> Optional[InventoryRecord]: ...

    async def set_stock(self, item_id: UUID, new_stock: int) -> None: ...

    async def create_item(
        self,
        *,
        location_id: UUID,
        name: str,
        category: str,
        language: str,
        stock: int,
        price_minor: int = 0,
        description: Optional[str] = None,
        item_id: Optional[UUID] = None,
    ) -> InventoryRecord:
        """Insert a row with `item_id` (new id when omitted).

        If the location already holds a row with the same identity key, `stock`
        is added to that row instead and the existing row is returned.
        """
        ...

    async def decrement_stock(self, item_id: UUID, quantity: int) -> Optional[int]:
        """Atomically subtract `quantity` if at least that much is on hand.

        Returns the new stock, or None when the row no longer has enough.
        """
        ...

    async def increment_stock(self, item_id: UUID, quantity: int) -> int: ...


class SqlAlchemyInventoryStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._tbl = InventoryItemModel.__table__

    async def _one_or_none(self, stmt) -> Optional[InventoryRecord]:
        # Stock is also written through Core UPDATEs, so refresh identity-mapped rows.
        stmt = stmt.execution_options(populate_existing=True)
        try:
            res = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"inventory read failed: {e}") from e
        m = res.scalar_one_or_none()
        return InventoryRecord.from_model(m) if m else None

    async def get_item(self, item_id: UUID, location_id: UUID) -> Optional[InventoryRecord]:
        return await self._one_or_none(
            select(InventoryItemModel).where(
                InventoryItemModel.id == item_id,
                InventoryItemModel.location_id == location_id,
            )
        )

    async def find_by_identity(self, identity: IdentityKey, location_id: UUID) -> Optional[InventoryRecord]:
        return await self._one_or_none(
            select(InventoryItemModel).where(
                InventoryItemModel.location_id == location_id,
                InventoryItemModel.name == identity.name,
                InventoryItemModel.category == identity.category,
                InventoryItemModel.language == identity.language,
            )
        )

    async def set_stock(self, item_id: UUID, new_stock: int) -> None:
        if new_stock < 0:
            raise ValueError("stock must be >= 0")
        stmt = update(self._tbl).where(self._tbl.c.id == item_id).values(stock=int(new_stock))
        try:
            async with self.session.begin_nested():
                res = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"set_stock failed for {item_id}: {e}") from e
        if res.rowcount == 0:
            raise StoreError(f"inventory row {item_id} does not exist")

    async def create_item(
        self,
        *,
        location_id: UUID,
        name: str,
        category: str,
        language: str,
        stock: int,
        price_minor: int = 0,
        description: Optional[str] = None,
        item_id: Optional[UUID] = None,
    ) -> InventoryRecord:
        tbl = self._tbl
        insert = pg_insert if self.session.bind.dialect.name == "postgresql" else sqlite_insert
        stmt = insert(tbl).values(
            id=item_id or uuid.uuid4(),
            location_id=location_id,
            name=name,
            category=category,
            language=language,
            stock=int(stock),
            price_minor=int(price_minor or 0),
            description=description,
        )
        # A concurrent transfer may have created the row since our lookup
        stmt = stmt.on_conflict_do_update(
            index_elements=[tbl.c.location_id, tbl.c.name, tbl.c.category, tbl.c.language],
            set_={"stock": tbl.c.stock + int(stock), "updated_at": func.now()},
        ).returning(*tbl.c)
        try:
            async with self.session.begin_nested():
                row = (await self.session.execute(stmt)).first()
        except SQLAlchemyError as e:
            raise StoreError(f"create_item failed for {name!r} at {location_id}: {e}") from e
        return InventoryRecord.from_model(row)

    async def decrement_stock(self, item_id: UUID, quantity: int) -> Optional[int]:
        stmt = (
            update(self._tbl)
            .where(self._tbl.c.id == item_id, self._tbl.c.stock >= quantity)
            .values(stock=self._tbl.c.stock - quantity)
            .returning(self._tbl.c.stock)
        )
        try:
            async with self.session.begin_nested():
                row = (await self.session.execute(stmt)).first()
        except SQLAlchemyError as e:
            raise StoreError(f"decrement_stock failed for {item_id}: {e}") from e
        return int(row.stock) if row else None

    async def increment_stock(self, item_id: UUID, quantity: int) -> int:
        stmt = (
            update(self._tbl)
            .where(self._tbl.c.id == item_id)
            .values(stock=self._tbl.c.stock + quantity)
            .returning(self._tbl.c.stock)
        )
        try:
            async with self.session.begin_nested():
                row = (await self.session.execute(stmt)).first()
        except SQLAlchemyError as e:
            raise StoreError(f"increment_stock failed for {item_id}: {e}") from e
        if row is None:
            raise StoreError(f"inventory row {item_id} does not exist")
        return int(row.stock)
