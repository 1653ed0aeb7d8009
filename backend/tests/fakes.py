import asyncio
import dataclasses
import uuid
from typing import Optional
from uuid import UUID

from services.errors import StoreError
from services.inventory_store import IdentityKey, InventoryRecord


class FakeInventoryStore:
    """
    In-memory InventoryStore with fault injection.

    Every call yields to the event loop first so concurrent transfers interleave
    between steps; the check-and-write inside a single call stays atomic, like a
    conditional UPDATE.
    """

    def __init__(self, *records: InventoryRecord) -> None:
        self.rows: dict[UUID, InventoryRecord] = {r.id: r for r in records}
        self.writes: list[tuple[str, UUID]] = []
        self._faults: set[tuple[str, Optional[UUID]]] = set()

    def fail(self, method: str, item_id: Optional[UUID] = None) -> None:
        """Make `method` raise StoreError (only for `item_id` when given)."""
        self._faults.add((method, item_id))

    async def _enter(self, method: str, item_id: Optional[UUID] = None) -> None:
        await asyncio.sleep(0)
        if (method, None) in self._faults or (method, item_id) in self._faults:
            raise StoreError(f"simulated {method} failure")

    def stock_of(self, item_id: UUID) -> int:
        return self.rows[item_id].stock

    def at(self, location_id: UUID) -> list[InventoryRecord]:
        return [r for r in self.rows.values() if r.location_id == location_id]

    async def get_item(self, item_id: UUID, location_id: UUID) -> Optional[InventoryRecord]:
        await self._enter("get_item", item_id)
        r = self.rows.get(item_id)
        return r if r and r.location_id == location_id else None

    async def find_by_identity(self, identity: IdentityKey, location_id: UUID) -> Optional[InventoryRecord]:
        await self._enter("find_by_identity")
        for r in self.rows.values():
            if r.location_id == location_id and r.identity == identity:
                return r
        return None

    async def set_stock(self, item_id: UUID, new_stock: int) -> None:
        await self._enter("set_stock", item_id)
        self.rows[item_id] = dataclasses.replace(self.rows[item_id], stock=new_stock)
        self.writes.append(("set_stock", item_id))

    async def create_item(
        self, *, location_id, name, category, language, stock, price_minor=0, description=None, item_id=None
    ) -> InventoryRecord:
        await self._enter("create_item")
        for r in self.at(location_id):
            if r.identity == IdentityKey(name, category, language):
                self.rows[r.id] = dataclasses.replace(r, stock=r.stock + stock)
                self.writes.append(("create_item", r.id))
                return self.rows[r.id]
        record = InventoryRecord(
            id=item_id or uuid.uuid4(),
            location_id=location_id,
            name=name,
            category=category,
            language=language,
            stock=stock,
            price_minor=price_minor,
            description=description,
        )
        self.rows[record.id] = record
        self.writes.append(("create_item", record.id))
        return record

    async def decrement_stock(self, item_id: UUID, quantity: int) -> Optional[int]:
        await self._enter("decrement_stock", item_id)
        current = self.rows[item_id]
        if current.stock < quantity:
            return None
        self.rows[item_id] = dataclasses.replace(current, stock=current.stock - quantity)
        self.writes.append(("decrement_stock", item_id))
        return self.rows[item_id].stock

    async def increment_stock(self, item_id: UUID, quantity: int) -> int:
        await self._enter("increment_stock", item_id)
        current = self.rows[item_id]
        self.rows[item_id] = dataclasses.replace(current, stock=current.stock + quantity)
        self.writes.append(("increment_stock", item_id))
        return self.rows[item_id].stock
