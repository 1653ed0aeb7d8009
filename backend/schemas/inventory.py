from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator


InventoryCategory = Literal["books", "incense", "clothing", "jewelry", "puja", "deities", "other"]
InventoryLanguage = Literal["english", "bengali", "hindi", "none"]


def _strip_required(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("field is required")
    return v


class InventoryItemCreate(BaseModel):
    location_id: UUID
    name: str
    category: InventoryCategory
    language: InventoryLanguage = "none"
    price: float = 0.0
    stock: int = 0
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("price")
    @classmethod
    def _price(cls, v: float) -> float:
        if v < 0:
            raise ValueError("price must be >= 0")
        return v

    @field_validator("stock")
    @classmethod
    def _stock(cls, v: int) -> int:
        if v < 0:
            raise ValueError("stock must be >= 0")
        return v


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[InventoryCategory] = None
    language: Optional[InventoryLanguage] = None
    price: Optional[float] = None
    stock: Optional[int] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return _strip_required(v)

    @field_validator("price")
    @classmethod
    def _price_optional(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("price must be >= 0")
        return v

    @field_validator("stock")
    @classmethod
    def _stock_optional(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("stock must be >= 0")
        return v


class InventoryItemOut(BaseModel):
    id: UUID
    location_id: UUID
    name: str
    category: str
    language: str
    price_minor: int
    price: float
    description: Optional[str] = None
    stock: int


class InventoryTransferCreate(BaseModel):
    item_id: UUID
    from_location_id: UUID
    to_location_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v


class InventoryTransferOut(BaseModel):
    item_id: UUID
    from_location_id: UUID
    to_location_id: UUID
    destination_item_id: UUID
    quantity: int
    source_stock: int
    destination_stock: int
    created_destination: bool
