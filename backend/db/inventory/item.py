import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..base import Base, UUID_TYPE


class InventoryItem(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("location_id", "name", "category", "language", name="ux_inventory_location_identity"),
        CheckConstraint("stock >= 0", name="ck_inventory_stock_non_negative"),
    )

    id = Column(UUID_TYPE, primary_key=True, default=uuid.uuid4)
    location_id = Column(UUID_TYPE, ForeignKey("locations.id"), nullable=False, index=True)

    # identity key: name + category + language
    name = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, index=True)  # books|incense|clothing|jewelry|puja|deities|other
    language = Column(String, nullable=False, default="none")  # english|bengali|hindi|none

    price_minor = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)
    stock = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    location = relationship("Location", back_populates="items")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "location_id": self.location_id,
            "name": self.name,
            "category": self.category,
            "language": self.language,
            "price_minor": int(self.price_minor or 0),
            "price": float(self.price_minor or 0) / 100.0,
            "description": self.description,
            "stock": int(self.stock or 0),
        }
