from dataclasses import dataclass
from typing import Literal
from uuid import UUID

UserRole = Literal["superAdmin", "admin", "manager", "seller"]

SUPER_ADMIN = "superAdmin"
ADMIN = "admin"
MANAGER = "manager"
SELLER = "seller"

ALL_ROLES = (SUPER_ADMIN, ADMIN, MANAGER, SELLER)

# Who may do what
ADMIN_ROLES = (SUPER_ADMIN, ADMIN)
STOCK_WRITER_ROLES = (SUPER_ADMIN, ADMIN, MANAGER)


@dataclass(frozen=True)
class Principal:
    """The caller of an operation. Built once per request and passed down explicitly."""

    user_id: UUID
    role: str

    def has_role(self, *roles: str) -> bool:
        return self.role in roles

    @property
    def can_write_stock(self) -> bool:
        return self.has_role(*STOCK_WRITER_ROLES)

    @property
    def is_admin(self) -> bool:
        return self.has_role(*ADMIN_ROLES)

    @classmethod
    def from_user(cls, user) -> "Principal":
        role = SUPER_ADMIN if getattr(user, "is_superuser", False) else (getattr(user, "role", None) or SELLER)
        return cls(user_id=user.id, role=role)
