from typing import Optional


class InventoryError(Exception):
    """Base for inventory domain errors. `message` is safe to show to a user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidTransferError(InventoryError):
    pass


class PermissionDeniedError(InventoryError):
    def __init__(self, message: str = "Not allowed") -> None:
        super().__init__(message)


class NotFoundError(InventoryError):
    pass


class InsufficientStockError(InventoryError):
    def __init__(self, available: int, requested: int) -> None:
        super().__init__(f"Not enough stock. Available={available} requested={requested}")
        self.available = available
        self.requested = requested


class ConflictError(InventoryError):
    """The stock row changed between the read and the conditional decrement."""

    def __init__(self, item_id, requested: int) -> None:
        super().__init__(
            "Stock changed while the transfer was in progress; reload the item and try again"
        )
        self.item_id = item_id
        self.requested = requested


class StoreError(Exception):
    """Raised by an Inventory Store implementation when a storage call fails."""


class WriteError(InventoryError):
    """
    A storage write failed.

    `compensated` is None when nothing had to be undone, True when the source
    decrement was restored, and False when the restore also failed (the source
    is short by the transferred quantity and needs manual reconciliation).
    """

    def __init__(self, cause: BaseException, *, stage: str, compensated: Optional[bool] = None) -> None:
        super().__init__(f"Failed to write inventory during {stage}: {cause}")
        self.cause = cause
        self.stage = stage
        self.compensated = compensated

    @property
    def consistent(self) -> bool:
        return self.compensated is not False
