"""Exception types raised by shopsync."""

from typing import Optional


class ShopSyncError(Exception):
    """Base class for shopsync errors."""


class ConnectivityError(ShopSyncError):
    """Raised when an operation needs the remote service but we are offline."""

    def __init__(self, message: str = "Cannot sync while offline"):
        super().__init__(message)


class RemoteError(ShopSyncError):
    """A call to the remote service failed."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.table = table
        self.operation = operation


class RemoteApplyError(RemoteError):
    """A single queue item could not be applied remotely."""

    def __init__(self, message: str, item_id: int, table: str, operation: str):
        super().__init__(message, table=table, operation=operation)
        self.item_id = item_id


class RemoteFetchError(RemoteError):
    """A table snapshot could not be fetched from the remote service."""

    def __init__(self, message: str, table: str):
        super().__init__(message, table=table, operation="select")


class LocalStoreError(ShopSyncError):
    """The local store failed to read or write."""


class UnknownTableError(LocalStoreError, ValueError):
    """Table name is not one of the synchronized tables."""

    def __init__(self, table: str):
        super().__init__(f"Unknown table: {table!r}")
        self.table = table


class EntityValidationError(ShopSyncError, ValueError):
    """Entity payload failed validation at the facade boundary."""

    def __init__(self, entity: str, detail: str):
        super().__init__(f"Invalid {entity}: {detail}")
        self.entity = entity
        self.detail = detail
