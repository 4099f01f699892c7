"""
Shared sync types for shopsync.

The queue item, operation enum and result dataclass live here. They are the
contract between the local store, the remote adapter and the sync engine.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# === Shared Utility Functions ===


def utc_now() -> str:
    """Get current timestamp as ISO string in UTC."""
    return datetime.now(timezone.utc).isoformat()


def parse_datetime(s: Optional[str]) -> Optional[datetime]:
    """Parse ISO datetime string, returning None for empty or malformed input."""
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None


# === Enums and Constants ===


class SyncOperation(str, Enum):
    """Operation recorded in the sync queue."""

    UPSERT = "upsert"
    DELETE = "delete"


# sync_queue.synced values
SYNC_PENDING = 0
SYNC_COMPLETED = 1

# Tables replicated with the remote service. Pull walks them in this order.
SYNCED_TABLES = (
    "categories",
    "products",
    "shopkeepers",
    "receipts",
    "receipt_items",
    "returns",
    "return_items",
    "settings",
    "payment_history",
    "stock_movements",
)

# Tables where delete flips a flag instead of removing the row
SOFT_DELETE_TABLES = frozenset({"products"})
SOFT_DELETE_FLAG = "is_active"


# === Sync Dataclasses ===


@dataclass
class SyncQueueItem:
    """A pending local mutation waiting to be pushed."""

    id: int
    store_name: str
    operation: SyncOperation
    data: Dict[str, Any]
    created_at: str
    synced: bool = False
    # Retry tracking
    retry_count: int = 0
    last_error: Optional[str] = None
    last_attempt_at: Optional[str] = None

    @property
    def record_id(self) -> Optional[str]:
        return self.data.get("id") if self.data else None


@dataclass
class SyncResult:
    """Result of a push, pull or full sync pass."""

    pushed: int = 0  # Queue items applied remotely
    pulled: int = 0  # Remote rows written locally
    errors: List[str] = field(default_factory=list)
    failed_tables: List[str] = field(default_factory=list)
    skipped: Optional[str] = None  # "offline" or "in_progress" when the pass did nothing

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    def merge(self, other: "SyncResult") -> "SyncResult":
        """Combine two results (push followed by pull)."""
        return SyncResult(
            pushed=self.pushed + other.pushed,
            pulled=self.pulled + other.pulled,
            errors=self.errors + other.errors,
            failed_tables=self.failed_tables + other.failed_tables,
            skipped=self.skipped if self.skipped == other.skipped else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pushed": self.pushed,
            "pulled": self.pulled,
            "errors": list(self.errors),
            "failed_tables": list(self.failed_tables),
            "skipped": self.skipped,
            "success": self.success,
        }
