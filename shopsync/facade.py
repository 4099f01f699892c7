"""Offline-first entity operations.

Every write goes to the local store first (which queues it for sync), then
hands off to the sync engine. The handoff is a separate task: callers wait
for it by default, or pass ``wait=False`` and observe it through
``SyncEngine.wait_idle()``. Reads never touch the remote service.
Local store writes run in a worker thread, off the event loop.
"""

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import ValidationError

from .engine import SyncEngine
from .entities import (
    Category,
    EntityModel,
    Product,
    Receipt,
    Return,
    Shopkeeper,
    ShopkeeperProfile,
    parse_entity,
)
from .errors import EntityValidationError, ShopSyncError
from .sequence import SequenceAllocator
from .storage.base import LocalStore
from .types import utc_now

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=EntityModel)
EntityInput = Union[EntityModel, Dict[str, Any]]


class EntityFacade:
    """Per-entity save/delete/list on top of the local store and sync engine."""

    def __init__(
        self,
        store: LocalStore,
        engine: SyncEngine,
        sequences: Optional[SequenceAllocator] = None,
    ):
        self._store = store
        self._engine = engine
        self._sequences = sequences or SequenceAllocator()

    # === Generic operations ===

    async def _save(self, model_cls: Type[E], entity: EntityInput, wait: bool) -> E:
        record = parse_entity(model_cls, entity)
        if not record.id:
            record.id = str(uuid.uuid4())
        await asyncio.to_thread(self._persist, record)
        await self._notify(wait)
        return record

    def _persist(self, record: EntityModel) -> None:
        """Assign a sequence code if needed and write the record locally."""
        issued = self._assign_code(record) if record.SEQUENCE_FIELD else None
        try:
            self._store.save(record.TABLE, record.to_row())
        except Exception:
            if issued:
                self._sequences.release(record.SEQUENCE_PREFIX, issued)
            raise

    def _assign_code(self, record: EntityModel) -> Optional[str]:
        """Fill in the sequence code; returns it when newly issued."""
        field = record.SEQUENCE_FIELD
        prefix = record.SEQUENCE_PREFIX
        current = getattr(record, field)
        if current:
            # Codes are assigned once and never rewritten
            self._sequences.observe(prefix, current)
            return None
        existing = (row.get(field) for row in self._store.get_all(record.TABLE))
        code = self._sequences.next_code(prefix, existing)
        setattr(record, field, code)
        return code

    async def _delete(self, model_cls: Type[EntityModel], entity_id: str, wait: bool) -> bool:
        if not entity_id:
            raise EntityValidationError(model_cls.__name__, "id is required for delete")
        existed = await asyncio.to_thread(self._store.delete, model_cls.TABLE, entity_id)
        await self._notify(wait)
        return existed

    def _list(self, model_cls: Type[E]) -> List[E]:
        records = []
        for row in self._store.get_all(model_cls.TABLE):
            try:
                records.append(model_cls.model_validate(row))
            except ValidationError as e:
                # Keep rows pulled from the remote even if they don't fit the model
                logger.warning(f"{model_cls.TABLE} row {row.get('id')} failed validation: {e}")
                records.append(model_cls.model_construct(**row))
        return records

    async def _notify(self, wait: bool) -> None:
        """Hand off to the sync engine; never raises on push failure."""
        task = self._engine.schedule_push()
        if task is None or not wait:
            return
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Opportunistic push failed: {task.exception()}")

    # === Products ===

    async def save_product(self, product: EntityInput, wait: bool = True) -> Product:
        return await self._save(Product, product, wait)

    async def delete_product(self, product_id: str, wait: bool = True) -> bool:
        return await self._delete(Product, product_id, wait)

    def get_products(self) -> List[Product]:
        return self._list(Product)

    # === Categories ===

    async def save_category(self, category: EntityInput, wait: bool = True) -> Category:
        return await self._save(Category, category, wait)

    async def delete_category(self, category_id: str, wait: bool = True) -> bool:
        return await self._delete(Category, category_id, wait)

    def get_categories(self) -> List[Category]:
        return self._list(Category)

    # === Shopkeepers ===

    async def save_shopkeeper(self, shopkeeper: EntityInput, wait: bool = True) -> Shopkeeper:
        return await self._save(Shopkeeper, shopkeeper, wait)

    async def delete_shopkeeper(self, shopkeeper_id: str, wait: bool = True) -> bool:
        return await self._delete(Shopkeeper, shopkeeper_id, wait)

    def get_shopkeepers(self) -> List[Shopkeeper]:
        return self._list(Shopkeeper)

    async def create_or_update_shopkeeper(
        self, profile: Union[ShopkeeperProfile, Dict[str, Any]], wait: bool = True
    ) -> Shopkeeper:
        """Find a shopkeeper by (name, phone) or create one.

        A match is re-saved unchanged apart from ``updated_at``; the
        incoming profile does not overwrite stored details.
        """
        try:
            profile = parse_entity(ShopkeeperProfile, profile)
            existing = next(
                (
                    s
                    for s in self.get_shopkeepers()
                    if s.name == profile.name and s.phone == profile.phone
                ),
                None,
            )

            if existing is not None:
                existing.updated_at = utc_now()
                return await self._save(Shopkeeper, existing, wait)

            now = utc_now()
            shopkeeper = Shopkeeper(
                id=str(uuid.uuid4()),
                name=profile.name,
                phone=profile.phone,
                email=None,
                role="customer",
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            return await self._save(Shopkeeper, shopkeeper, wait)
        except ShopSyncError as e:
            logger.error(f"Failed to create/update shopkeeper: {e}")
            raise

    # === Receipts ===

    async def save_receipt(self, receipt: EntityInput, wait: bool = True) -> Receipt:
        return await self._save(Receipt, receipt, wait)

    async def delete_receipt(self, receipt_id: str, wait: bool = True) -> bool:
        return await self._delete(Receipt, receipt_id, wait)

    def get_receipts(self) -> List[Receipt]:
        return self._list(Receipt)

    # === Returns ===

    async def save_return(self, return_item: EntityInput, wait: bool = True) -> Return:
        return await self._save(Return, return_item, wait)

    async def delete_return(self, return_id: str, wait: bool = True) -> bool:
        return await self._delete(Return, return_id, wait)

    def get_returns(self) -> List[Return]:
        return self._list(Return)
