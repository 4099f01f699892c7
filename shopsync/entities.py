"""Pydantic models for synchronized shop entities.

Payloads are validated here at the facade boundary. Unknown columns are
kept (``extra="allow"``) so rows written by newer clients or pulled from
the remote service round-trip unchanged.
"""

from typing import Any, ClassVar, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import EntityValidationError

# =============================================================================
# Base
# =============================================================================


class EntityModel(BaseModel):
    """Common envelope: client-assignable id plus timestamps."""

    model_config = ConfigDict(extra="allow")

    TABLE: ClassVar[str]
    # Human-readable sequence code, for entity types that carry one
    SEQUENCE_FIELD: ClassVar[Optional[str]] = None
    SEQUENCE_PREFIX: ClassVar[Optional[str]] = None

    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_row(self) -> Dict[str, Any]:
        """Serialize for the local store and remote upsert."""
        return self.model_dump(mode="json", exclude_none=True)


E = TypeVar("E", bound=BaseModel)


def parse_entity(model_cls: Type[E], entity: Union[E, Dict[str, Any]]) -> E:
    """Validate a dict or model instance as ``model_cls``.

    Model instances are copied so id/code assignment never mutates the
    caller's object.

    Raises:
        EntityValidationError: If the payload does not validate.
    """
    name = model_cls.__name__
    if isinstance(entity, model_cls):
        return entity.model_copy(deep=True)
    if isinstance(entity, BaseModel):
        entity = entity.model_dump()
    if not isinstance(entity, dict):
        raise EntityValidationError(name, f"expected a mapping, got {type(entity).__name__}")
    try:
        return model_cls.model_validate(entity)
    except ValidationError as e:
        raise EntityValidationError(name, str(e)) from e


# =============================================================================
# Catalog
# =============================================================================


class Category(EntityModel):
    """A product category."""
    TABLE: ClassVar[str] = "categories"

    name: str = Field(..., min_length=1)
    description: str | None = None


class Product(EntityModel):
    """A product; soft-deleted by clearing is_active."""
    TABLE: ClassVar[str] = "products"

    name: str = Field(..., min_length=1)
    category_id: str | None = None
    sku: str | None = None
    price: float | None = None
    cost_price: float | None = None
    stock_quantity: int | None = None
    is_active: bool = True


# =============================================================================
# Customers
# =============================================================================


class Shopkeeper(EntityModel):
    """A shopkeeper (customer) receipts are issued to."""
    TABLE: ClassVar[str] = "shopkeepers"

    name: str = Field(..., min_length=1)
    phone: str | None = None
    email: str | None = None
    role: str = "customer"
    is_active: bool = True


class ShopkeeperProfile(BaseModel):
    """Shopkeeper details captured while issuing a receipt."""
    name: str = Field(..., min_length=1)
    phone: str
    receipt_number: str | None = None
    receipt_date: str | None = None
    total_amount: float | None = None
    amount_received: float | None = None
    pending_amount: float | None = None


# =============================================================================
# Documents
# =============================================================================


class Receipt(EntityModel):
    """A sales receipt numbered RCP001, RCP002, ..."""
    TABLE: ClassVar[str] = "receipts"
    SEQUENCE_FIELD: ClassVar[Optional[str]] = "receipt_number"
    SEQUENCE_PREFIX: ClassVar[Optional[str]] = "RCP"

    receipt_number: str | None = None
    shopkeeper_id: str | None = None
    receipt_date: str | None = None
    total_amount: float | None = None
    amount_received: float | None = None
    pending_amount: float | None = None
    status: str | None = None


class Return(EntityModel):
    """A goods return numbered RET001, RET002, ..."""
    TABLE: ClassVar[str] = "returns"
    SEQUENCE_FIELD: ClassVar[Optional[str]] = "return_number"
    SEQUENCE_PREFIX: ClassVar[Optional[str]] = "RET"

    return_number: str | None = None
    receipt_id: str | None = None
    shopkeeper_id: str | None = None
    return_date: str | None = None
    total_amount: float | None = None
    reason: str | None = None
