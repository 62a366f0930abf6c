"""Inventory domain: the Sweet aggregate, its categories and stock events."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, Field

from sweetshop.core.errors import ValidationError
from sweetshop.core.validation import check_fields
from sweetshop.domain import AggregateRoot, DomainEvent

DEFAULT_MIN_STOCK_LEVEL = 10


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SweetCategory(str, Enum):
    MILK_BASED = "MILK_BASED"
    DRY_FRUIT = "DRY_FRUIT"
    SYRUP_BASED = "SYRUP_BASED"
    FLOUR_BASED = "FLOUR_BASED"
    GRAIN_BASED = "GRAIN_BASED"
    COCONUT_BASED = "COCONUT_BASED"
    FESTIVAL_SPECIAL = "FESTIVAL_SPECIAL"
    BENGALI = "BENGALI"
    SOUTH_INDIAN = "SOUTH_INDIAN"
    SUGAR_FREE = "SUGAR_FREE"
    OTHER = "OTHER"

    @property
    def display_name(self) -> str:
        return _CATEGORY_NAMES[self]


_CATEGORY_NAMES = {
    SweetCategory.MILK_BASED: "Milk-Based Sweets",
    SweetCategory.DRY_FRUIT: "Dry Fruit Sweets",
    SweetCategory.SYRUP_BASED: "Syrup-Based Sweets",
    SweetCategory.FLOUR_BASED: "Flour-Based Sweets",
    SweetCategory.GRAIN_BASED: "Grain-Based Sweets",
    SweetCategory.COCONUT_BASED: "Coconut-Based Sweets",
    SweetCategory.FESTIVAL_SPECIAL: "Festival Special",
    SweetCategory.BENGALI: "Bengali Sweets",
    SweetCategory.SOUTH_INDIAN: "South Indian Sweets",
    SweetCategory.SUGAR_FREE: "Sugar-Free",
    SweetCategory.OTHER: "Other",
}


class PricingType(str, Enum):
    PER_ITEM = "PER_ITEM"
    PER_KG = "PER_KG"

    @property
    def display_name(self) -> str:
        return "Per Item" if self is PricingType.PER_ITEM else "Per Kg"


@dataclass
class StockLow(DomainEvent):
    sweet_id: int
    name: str
    quantity: int
    min_stock_level: int


@dataclass
class SweetDeleted(DomainEvent):
    sweet_id: int
    name: str


class SweetUsage(Protocol):
    """Port: tells the catalog whether any order still points at a sweet."""

    async def is_referenced(self, sweet_id: int) -> bool:
        ...


def sweet_not_found(sweet_id: int) -> str:
    return f"Sweet with ID {sweet_id} not found"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class SweetFields(BaseModel):
    """Column limits every stored sweet respects."""

    name: str = Field(..., min_length=2, max_length=100)
    description: str | None = Field(None, max_length=500)
    price: Decimal = Field(..., ge=Decimal("0.01"), decimal_places=2)
    quantity: int = Field(..., ge=0)
    min_stock_level: int = Field(..., ge=0)
    image_url: str | None = Field(None, max_length=255)
    unit: str | None = Field(None, max_length=50)
    brand: str | None = Field(None, max_length=100)


class Sweet(AggregateRoot):
    """
    Catalog item with its stock level.
    Quantity never goes negative: reduce_quantity() refuses instead.
    """

    def __init__(
        self,
        id: int | None,
        name: str,
        category: SweetCategory,
        price: Decimal,
        quantity: int = 0,
        *,
        description: str | None = None,
        pricing_type: PricingType = PricingType.PER_ITEM,
        min_stock_level: int = DEFAULT_MIN_STOCK_LEVEL,
        image_url: str | None = None,
        is_available: bool = True,
        unit: str | None = None,
        brand: str | None = None,
        created_at: datetime | None = None,
    ) -> None:
        super().__init__(id)
        self.name = (name or "").strip()
        self.description = _clean(description)
        self.category = category
        self.price = price
        self.pricing_type = pricing_type
        self.quantity = quantity
        self.min_stock_level = min_stock_level
        self.image_url = _clean(image_url)
        self.is_available = is_available
        self.unit = _clean(unit)
        self.brand = _clean(brand)
        self.created_at = created_at or utcnow()
        self.updated_at = self.created_at
        self.validate()

    def validate(self) -> None:
        check_fields(
            SweetFields,
            "Invalid sweet",
            name=self.name,
            description=self.description,
            price=self.price,
            quantity=self.quantity,
            min_stock_level=self.min_stock_level,
            image_url=self.image_url,
            unit=self.unit,
            brand=self.brand,
        )

    @property
    def is_in_stock(self) -> bool:
        return self.quantity > 0

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock_level

    def _touch(self) -> None:
        self.updated_at = utcnow()

    def reduce_quantity(self, amount: int) -> bool:
        """Decrement stock; False (and no change) when fewer than amount units are left."""
        if amount <= 0:
            raise ValidationError(f"Invalid quantity: {amount}")
        if self.quantity < amount:
            return False
        self.quantity -= amount
        self._touch()
        if self.is_low_stock:
            self.raise_event(StockLow(self.id, self.name, self.quantity, self.min_stock_level))
        return True

    def increase_quantity(self, amount: int) -> None:
        if amount <= 0:
            raise ValidationError(f"Invalid quantity: {amount}")
        self.quantity += amount
        self._touch()

    def set_quantity(self, quantity: int) -> None:
        if quantity < 0:
            raise ValidationError(f"Invalid quantity: {quantity}")
        self.quantity = quantity
        self._touch()
        if self.is_low_stock:
            self.raise_event(StockLow(self.id, self.name, self.quantity, self.min_stock_level))

    def toggle_availability(self) -> None:
        self.is_available = not self.is_available
        self._touch()

    def apply_changes(self, **changes: Any) -> None:
        """Partial update: None means "leave as is"; a blank name is ignored."""
        name = _clean(changes.pop("name", None))
        if name is not None:
            self.name = name
        for field in ("description", "image_url", "unit", "brand"):
            if changes.get(field) is not None:
                setattr(self, field, _clean(changes[field]))
        for field in ("category", "price", "pricing_type", "quantity", "min_stock_level", "is_available"):
            if changes.get(field) is not None:
                setattr(self, field, changes[field])
        self.validate()
        self._touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "category_display_name": self.category.display_name,
            "price": self.price,
            "pricing_type": self.pricing_type.value,
            "quantity": self.quantity,
            "min_stock_level": self.min_stock_level,
            "image_url": self.image_url,
            "is_available": self.is_available,
            "unit": self.unit,
            "brand": self.brand,
            "in_stock": self.is_in_stock,
            "low_stock": self.is_low_stock,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
