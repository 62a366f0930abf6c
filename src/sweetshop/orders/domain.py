"""Orders domain: the Order aggregate, its line items, status machine and events."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from sweetshop.core.errors import ValidationError
from sweetshop.core.validation import check_fields
from sweetshop.domain import AggregateRoot, DomainEvent
from sweetshop.inventory.domain import Sweet, utcnow

MAX_ITEM_QUANTITY = 1000
MAX_EMAIL_LENGTH = 150
ZERO = Decimal("0.00")


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def display_name(self) -> str:
        return _STATUS_NAMES[self]

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


_STATUS_NAMES = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.CONFIRMED: "Confirmed",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.READY: "Ready",
    OrderStatus.OUT_FOR_DELIVERY: "Out for Delivery",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.CANCELLED: "Cancelled",
}

ACTIVE_STATUSES = (
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
)
REVENUE_STATUSES = (OrderStatus.DELIVERED, OrderStatus.COMPLETED)
TERMINAL_STATUSES = (OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderStatus.CANCELLED)

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return current is target or target in ALLOWED_TRANSITIONS[current]


@dataclass
class OrderPlaced(DomainEvent):
    order_id: int
    customer_email: str
    total_amount: Decimal
    item_count: int


@dataclass
class OrderStatusChanged(DomainEvent):
    order_id: int
    previous: OrderStatus
    current: OrderStatus


@dataclass
class OrderCancelled(DomainEvent):
    order_id: int
    restored_units: int


@dataclass
class OrderDeleted(DomainEvent):
    order_id: int
    restored_units: int


def _check_item_quantity(quantity: int) -> None:
    if not 1 <= quantity <= MAX_ITEM_QUANTITY:
        raise ValidationError(
            f"Invalid quantity: {quantity}",
            fields={"quantity": f"must be between 1 and {MAX_ITEM_QUANTITY}"},
        )


class OrderItemFields(BaseModel):
    notes: str | None = Field(None, max_length=500)


class OrderFields(BaseModel):
    """Customer details every stored order respects."""

    customer_name: str = Field(..., min_length=2, max_length=100)
    customer_email: EmailStr
    customer_phone: str | None = Field(None, max_length=20)
    delivery_address: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)

    @field_validator("customer_email", mode="before")
    @classmethod
    def fits_column(cls, value: Any) -> Any:
        if isinstance(value, str) and len(value) > MAX_EMAIL_LENGTH:
            raise ValueError(f"must be at most {MAX_EMAIL_LENGTH} characters")
        return value


@dataclass
class OrderItem:
    """
    One order line. Refers to its sweet by id plus a name/category snapshot;
    unit_price is frozen when the line is created, subtotal follows quantity.
    """

    id: int | None
    sweet_id: int
    sweet_name: str
    sweet_category: str
    quantity: int
    unit_price: Decimal
    notes: str | None = None
    subtotal: Decimal = field(init=False)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _check_item_quantity(self.quantity)
        check_fields(OrderItemFields, "Invalid order item", notes=self.notes)
        self.subtotal = self.unit_price * self.quantity

    @classmethod
    def for_sweet(cls, sweet: Sweet, quantity: int, notes: str | None = None) -> OrderItem:
        return cls(
            id=None,
            sweet_id=sweet.id,
            sweet_name=sweet.name,
            sweet_category=sweet.category.value,
            quantity=quantity,
            unit_price=sweet.price,
            notes=notes,
        )

    def change_quantity(self, quantity: int) -> None:
        _check_item_quantity(quantity)
        self.quantity = quantity
        self.subtotal = self.unit_price * quantity
        self.updated_at = utcnow()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sweet_id": self.sweet_id,
            "sweet_name": self.sweet_name,
            "sweet_category": self.sweet_category,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "subtotal": self.subtotal,
            "notes": self.notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class Order(AggregateRoot):
    """
    Customer order. Owns its items exclusively; total_amount is always the sum
    of item subtotals. Items may change only while PENDING.
    """

    def __init__(
        self,
        id: int | None,
        customer_name: str,
        customer_email: str,
        *,
        customer_phone: str | None = None,
        delivery_address: str | None = None,
        notes: str | None = None,
        status: OrderStatus = OrderStatus.PENDING,
        created_at: datetime | None = None,
    ) -> None:
        super().__init__(id)
        self.customer_name = (customer_name or "").strip()
        self.customer_email = (customer_email or "").strip()
        self.customer_phone = customer_phone
        self.delivery_address = delivery_address
        self.notes = notes
        self.status = status
        self.items: list[OrderItem] = []
        self.total_amount = ZERO
        self.created_at = created_at or utcnow()
        self.updated_at = self.created_at
        self.completed_at: datetime | None = None
        self.validate()

    def validate(self) -> None:
        check_fields(
            OrderFields,
            "Invalid order",
            customer_name=self.customer_name,
            customer_email=self.customer_email,
            customer_phone=self.customer_phone,
            delivery_address=self.delivery_address,
            notes=self.notes,
        )

    def _touch(self) -> None:
        self.updated_at = utcnow()

    # --- items ---

    def add_item(self, item: OrderItem) -> OrderItem:
        self.items.append(item)
        self.recalculate_total()
        return item

    def add_or_merge(self, item: OrderItem) -> OrderItem:
        """Merge into the existing line for the same sweet (its price is kept), else append."""
        existing = self.item_for_sweet(item.sweet_id)
        if existing is None:
            return self.add_item(item)
        existing.change_quantity(existing.quantity + item.quantity)
        if item.notes:
            existing.notes = item.notes
        self.recalculate_total()
        return existing

    def remove_item(self, item: OrderItem) -> None:
        self.items = [i for i in self.items if i is not item]
        self.recalculate_total()

    def find_item(self, item_id: int) -> OrderItem | None:
        return next((i for i in self.items if i.id == item_id), None)

    def item_for_sweet(self, sweet_id: int) -> OrderItem | None:
        return next((i for i in self.items if i.sweet_id == sweet_id), None)

    def recalculate_total(self) -> Decimal:
        self.total_amount = sum((i.subtotal for i in self.items), ZERO)
        self._touch()
        return self.total_amount

    @property
    def total_quantity(self) -> int:
        return sum(i.quantity for i in self.items)

    # --- lifecycle ---

    def can_be_modified(self) -> bool:
        return self.status is OrderStatus.PENDING

    def can_be_cancelled(self) -> bool:
        return self.status in (OrderStatus.PENDING, OrderStatus.CONFIRMED)

    def change_status(self, status: OrderStatus) -> None:
        previous = self.status
        self.status = status
        self._touch()
        if status is OrderStatus.COMPLETED and self.completed_at is None:
            self.completed_at = self.updated_at
        if previous is not status:
            self.raise_event(OrderStatusChanged(self.id, previous, status))

    def cancel(self) -> None:
        self.change_status(OrderStatus.CANCELLED)
        self.raise_event(OrderCancelled(self.id, self.total_quantity))

    def update_details(self, **changes: Any) -> None:
        """Overwrite only the fields given a non-None value."""
        for name in ("customer_name", "customer_email", "customer_phone", "delivery_address", "notes"):
            value = changes.get(name)
            if value is not None:
                setattr(self, name, value.strip() if name in ("customer_name", "customer_email") else value)
        self.validate()
        self._touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "delivery_address": self.delivery_address,
            "notes": self.notes,
            "status": self.status.value,
            "status_display_name": self.status.display_name,
            "total_amount": self.total_amount,
            "total_quantity": self.total_quantity,
            "items": [i.to_dict() for i in self.items],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "completed_at": self.completed_at,
        }
