"""Application layer: order commands and queries.

Every command handler opens one database transaction around all of its order
and stock changes. A failure anywhere inside it (validation, not-found, short
stock) rolls back both, so no partial order or stray stock change survives.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from sweetshop.config import Settings
from sweetshop.core.errors import ConflictError, NotFoundError, ValidationError
from sweetshop.ddd import Command, Payload, Query
from sweetshop.inventory.domain import Sweet
from sweetshop.inventory.infrastructure import ISweetRepository
from sweetshop.persistence import InMemoryDatabase

from .domain import (
    MAX_ITEM_QUANTITY,
    Order,
    OrderDeleted,
    OrderItem,
    OrderPlaced,
    OrderStatus,
    can_transition,
)
from .infrastructure import IOrderRepository

logger = logging.getLogger(__name__)


def order_not_found(order_id: int) -> str:
    return f"Order not found with ID: {order_id}"


def insufficient_stock(sweet: Sweet, requested: int) -> str:
    return f"Insufficient stock for sweet '{sweet.name}'. Available: {sweet.quantity}, Requested: {requested}"


def _check_line(sweet_id: int | None, quantity: int | None) -> None:
    if sweet_id is None:
        raise ValidationError("Sweet ID cannot be null")
    if quantity is None or not 1 <= quantity <= MAX_ITEM_QUANTITY:
        raise ValidationError(f"Invalid quantity: {quantity}")


# --- commands ---------------------------------------------------------------


@dataclass
class OrderLine(Payload):
    sweet_id: int | None = None
    quantity: int | None = None
    notes: str | None = None


@dataclass
class CreateOrder(Command):
    customer_name: str | None = None
    customer_email: str | None = None
    items: list[OrderLine] = field(default_factory=list)
    customer_phone: str | None = None
    delivery_address: str | None = None
    notes: str | None = None


@dataclass
class UpdateOrder(Command):
    """Customer details of a pending order; fields left out keep their value."""
    order_id: int
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    delivery_address: str | None = None
    notes: str | None = None


@dataclass
class UpdateOrderStatus(Command):
    order_id: int
    status: OrderStatus
    notes: str | None = None


@dataclass
class CancelOrder(Command):
    order_id: int


@dataclass
class DeleteOrder(Command):
    order_id: int


@dataclass
class AddItemToOrder(Command):
    order_id: int
    sweet_id: int | None = None
    quantity: int | None = None
    notes: str | None = None


@dataclass
class UpdateOrderItem(Command):
    order_id: int
    item_id: int
    quantity: int | None = None
    notes: str | None = None


@dataclass
class RemoveItemFromOrder(Command):
    order_id: int
    item_id: int


class _OrderHandler:
    """Shared lookups and stock helpers; callers hold the transaction."""

    def __init__(
        self,
        database: InMemoryDatabase,
        order_repository: IOrderRepository,
        sweet_repository: ISweetRepository,
    ):
        self._db = database
        self._orders = order_repository
        self._sweets = sweet_repository

    async def _require_order(self, order_id: int) -> Order:
        order = await self._orders.get(order_id)
        if order is None:
            raise NotFoundError(order_not_found(order_id))
        return order

    @staticmethod
    def _require_modifiable(order: Order) -> None:
        if not order.can_be_modified():
            raise ConflictError(f"Order with status '{order.status.value}' cannot be modified")

    @staticmethod
    def _require_cancellable(order: Order) -> None:
        if not order.can_be_cancelled():
            raise ConflictError(f"Order with status '{order.status.value}' cannot be cancelled")

    async def _require_sweet(self, sweet_id: int) -> Sweet:
        sweet = await self._sweets.get(sweet_id)
        if sweet is None:
            raise NotFoundError(f"Sweet not found with ID: {sweet_id}")
        return sweet

    async def _require_sellable(self, sweet_id: int, requested: int) -> Sweet:
        sweet = await self._require_sweet(sweet_id)
        if not sweet.is_available:
            raise ConflictError(f"Sweet '{sweet.name}' is not available for purchase")
        if sweet.quantity < requested:
            raise ConflictError(insufficient_stock(sweet, requested))
        return sweet

    async def _take_stock(self, sweet: Sweet, amount: int) -> None:
        if not await self._sweets.reduce_stock(sweet.id, amount):
            current = await self._require_sweet(sweet.id)
            raise ConflictError(insufficient_stock(current, amount))

    async def _restore_stock(self, order: Order) -> int:
        units = 0
        for item in order.items:
            await self._sweets.increase_stock(item.sweet_id, item.quantity)
            units += item.quantity
        return units

    async def _require_item(self, order: Order, item_id: int) -> OrderItem:
        item = order.find_item(item_id)
        if item is not None:
            return item
        if await self._orders.find_by_item(item_id) is not None:
            raise ValidationError("Order item does not belong to the specified order")
        raise NotFoundError(f"Order item not found with ID: {item_id}")


class CreateOrderHandler(_OrderHandler):
    async def __call__(self, cmd: CreateOrder) -> dict[str, Any]:
        if not cmd.items:
            raise ValidationError("Order must contain at least one item")
        if not (cmd.customer_name or "").strip():
            raise ValidationError("Customer name is required")
        if not (cmd.customer_email or "").strip():
            raise ValidationError("Customer email is required")
        requested: dict[int, int] = defaultdict(int)
        for line in cmd.items:
            _check_line(line.sweet_id, line.quantity)
            requested[line.sweet_id] += line.quantity

        async with self._db.transaction():
            # Pre-flight: every line is checked before anything is mutated.
            for sweet_id, quantity in requested.items():
                await self._require_sellable(sweet_id, quantity)

            order = Order(
                None,
                cmd.customer_name,
                cmd.customer_email,
                customer_phone=cmd.customer_phone,
                delivery_address=cmd.delivery_address,
                notes=cmd.notes,
            )
            await self._orders.add(order)
            for line in cmd.items:
                sweet = await self._require_sweet(line.sweet_id)
                order.add_item(OrderItem.for_sweet(sweet, line.quantity, line.notes))
                await self._take_stock(sweet, line.quantity)
            order.recalculate_total()
            order.raise_event(OrderPlaced(order.id, order.customer_email, order.total_amount, len(order.items)))
            await self._orders.save(order)
        logger.info("Created order %s for %s, total %s", order.id, order.customer_email, order.total_amount)
        return order.to_dict()


class UpdateOrderHandler(_OrderHandler):
    async def __call__(self, cmd: UpdateOrder) -> dict[str, Any]:
        async with self._db.transaction():
            order = await self._require_order(cmd.order_id)
            self._require_modifiable(order)
            order.update_details(
                customer_name=cmd.customer_name,
                customer_email=cmd.customer_email,
                customer_phone=cmd.customer_phone,
                delivery_address=cmd.delivery_address,
                notes=cmd.notes,
            )
            await self._orders.save(order)
        logger.info("Updated details of order %s", order.id)
        return order.to_dict()


class UpdateOrderStatusHandler(_OrderHandler):
    """
    Free status moves by default; the transition table applies when
    enforce_status_transitions is on. CANCELLED is only entered through cancel
    semantics and never left, so stock is restored exactly once.
    """

    def __init__(
        self,
        database: InMemoryDatabase,
        order_repository: IOrderRepository,
        sweet_repository: ISweetRepository,
        settings: Settings,
    ):
        super().__init__(database, order_repository, sweet_repository)
        self._enforce = settings.enforce_status_transitions

    async def __call__(self, cmd: UpdateOrderStatus) -> dict[str, Any]:
        async with self._db.transaction():
            order = await self._require_order(cmd.order_id)
            previous = order.status
            if cmd.status is OrderStatus.CANCELLED:
                self._require_cancellable(order)
                await self._restore_stock(order)
                order.cancel()
            elif previous is OrderStatus.CANCELLED:
                raise ConflictError("Order with status 'CANCELLED' cannot change status")
            elif self._enforce and not can_transition(previous, cmd.status):
                raise ConflictError(
                    f"Cannot change order status from '{previous.value}' to '{cmd.status.value}'"
                )
            else:
                order.change_status(cmd.status)
            if cmd.notes is not None:
                order.update_details(notes=cmd.notes)
            await self._orders.save(order)
        logger.info("Order %s status %s -> %s", order.id, previous.value, order.status.value)
        return order.to_dict()


class CancelOrderHandler(_OrderHandler):
    async def __call__(self, cmd: CancelOrder) -> dict[str, Any]:
        async with self._db.transaction():
            order = await self._require_order(cmd.order_id)
            self._require_cancellable(order)
            units = await self._restore_stock(order)
            order.cancel()
            await self._orders.save(order)
        logger.info("Cancelled order %s, restored %d unit(s)", order.id, units)
        return order.to_dict()


class DeleteOrderHandler(_OrderHandler):
    async def __call__(self, cmd: DeleteOrder) -> None:
        async with self._db.transaction():
            order = await self._require_order(cmd.order_id)
            if order.status is not OrderStatus.PENDING:
                raise ConflictError("Only pending orders can be deleted")
            units = await self._restore_stock(order)
            order.raise_event(OrderDeleted(order.id, units))
            await self._orders.delete(order)
        logger.info("Deleted order %s, restored %d unit(s)", order.id, units)


class AddItemToOrderHandler(_OrderHandler):
    async def __call__(self, cmd: AddItemToOrder) -> dict[str, Any]:
        _check_line(cmd.sweet_id, cmd.quantity)
        async with self._db.transaction():
            order = await self._require_order(cmd.order_id)
            self._require_modifiable(order)
            sweet = await self._require_sellable(cmd.sweet_id, cmd.quantity)
            order.add_or_merge(OrderItem.for_sweet(sweet, cmd.quantity, cmd.notes))
            await self._take_stock(sweet, cmd.quantity)
            await self._orders.save(order)
        logger.info("Added %d x sweet %s to order %s", cmd.quantity, sweet.id, order.id)
        return order.to_dict()


class UpdateOrderItemHandler(_OrderHandler):
    async def __call__(self, cmd: UpdateOrderItem) -> dict[str, Any]:
        if cmd.quantity is None or not 1 <= cmd.quantity <= MAX_ITEM_QUANTITY:
            raise ValidationError(f"Invalid quantity: {cmd.quantity}")
        async with self._db.transaction():
            order = await self._require_order(cmd.order_id)
            self._require_modifiable(order)
            item = await self._require_item(order, cmd.item_id)
            original = item.quantity

            # Put the old units back, then take the new amount.
            await self._sweets.increase_stock(item.sweet_id, original)
            sweet = await self._require_sweet(item.sweet_id)
            if sweet.quantity < cmd.quantity:
                await self._sweets.reduce_stock(item.sweet_id, original)
                raise ConflictError(insufficient_stock(sweet, cmd.quantity))

            item.change_quantity(cmd.quantity)
            if cmd.notes is not None:
                item.notes = cmd.notes
            await self._take_stock(sweet, cmd.quantity)
            order.recalculate_total()
            await self._orders.save(order)
        logger.info("Order %s item %s quantity %d -> %d", order.id, item.id, original, cmd.quantity)
        return order.to_dict()


class RemoveItemFromOrderHandler(_OrderHandler):
    async def __call__(self, cmd: RemoveItemFromOrder) -> dict[str, Any]:
        async with self._db.transaction():
            order = await self._require_order(cmd.order_id)
            self._require_modifiable(order)
            item = await self._require_item(order, cmd.item_id)
            await self._sweets.increase_stock(item.sweet_id, item.quantity)
            order.remove_item(item)
            await self._orders.save(order)
        logger.info("Removed item %s from order %s", item.id, order.id)
        return order.to_dict()


# --- queries ----------------------------------------------------------------


@dataclass
class GetOrder(Query):
    order_id: int


@dataclass
class ListOrders(Query):
    pass


@dataclass
class ListOrdersByCustomerEmail(Query):
    email: str


@dataclass
class ListOrdersContainingSweet(Query):
    sweet_id: int


class GetOrderHandler:
    def __init__(self, order_repository: IOrderRepository):
        self._orders = order_repository

    async def __call__(self, query: GetOrder) -> dict[str, Any]:
        order = await self._orders.get(query.order_id)
        if order is None:
            raise NotFoundError(order_not_found(query.order_id))
        return order.to_dict()


class ListOrdersHandler:
    def __init__(self, order_repository: IOrderRepository):
        self._orders = order_repository

    async def __call__(self, query: ListOrders) -> list[dict[str, Any]]:
        return [o.to_dict() for o in await self._orders.list_all()]


class ListOrdersByCustomerEmailHandler:
    def __init__(self, order_repository: IOrderRepository):
        self._orders = order_repository

    async def __call__(self, query: ListOrdersByCustomerEmail) -> list[dict[str, Any]]:
        email = query.email.strip().casefold()
        return [o.to_dict() for o in await self._orders.list_all() if o.customer_email.casefold() == email]


class ListOrdersContainingSweetHandler:
    def __init__(self, order_repository: IOrderRepository):
        self._orders = order_repository

    async def __call__(self, query: ListOrdersContainingSweet) -> list[dict[str, Any]]:
        orders = [o for o in await self._orders.list_all() if o.item_for_sweet(query.sweet_id) is not None]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return [o.to_dict() for o in orders]
