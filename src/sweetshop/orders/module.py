"""One object = full bounded context «orders»."""
import logging

from sweetshop.ddd import DomainModule
from sweetshop.inventory.domain import SweetUsage

from .application import (
    AddItemToOrder,
    AddItemToOrderHandler,
    CancelOrder,
    CancelOrderHandler,
    CreateOrder,
    CreateOrderHandler,
    DeleteOrder,
    DeleteOrderHandler,
    GetOrder,
    GetOrderHandler,
    ListOrders,
    ListOrdersByCustomerEmail,
    ListOrdersByCustomerEmailHandler,
    ListOrdersContainingSweet,
    ListOrdersContainingSweetHandler,
    ListOrdersHandler,
    RemoveItemFromOrder,
    RemoveItemFromOrderHandler,
    UpdateOrder,
    UpdateOrderHandler,
    UpdateOrderItem,
    UpdateOrderItemHandler,
    UpdateOrderStatus,
    UpdateOrderStatusHandler,
)
from .domain import Order, OrderCancelled, OrderDeleted, OrderPlaced, OrderStatusChanged
from .infrastructure import IOrderRepository, OrderRepositoryImpl, OrderSweetUsage

logger = logging.getLogger(__name__)


def log_order_placed(event: OrderPlaced) -> None:
    logger.info(
        "Order %s placed by %s: %d line(s), total %s",
        event.order_id, event.customer_email, event.item_count, event.total_amount,
    )


def log_status_changed(event: OrderStatusChanged) -> None:
    logger.info("Order %s moved from %s to %s", event.order_id, event.previous.value, event.current.value)


def log_order_cancelled(event: OrderCancelled) -> None:
    logger.info("Order %s cancelled, %d unit(s) back in stock", event.order_id, event.restored_units)


def log_order_deleted(event: OrderDeleted) -> None:
    logger.info("Order %s deleted, %d unit(s) back in stock", event.order_id, event.restored_units)


orders_module = (
    DomainModule("orders", roles=("USER", "ADMIN"))
    .aggregate(Order)
    .repository(IOrderRepository, OrderRepositoryImpl)
    .bind(SweetUsage, OrderSweetUsage)
    .command(CreateOrder, CreateOrderHandler, status_code=201)
    .command(UpdateOrder, UpdateOrderHandler)
    .command(UpdateOrderStatus, UpdateOrderStatusHandler)
    .command(CancelOrder, CancelOrderHandler)
    .command(DeleteOrder, DeleteOrderHandler, status_code=204)
    .command(AddItemToOrder, AddItemToOrderHandler)
    .command(UpdateOrderItem, UpdateOrderItemHandler)
    .command(RemoveItemFromOrder, RemoveItemFromOrderHandler)
    .query(GetOrder, GetOrderHandler)
    .query(ListOrders, ListOrdersHandler)
    .query(ListOrdersByCustomerEmail, ListOrdersByCustomerEmailHandler)
    .query(ListOrdersContainingSweet, ListOrdersContainingSweetHandler)
    .on_event(OrderPlaced, log_order_placed)
    .on_event(OrderStatusChanged, log_status_changed)
    .on_event(OrderCancelled, log_order_cancelled)
    .on_event(OrderDeleted, log_order_deleted)
)
