"""Order reports: status views, recent orders, customer search, counts and revenue."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sweetshop.core.errors import ValidationError
from sweetshop.core.validation import UtcDatetime
from sweetshop.ddd import Query
from sweetshop.orders.domain import ACTIVE_STATUSES, REVENUE_STATUSES, ZERO, Order, OrderStatus
from sweetshop.orders.infrastructure import IOrderRepository

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 10


@dataclass
class ListOrdersByStatus(Query):
    status: OrderStatus


@dataclass
class ListPendingOrders(Query):
    pass


@dataclass
class ListActiveOrders(Query):
    """Confirmed through out-for-delivery, oldest first."""


@dataclass
class ListRecentOrders(Query):
    limit: int = DEFAULT_RECENT_LIMIT


@dataclass
class SearchOrdersByCustomer(Query):
    name: str


@dataclass
class CountOrdersByStatus(Query):
    status: OrderStatus


@dataclass
class GetOrderStatistics(Query):
    pass


@dataclass
class GetTotalRevenue(Query):
    """Sum of orders whose completion falls in [start, end]."""
    start: UtcDatetime
    end: UtcDatetime


@dataclass
class ListCompletedOrdersBetween(Query):
    start: UtcDatetime
    end: UtcDatetime


def _completed_between(orders: list[Order], start: datetime, end: datetime) -> list[Order]:
    return [
        o for o in orders
        if o.status in REVENUE_STATUSES and o.completed_at is not None and start <= o.completed_at <= end
    ]


class _ReportHandler:
    def __init__(self, order_repository: IOrderRepository):
        self._orders = order_repository

    async def _by_status(self, *statuses: OrderStatus) -> list[Order]:
        return [o for o in await self._orders.list_all() if o.status in statuses]


class ListOrdersByStatusHandler(_ReportHandler):
    async def __call__(self, query: ListOrdersByStatus) -> list[dict[str, Any]]:
        return [o.to_dict() for o in await self._by_status(query.status)]


class ListPendingOrdersHandler(_ReportHandler):
    async def __call__(self, query: ListPendingOrders) -> list[dict[str, Any]]:
        orders = sorted(await self._by_status(OrderStatus.PENDING), key=lambda o: o.created_at)
        return [o.to_dict() for o in orders]


class ListActiveOrdersHandler(_ReportHandler):
    async def __call__(self, query: ListActiveOrders) -> list[dict[str, Any]]:
        orders = sorted(await self._by_status(*ACTIVE_STATUSES), key=lambda o: o.created_at)
        return [o.to_dict() for o in orders]


class ListRecentOrdersHandler(_ReportHandler):
    async def __call__(self, query: ListRecentOrders) -> list[dict[str, Any]]:
        if query.limit < 1:
            raise ValidationError("limit must be positive", fields={"limit": "must be at least 1"})
        # Newest first; ties broken by id so equal timestamps keep insertion order.
        orders = sorted(await self._orders.list_all(), key=lambda o: (o.created_at, o.id), reverse=True)
        return [o.to_dict() for o in orders[: query.limit]]


class SearchOrdersByCustomerHandler(_ReportHandler):
    async def __call__(self, query: SearchOrdersByCustomer) -> list[dict[str, Any]]:
        needle = query.name.strip().casefold()
        return [o.to_dict() for o in await self._orders.list_all() if needle in o.customer_name.casefold()]


class CountOrdersByStatusHandler(_ReportHandler):
    async def __call__(self, query: CountOrdersByStatus) -> dict[str, Any]:
        return {"status": query.status.value, "count": len(await self._by_status(query.status))}


class GetOrderStatisticsHandler(_ReportHandler):
    async def __call__(self, query: GetOrderStatistics) -> dict[str, Any]:
        counts = {status.value: 0 for status in OrderStatus}
        orders = await self._orders.list_all()
        for order in orders:
            counts[order.status.value] += 1
        return {"total": len(orders), "by_status": counts}


class GetTotalRevenueHandler(_ReportHandler):
    async def __call__(self, query: GetTotalRevenue) -> dict[str, Any]:
        matched = _completed_between(await self._orders.list_all(), query.start, query.end)
        revenue: Decimal = sum((o.total_amount for o in matched), ZERO)
        logger.debug("Revenue %s from %d order(s) between %s and %s", revenue, len(matched), query.start, query.end)
        return {
            "start": query.start,
            "end": query.end,
            "order_count": len(matched),
            "total_revenue": revenue.quantize(ZERO),
        }


class ListCompletedOrdersBetweenHandler(_ReportHandler):
    async def __call__(self, query: ListCompletedOrdersBetween) -> list[dict[str, Any]]:
        matched = _completed_between(await self._orders.list_all(), query.start, query.end)
        matched.sort(key=lambda o: o.completed_at, reverse=True)
        return [o.to_dict() for o in matched]
