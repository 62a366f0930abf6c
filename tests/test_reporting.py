"""Order reports and revenue."""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from sweetshop.core.errors import ValidationError
from sweetshop.orders.domain import OrderStatus
from sweetshop.reporting.application import (
    CountOrdersByStatus,
    CountOrdersByStatusHandler,
    GetOrderStatistics,
    GetOrderStatisticsHandler,
    GetTotalRevenue,
    GetTotalRevenueHandler,
    ListActiveOrders,
    ListActiveOrdersHandler,
    ListCompletedOrdersBetween,
    ListCompletedOrdersBetweenHandler,
    ListOrdersByStatus,
    ListOrdersByStatusHandler,
    ListPendingOrders,
    ListPendingOrdersHandler,
    ListRecentOrders,
    ListRecentOrdersHandler,
    SearchOrdersByCustomer,
    SearchOrdersByCustomerHandler,
)

NOW = datetime.now(timezone.utc)
YESTERDAY = NOW - timedelta(days=1)
TOMORROW = NOW + timedelta(days=1)


@pytest.fixture
def book(make_sweet, place, set_status):
    """Four orders: 50.00 delivered, 20.00 completed, 30.00 confirmed, 10.00 pending."""
    sweet = make_sweet(price="10.00", quantity=500)
    delivered = place((sweet.id, 5), name="Asha Rao")
    completed = place((sweet.id, 2), name="Ravi Kumar")
    confirmed = place((sweet.id, 3), name="asha patel")
    pending = place((sweet.id, 1), name="Meera Iyer")
    set_status(delivered["id"], OrderStatus.DELIVERED)
    set_status(completed["id"], OrderStatus.COMPLETED)
    set_status(confirmed["id"], OrderStatus.CONFIRMED)
    return {"delivered": delivered, "completed": completed, "confirmed": confirmed, "pending": pending}


def ids(result):
    return [o["id"] for o in result]


# ---------------------------------------------------------------------------
# revenue
# ---------------------------------------------------------------------------


class TestRevenue:
    def test_sums_completed_orders_in_range(self, handler, book):
        result = asyncio.run(handler(GetTotalRevenueHandler)(GetTotalRevenue(YESTERDAY, TOMORROW)))
        assert result["total_revenue"] == Decimal("20.00")
        assert result["order_count"] == 1

    def test_delivered_order_counts_once_completed(self, handler, book, set_status):
        set_status(book["delivered"]["id"], OrderStatus.COMPLETED)
        result = asyncio.run(handler(GetTotalRevenueHandler)(GetTotalRevenue(YESTERDAY, TOMORROW)))
        assert result["total_revenue"] == Decimal("70.00")
        assert result["order_count"] == 2

    def test_empty_range_is_zero(self, handler, book):
        long_ago = NOW - timedelta(days=30)
        result = asyncio.run(handler(GetTotalRevenueHandler)(GetTotalRevenue(long_ago, YESTERDAY)))
        assert result["total_revenue"] == Decimal("0.00")
        assert str(result["total_revenue"]) == "0.00"
        assert result["order_count"] == 0

    def test_no_orders_at_all(self, handler):
        result = asyncio.run(handler(GetTotalRevenueHandler)(GetTotalRevenue(YESTERDAY, TOMORROW)))
        assert result["total_revenue"] == Decimal("0.00")

    def test_cancelled_orders_not_counted(self, handler, make_sweet, place, set_status):
        sweet = make_sweet(quantity=10)
        order = place((sweet.id, 1))
        set_status(order["id"], OrderStatus.CANCELLED)
        result = asyncio.run(handler(GetTotalRevenueHandler)(GetTotalRevenue(YESTERDAY, TOMORROW)))
        assert result["order_count"] == 0

    def test_completed_between_lists_matches(self, handler, book):
        result = asyncio.run(
            handler(ListCompletedOrdersBetweenHandler)(ListCompletedOrdersBetween(YESTERDAY, TOMORROW))
        )
        assert ids(result) == [book["completed"]["id"]]
        assert all(o["completed_at"] is not None for o in result)


# ---------------------------------------------------------------------------
# status views
# ---------------------------------------------------------------------------


class TestStatusViews:
    def test_by_status(self, handler, book):
        result = asyncio.run(handler(ListOrdersByStatusHandler)(ListOrdersByStatus(OrderStatus.CONFIRMED)))
        assert ids(result) == [book["confirmed"]["id"]]

    def test_pending_and_active(self, handler, book):
        pending = asyncio.run(handler(ListPendingOrdersHandler)(ListPendingOrders()))
        active = asyncio.run(handler(ListActiveOrdersHandler)(ListActiveOrders()))
        assert ids(pending) == [book["pending"]["id"]]
        assert ids(active) == [book["confirmed"]["id"]]

    def test_count(self, handler, book):
        result = asyncio.run(handler(CountOrdersByStatusHandler)(CountOrdersByStatus(OrderStatus.PENDING)))
        assert result == {"status": "PENDING", "count": 1}

    def test_statistics_cover_every_status(self, handler, book):
        result = asyncio.run(handler(GetOrderStatisticsHandler)(GetOrderStatistics()))
        assert result["total"] == 4
        assert set(result["by_status"]) == {s.value for s in OrderStatus}
        assert result["by_status"]["DELIVERED"] == 1
        assert result["by_status"]["CANCELLED"] == 0


class TestRecentAndSearch:
    def test_recent_newest_first_and_limited(self, handler, book):
        result = asyncio.run(handler(ListRecentOrdersHandler)(ListRecentOrders(limit=2)))
        assert ids(result) == [book["pending"]["id"], book["confirmed"]["id"]]

    def test_recent_default_limit(self, handler, book):
        assert len(asyncio.run(handler(ListRecentOrdersHandler)(ListRecentOrders()))) == 4

    def test_recent_rejects_non_positive_limit(self, handler):
        with pytest.raises(ValidationError):
            asyncio.run(handler(ListRecentOrdersHandler)(ListRecentOrders(limit=0)))

    def test_search_is_case_insensitive_substring(self, handler, book):
        result = asyncio.run(handler(SearchOrdersByCustomerHandler)(SearchOrdersByCustomer("ASHA")))
        assert sorted(ids(result)) == sorted([book["delivered"]["id"], book["confirmed"]["id"]])
