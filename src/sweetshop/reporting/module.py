"""One object = bounded context «reports»: read-only, signed-in users only."""
from sweetshop.ddd import DomainModule

from .application import (
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

reports_module = (
    DomainModule("reports", roles=("USER", "ADMIN"))
    .query(ListOrdersByStatus, ListOrdersByStatusHandler)
    .query(ListPendingOrders, ListPendingOrdersHandler)
    .query(ListActiveOrders, ListActiveOrdersHandler)
    .query(ListRecentOrders, ListRecentOrdersHandler)
    .query(SearchOrdersByCustomer, SearchOrdersByCustomerHandler)
    .query(CountOrdersByStatus, CountOrdersByStatusHandler)
    .query(GetOrderStatistics, GetOrderStatisticsHandler)
    .query(GetTotalRevenue, GetTotalRevenueHandler)
    .query(ListCompletedOrdersBetween, ListCompletedOrdersBetweenHandler)
)
