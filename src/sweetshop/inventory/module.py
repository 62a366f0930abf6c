"""One object = full bounded context «sweets»: catalog and stock."""
import logging

from sweetshop.ddd import DomainModule

from .application import (
    CreateSweet,
    CreateSweetHandler,
    DeleteSweet,
    DeleteSweetHandler,
    GetSweet,
    GetSweetHandler,
    IncreaseStock,
    IncreaseStockHandler,
    ListAvailableSweets,
    ListAvailableSweetsHandler,
    ListInStockSweets,
    ListInStockSweetsHandler,
    ListLowStockSweets,
    ListLowStockSweetsHandler,
    ListOutOfStockSweets,
    ListOutOfStockSweetsHandler,
    ListSweets,
    ListSweetsByBrand,
    ListSweetsByBrandHandler,
    ListSweetsByCategory,
    ListSweetsByCategoryHandler,
    ListSweetsByPriceRange,
    ListSweetsByPriceRangeHandler,
    ListSweetsHandler,
    ReduceStock,
    ReduceStockHandler,
    SearchSweets,
    SearchSweetsHandler,
    ToggleAvailability,
    ToggleAvailabilityHandler,
    UpdateSweet,
    UpdateSweetHandler,
    UpdateStock,
    UpdateStockHandler,
)
from .domain import StockLow, Sweet, SweetDeleted
from .infrastructure import ISweetRepository, SweetRepositoryImpl

logger = logging.getLogger(__name__)

ADMIN = ("ADMIN",)
STAFF = ("USER", "ADMIN")


def warn_low_stock(event: StockLow) -> None:
    logger.warning(
        "Low stock: sweet %s (%s) has %d left, minimum %d",
        event.sweet_id, event.name, event.quantity, event.min_stock_level,
    )


def log_sweet_deleted(event: SweetDeleted) -> None:
    logger.info("Sweet %s (%s) removed from catalog", event.sweet_id, event.name)


# Reads are public; any signed-in user may add a sweet; everything else is admin-only.
sweets_module = (
    DomainModule("sweets")
    .aggregate(Sweet)
    .repository(ISweetRepository, SweetRepositoryImpl)
    .command(CreateSweet, CreateSweetHandler, roles=STAFF, status_code=201)
    .command(UpdateSweet, UpdateSweetHandler, roles=ADMIN)
    .command(DeleteSweet, DeleteSweetHandler, roles=ADMIN, status_code=204)
    .command(UpdateStock, UpdateStockHandler, roles=ADMIN)
    .command(ReduceStock, ReduceStockHandler, roles=ADMIN)
    .command(IncreaseStock, IncreaseStockHandler, roles=ADMIN)
    .command(ToggleAvailability, ToggleAvailabilityHandler, roles=ADMIN)
    .query(GetSweet, GetSweetHandler)
    .query(ListSweets, ListSweetsHandler)
    .query(ListAvailableSweets, ListAvailableSweetsHandler)
    .query(ListSweetsByCategory, ListSweetsByCategoryHandler)
    .query(SearchSweets, SearchSweetsHandler)
    .query(ListLowStockSweets, ListLowStockSweetsHandler)
    .query(ListOutOfStockSweets, ListOutOfStockSweetsHandler)
    .query(ListInStockSweets, ListInStockSweetsHandler)
    .query(ListSweetsByPriceRange, ListSweetsByPriceRangeHandler)
    .query(ListSweetsByBrand, ListSweetsByBrandHandler)
    .on_event(StockLow, warn_low_stock)
    .on_event(SweetDeleted, log_sweet_deleted)
)
