"""Application layer: catalog commands, queries, handlers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable

from sweetshop.core.errors import ConflictError, ValidationError
from sweetshop.ddd import Command, Query
from sweetshop.persistence import InMemoryDatabase

from .domain import (
    DEFAULT_MIN_STOCK_LEVEL,
    PricingType,
    Sweet,
    SweetCategory,
    SweetDeleted,
    SweetUsage,
)
from .infrastructure import ISweetRepository

logger = logging.getLogger(__name__)


# --- commands ---------------------------------------------------------------


@dataclass
class CreateSweet(Command):
    name: str
    category: SweetCategory
    price: Decimal
    quantity: int = 0
    description: str | None = None
    pricing_type: PricingType = PricingType.PER_ITEM
    min_stock_level: int = DEFAULT_MIN_STOCK_LEVEL
    image_url: str | None = None
    is_available: bool = True
    unit: str | None = None
    brand: str | None = None


@dataclass
class UpdateSweet(Command):
    """Partial update: only the fields that are sent change."""
    sweet_id: int
    name: str | None = None
    description: str | None = None
    category: SweetCategory | None = None
    price: Decimal | None = None
    pricing_type: PricingType | None = None
    quantity: int | None = None
    min_stock_level: int | None = None
    image_url: str | None = None
    is_available: bool | None = None
    unit: str | None = None
    brand: str | None = None


@dataclass
class DeleteSweet(Command):
    sweet_id: int


@dataclass
class UpdateStock(Command):
    sweet_id: int
    quantity: int


@dataclass
class ReduceStock(Command):
    sweet_id: int
    amount: int


@dataclass
class IncreaseStock(Command):
    sweet_id: int
    amount: int


@dataclass
class ToggleAvailability(Command):
    sweet_id: int


class _SweetHandler:
    def __init__(self, database: InMemoryDatabase, sweet_repository: ISweetRepository):
        self._db = database
        self._sweets = sweet_repository

    async def _ensure_unique_name(self, name: str, sweet_id: int | None = None) -> None:
        existing = await self._sweets.find_by_name(name)
        if existing is not None and existing.id != sweet_id:
            raise ConflictError(f"Sweet with name '{name.strip()}' already exists")


class CreateSweetHandler(_SweetHandler):
    async def __call__(self, cmd: CreateSweet) -> dict[str, Any]:
        async with self._db.transaction():
            await self._ensure_unique_name(cmd.name)
            sweet = Sweet(
                None,
                cmd.name,
                cmd.category,
                cmd.price,
                cmd.quantity,
                description=cmd.description,
                pricing_type=cmd.pricing_type,
                min_stock_level=cmd.min_stock_level,
                image_url=cmd.image_url,
                is_available=cmd.is_available,
                unit=cmd.unit,
                brand=cmd.brand,
            )
            await self._sweets.add(sweet)
        logger.info("Created sweet %s (%s)", sweet.id, sweet.name)
        return sweet.to_dict()


class UpdateSweetHandler(_SweetHandler):
    async def __call__(self, cmd: UpdateSweet) -> dict[str, Any]:
        async with self._db.transaction():
            sweet = await self._sweets.require(cmd.sweet_id)
            if cmd.name is not None and cmd.name.strip():
                await self._ensure_unique_name(cmd.name, sweet.id)
            sweet.apply_changes(
                name=cmd.name,
                description=cmd.description,
                category=cmd.category,
                price=cmd.price,
                pricing_type=cmd.pricing_type,
                quantity=cmd.quantity,
                min_stock_level=cmd.min_stock_level,
                image_url=cmd.image_url,
                is_available=cmd.is_available,
                unit=cmd.unit,
                brand=cmd.brand,
            )
            await self._sweets.save(sweet)
        logger.info("Updated sweet %s", sweet.id)
        return sweet.to_dict()


class DeleteSweetHandler(_SweetHandler):
    def __init__(self, database: InMemoryDatabase, sweet_repository: ISweetRepository, sweet_usage: SweetUsage):
        super().__init__(database, sweet_repository)
        self._usage = sweet_usage

    async def __call__(self, cmd: DeleteSweet) -> None:
        async with self._db.transaction():
            sweet = await self._sweets.require(cmd.sweet_id)
            if await self._usage.is_referenced(sweet.id):
                raise ConflictError(f"Sweet '{sweet.name}' is referenced by existing orders and cannot be deleted")
            sweet.raise_event(SweetDeleted(sweet.id, sweet.name))
            await self._sweets.delete(sweet)
        logger.info("Deleted sweet %s (%s)", sweet.id, sweet.name)


class UpdateStockHandler(_SweetHandler):
    async def __call__(self, cmd: UpdateStock) -> dict[str, Any]:
        async with self._db.transaction():
            sweet = await self._sweets.update_stock(cmd.sweet_id, cmd.quantity)
        logger.info("Stock of sweet %s set to %d", sweet.id, sweet.quantity)
        return sweet.to_dict()


class ReduceStockHandler(_SweetHandler):
    async def __call__(self, cmd: ReduceStock) -> dict[str, Any]:
        if cmd.amount <= 0:
            raise ValidationError(f"Invalid quantity: {cmd.amount}")
        async with self._db.transaction():
            if not await self._sweets.reduce_stock(cmd.sweet_id, cmd.amount):
                raise ConflictError("Insufficient stock")
            sweet = await self._sweets.require(cmd.sweet_id)
        return sweet.to_dict()


class IncreaseStockHandler(_SweetHandler):
    async def __call__(self, cmd: IncreaseStock) -> dict[str, Any]:
        if cmd.amount <= 0:
            raise ValidationError(f"Invalid quantity: {cmd.amount}")
        async with self._db.transaction():
            sweet = await self._sweets.increase_stock(cmd.sweet_id, cmd.amount)
        return sweet.to_dict()


class ToggleAvailabilityHandler(_SweetHandler):
    async def __call__(self, cmd: ToggleAvailability) -> dict[str, Any]:
        async with self._db.transaction():
            sweet = await self._sweets.require(cmd.sweet_id)
            sweet.toggle_availability()
            await self._sweets.save(sweet)
        logger.info("Sweet %s is now %s", sweet.id, "available" if sweet.is_available else "unavailable")
        return sweet.to_dict()


# --- queries ----------------------------------------------------------------


@dataclass
class GetSweet(Query):
    sweet_id: int


@dataclass
class ListSweets(Query):
    pass


@dataclass
class ListAvailableSweets(Query):
    pass


@dataclass
class ListSweetsByCategory(Query):
    category: SweetCategory


@dataclass
class SearchSweets(Query):
    """Case-insensitive match on name, description or brand; blank term lists everything."""
    term: str = ""


@dataclass
class ListLowStockSweets(Query):
    pass


@dataclass
class ListOutOfStockSweets(Query):
    pass


@dataclass
class ListInStockSweets(Query):
    pass


@dataclass
class ListSweetsByPriceRange(Query):
    min_price: Decimal
    max_price: Decimal


@dataclass
class ListSweetsByBrand(Query):
    brand: str


class GetSweetHandler:
    def __init__(self, sweet_repository: ISweetRepository):
        self._sweets = sweet_repository

    async def __call__(self, query: GetSweet) -> dict[str, Any]:
        sweet = await self._sweets.require(query.sweet_id)
        return sweet.to_dict()


class _SweetListHandler:
    """Filters the full catalog; subclasses supply the predicate."""

    def __init__(self, sweet_repository: ISweetRepository):
        self._sweets = sweet_repository

    def predicate(self, query: Any) -> Callable[[Sweet], bool]:
        return lambda sweet: True

    async def __call__(self, query: Any) -> list[dict[str, Any]]:
        keep = self.predicate(query)
        sweets = [s for s in await self._sweets.list_all() if keep(s)]
        logger.debug("%s matched %d sweet(s)", type(query).__name__, len(sweets))
        return [s.to_dict() for s in sweets]


class ListSweetsHandler(_SweetListHandler):
    pass


class ListAvailableSweetsHandler(_SweetListHandler):
    def predicate(self, query: ListAvailableSweets) -> Callable[[Sweet], bool]:
        return lambda s: s.is_available


class ListSweetsByCategoryHandler(_SweetListHandler):
    def predicate(self, query: ListSweetsByCategory) -> Callable[[Sweet], bool]:
        return lambda s: s.category is query.category


class SearchSweetsHandler(_SweetListHandler):
    def predicate(self, query: SearchSweets) -> Callable[[Sweet], bool]:
        term = query.term.strip().casefold()
        if not term:
            return lambda s: True
        return lambda s: any(term in (text or "").casefold() for text in (s.name, s.description, s.brand))


class ListLowStockSweetsHandler(_SweetListHandler):
    def predicate(self, query: ListLowStockSweets) -> Callable[[Sweet], bool]:
        return lambda s: s.is_low_stock


class ListOutOfStockSweetsHandler(_SweetListHandler):
    def predicate(self, query: ListOutOfStockSweets) -> Callable[[Sweet], bool]:
        return lambda s: s.quantity == 0


class ListInStockSweetsHandler(_SweetListHandler):
    def predicate(self, query: ListInStockSweets) -> Callable[[Sweet], bool]:
        return lambda s: s.is_in_stock


class ListSweetsByPriceRangeHandler(_SweetListHandler):
    def predicate(self, query: ListSweetsByPriceRange) -> Callable[[Sweet], bool]:
        if query.min_price > query.max_price:
            raise ValidationError("min_price must not exceed max_price")
        return lambda s: query.min_price <= s.price <= query.max_price


class ListSweetsByBrandHandler(_SweetListHandler):
    def predicate(self, query: ListSweetsByBrand) -> Callable[[Sweet], bool]:
        brand = query.brand.strip().casefold()
        return lambda s: (s.brand or "").casefold() == brand
