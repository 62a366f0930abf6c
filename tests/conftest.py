"""Shared fixtures: a fully composed app with an empty database, plus helpers to stock it."""

import asyncio
from decimal import Decimal

import pytest

from sweetshop.app import create_app
from sweetshop.config import Settings
from sweetshop.inventory.domain import Sweet, SweetCategory
from sweetshop.inventory.infrastructure import ISweetRepository
from sweetshop.orders.application import (
    CreateOrder,
    CreateOrderHandler,
    OrderLine,
    UpdateOrderStatus,
    UpdateOrderStatusHandler,
)
from sweetshop.orders.infrastructure import IOrderRepository
from sweetshop.persistence import InMemoryDatabase


@pytest.fixture
def settings():
    return Settings(seed_sample_data=False, password_hash_iterations=1_000)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def container(app):
    return app.container


@pytest.fixture
def db(container):
    return container.resolve(InMemoryDatabase)


@pytest.fixture
def sweets(container):
    return container.resolve(ISweetRepository)


@pytest.fixture
def orders(container):
    return container.resolve(IOrderRepository)


@pytest.fixture
def handler(container):
    """Resolve a command/query handler class the way the HTTP layer does."""
    return container.resolve


@pytest.fixture
def make_sweet(db, sweets):
    def make(name="Kaju Katli", price="10.00", quantity=100, category=SweetCategory.DRY_FRUIT, **kwargs):
        sweet = Sweet(None, name, category, Decimal(price), quantity, **kwargs)

        async def save():
            async with db.transaction():
                await sweets.add(sweet)

        asyncio.run(save())
        return sweet

    return make


@pytest.fixture
def stock_of(sweets):
    def stock(sweet_id):
        return asyncio.run(sweets.get(sweet_id)).quantity

    return stock


@pytest.fixture
def place(handler):
    def place_order(*lines, name="Asha Rao", email="asha@example.com"):
        cmd = CreateOrder(
            customer_name=name,
            customer_email=email,
            items=[OrderLine(sweet_id=s, quantity=q) for s, q in lines],
        )
        return asyncio.run(handler(CreateOrderHandler)(cmd))

    return place_order


@pytest.fixture
def set_status(handler):
    def change(order_id, status):
        return asyncio.run(handler(UpdateOrderStatusHandler)(UpdateOrderStatus(order_id, status)))

    return change
