"""Order transaction handlers: stock coupling, rollback and the order state rules."""

import asyncio
from decimal import Decimal

import pytest

from sweetshop.core.errors import ConflictError, NotFoundError, ValidationError
from sweetshop.domain import EventBus
from sweetshop.inventory.application import UpdateSweet, UpdateSweetHandler
from sweetshop.inventory.infrastructure import ISweetRepository, SweetRepositoryImpl
from sweetshop.orders.application import (
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
    ListOrdersByCustomerEmail,
    ListOrdersByCustomerEmailHandler,
    ListOrdersContainingSweet,
    ListOrdersContainingSweetHandler,
    OrderLine,
    RemoveItemFromOrder,
    RemoveItemFromOrderHandler,
    UpdateOrder,
    UpdateOrderHandler,
    UpdateOrderItem,
    UpdateOrderItemHandler,
    UpdateOrderStatus,
    UpdateOrderStatusHandler,
)
from sweetshop.orders.domain import OrderCancelled, OrderPlaced, OrderStatus


def assert_totals_consistent(order):
    for item in order["items"]:
        assert item["subtotal"] == item["unit_price"] * item["quantity"]
    assert order["total_amount"] == sum((i["subtotal"] for i in order["items"]), Decimal("0"))


# ---------------------------------------------------------------------------
# create_order
# ---------------------------------------------------------------------------


class TestCreateOrder:
    def test_reduces_stock_and_totals_lines(self, place, make_sweet, stock_of):
        sweet = make_sweet(quantity=100, price="10.00")

        order = place((sweet.id, 5))

        assert order["status"] == "PENDING"
        assert order["total_amount"] == Decimal("50.00")
        assert order["items"][0]["unit_price"] == Decimal("10.00")
        assert order["items"][0]["sweet_name"] == "Kaju Katli"
        assert order["items"][0]["id"] is not None
        assert stock_of(sweet.id) == 95
        assert_totals_consistent(order)

    def test_multiple_lines(self, place, make_sweet, stock_of):
        a = make_sweet("Jalebi", price="180.00", quantity=10)
        b = make_sweet("Besan Laddu", price="15.00", quantity=20)

        order = place((a.id, 2), (b.id, 4))

        assert order["total_amount"] == Decimal("420.00")
        assert order["total_quantity"] == 6
        assert stock_of(a.id) == 8
        assert stock_of(b.id) == 16
        assert_totals_consistent(order)

    def test_insufficient_stock_changes_nothing(self, place, make_sweet, stock_of, db):
        sweet = make_sweet(quantity=3)

        with pytest.raises(ConflictError) as exc:
            place((sweet.id, 5))

        assert str(exc.value) == "Insufficient stock for sweet 'Kaju Katli'. Available: 3, Requested: 5"
        assert stock_of(sweet.id) == 3
        assert db.count("orders") == 0

    def test_short_second_line_leaves_first_sweet_untouched(self, place, make_sweet, stock_of, db):
        a = make_sweet("Rasgulla", quantity=50)
        b = make_sweet("Sandesh", quantity=1)

        with pytest.raises(ConflictError):
            place((a.id, 10), (b.id, 2))

        assert stock_of(a.id) == 50
        assert stock_of(b.id) == 1
        assert db.count("orders") == 0

    def test_repeated_sweet_is_checked_against_combined_quantity(self, place, make_sweet, stock_of):
        sweet = make_sweet(quantity=6)

        with pytest.raises(ConflictError, match="Requested: 8"):
            place((sweet.id, 4), (sweet.id, 4))

        assert stock_of(sweet.id) == 6

    def test_unknown_sweet(self, place):
        with pytest.raises(NotFoundError, match="Sweet not found with ID: 42"):
            place((42, 1))

    def test_unavailable_sweet(self, place, make_sweet, stock_of):
        sweet = make_sweet(is_available=False)

        with pytest.raises(ConflictError, match="is not available for purchase"):
            place((sweet.id, 1))

        assert stock_of(sweet.id) == 100

    @pytest.mark.parametrize(
        "cmd, message",
        [
            (CreateOrder("Asha", "a@example.com", []), "Order must contain at least one item"),
            (CreateOrder(None, "a@example.com", [OrderLine(1, 1)]), "Customer name is required"),
            (CreateOrder("Asha", "  ", [OrderLine(1, 1)]), "Customer email is required"),
            (CreateOrder("Asha", "a@example.com", [OrderLine(None, 1)]), "Sweet ID cannot be null"),
            (CreateOrder("Asha", "a@example.com", [OrderLine(1, 0)]), "Invalid quantity: 0"),
            (CreateOrder("Asha", "a@example.com", [OrderLine(1, 1001)]), "Invalid quantity: 1001"),
        ],
    )
    def test_rejects_malformed_input(self, handler, cmd, message):
        with pytest.raises(ValidationError) as exc:
            asyncio.run(handler(CreateOrderHandler)(cmd))
        assert exc.value.message == message

    def test_invalid_email_rolls_back(self, place, make_sweet, stock_of, db):
        sweet = make_sweet()

        with pytest.raises(ValidationError) as exc:
            place((sweet.id, 1), email="not-an-email")

        assert "customer_email" in exc.value.fields
        assert stock_of(sweet.id) == 100
        assert db.count("orders") == 0

    def test_concurrent_orders_cannot_oversell(self, container, handler, make_sweet, stock_of):
        class YieldingSweetRepository(SweetRepositoryImpl):
            # Suspends between reading stock and writing it back.
            async def get(self, id):
                sweet = await super().get(id)
                await asyncio.sleep(0)
                return sweet

        container.register_class(YieldingSweetRepository)
        container.register(ISweetRepository, lambda: container.resolve(YieldingSweetRepository))
        sweet = make_sweet(quantity=5)
        create = handler(CreateOrderHandler)
        assert isinstance(create._sweets, YieldingSweetRepository)

        async def race():
            cmd = CreateOrder("Asha", "a@example.com", [OrderLine(sweet.id, 3)])
            return await asyncio.gather(create(cmd), create(cmd), return_exceptions=True)

        results = asyncio.run(race())

        assert sum(isinstance(r, dict) for r in results) == 1
        assert sum(isinstance(r, ConflictError) for r in results) == 1
        assert stock_of(sweet.id) == 2

    def test_publishes_event_only_after_commit(self, container, place, make_sweet):
        seen = []
        container.resolve(EventBus).subscribe(OrderPlaced, seen.append)
        sweet = make_sweet(quantity=2)

        with pytest.raises(ConflictError):
            place((sweet.id, 3))
        assert seen == []

        order = place((sweet.id, 2))
        assert [e.order_id for e in seen] == [order["id"]]


# ---------------------------------------------------------------------------
# cancel / delete / status
# ---------------------------------------------------------------------------


class TestCancelAndDelete:
    def test_cancel_restores_stock(self, handler, place, make_sweet, stock_of):
        sweet = make_sweet(quantity=100, price="10.00")
        order = place((sweet.id, 5))

        cancelled = asyncio.run(handler(CancelOrderHandler)(CancelOrder(order["id"])))

        assert cancelled["status"] == "CANCELLED"
        assert stock_of(sweet.id) == 100

    def test_cancel_confirmed_order(self, handler, place, set_status, make_sweet, stock_of):
        sweet = make_sweet(quantity=10)
        order = place((sweet.id, 4))
        set_status(order["id"], OrderStatus.CONFIRMED)

        asyncio.run(handler(CancelOrderHandler)(CancelOrder(order["id"])))

        assert stock_of(sweet.id) == 10

    def test_cannot_cancel_twice(self, handler, place, make_sweet, stock_of):
        sweet = make_sweet(quantity=10)
        order = place((sweet.id, 4))
        cancel = handler(CancelOrderHandler)
        asyncio.run(cancel(CancelOrder(order["id"])))

        with pytest.raises(ConflictError, match="Order with status 'CANCELLED' cannot be cancelled"):
            asyncio.run(cancel(CancelOrder(order["id"])))
        assert stock_of(sweet.id) == 10

    def test_cannot_cancel_once_preparing(self, handler, place, set_status, make_sweet, stock_of):
        sweet = make_sweet(quantity=10)
        order = place((sweet.id, 4))
        set_status(order["id"], OrderStatus.PREPARING)

        with pytest.raises(ConflictError):
            asyncio.run(handler(CancelOrderHandler)(CancelOrder(order["id"])))
        assert stock_of(sweet.id) == 6

    def test_delete_pending_restores_stock(self, handler, place, make_sweet, stock_of, db):
        sweet = make_sweet(quantity=20)
        order = place((sweet.id, 7))

        result = asyncio.run(handler(DeleteOrderHandler)(DeleteOrder(order["id"])))

        assert result is None
        assert stock_of(sweet.id) == 20
        assert db.count("orders") == 0

    def test_delete_delivered_is_refused(self, handler, place, set_status, make_sweet, stock_of):
        sweet = make_sweet(quantity=100)
        order = place((sweet.id, 5))
        set_status(order["id"], OrderStatus.DELIVERED)

        with pytest.raises(ConflictError, match="Only pending orders can be deleted"):
            asyncio.run(handler(DeleteOrderHandler)(DeleteOrder(order["id"])))
        assert stock_of(sweet.id) == 95

    def test_missing_order(self, handler):
        with pytest.raises(NotFoundError, match="Order not found with ID: 9"):
            asyncio.run(handler(CancelOrderHandler)(CancelOrder(9)))

    def test_cancel_event(self, container, handler, place, make_sweet):
        seen = []
        container.resolve(EventBus).subscribe(OrderCancelled, seen.append)
        sweet = make_sweet()
        order = place((sweet.id, 3))

        asyncio.run(handler(CancelOrderHandler)(CancelOrder(order["id"])))

        assert seen == [OrderCancelled(order_id=order["id"], restored_units=3)]


class TestUpdateOrderStatus:
    def test_only_completion_stamps_completed_at(self, place, set_status, make_sweet):
        order = place((make_sweet().id, 1))
        assert order["completed_at"] is None

        delivered = set_status(order["id"], OrderStatus.DELIVERED)
        completed = set_status(order["id"], OrderStatus.COMPLETED)
        again = set_status(order["id"], OrderStatus.COMPLETED)

        assert delivered["completed_at"] is None
        assert completed["completed_at"] is not None
        assert again["completed_at"] == completed["completed_at"]

    def test_cancelling_through_status_restores_stock(self, place, set_status, make_sweet, stock_of):
        sweet = make_sweet(quantity=10)
        order = place((sweet.id, 4))

        result = set_status(order["id"], OrderStatus.CANCELLED)

        assert result["status"] == "CANCELLED"
        assert stock_of(sweet.id) == 10

    def test_cancelled_order_stays_cancelled(self, place, set_status, make_sweet, stock_of):
        sweet = make_sweet(quantity=10)
        order = place((sweet.id, 4))
        set_status(order["id"], OrderStatus.CANCELLED)

        with pytest.raises(ConflictError):
            set_status(order["id"], OrderStatus.PENDING)
        with pytest.raises(ConflictError):
            set_status(order["id"], OrderStatus.CANCELLED)
        assert stock_of(sweet.id) == 10

    def test_free_moves_by_default(self, place, set_status, make_sweet):
        order = place((make_sweet().id, 1))

        assert set_status(order["id"], OrderStatus.READY)["status"] == "READY"
        assert set_status(order["id"], OrderStatus.PENDING)["status"] == "PENDING"

    def test_notes_are_updated(self, handler, place, make_sweet):
        order = place((make_sweet().id, 1))

        result = asyncio.run(
            handler(UpdateOrderStatusHandler)(UpdateOrderStatus(order["id"], OrderStatus.CONFIRMED, "call first"))
        )

        assert result["notes"] == "call first"


class TestEnforcedTransitions:
    @pytest.fixture
    def settings(self):
        from sweetshop.config import Settings

        return Settings(seed_sample_data=False, enforce_status_transitions=True, password_hash_iterations=1_000)

    def test_skipping_states_is_refused(self, place, set_status, make_sweet):
        order = place((make_sweet().id, 1))

        with pytest.raises(ConflictError, match="from 'PENDING' to 'DELIVERED'"):
            set_status(order["id"], OrderStatus.DELIVERED)

    def test_happy_path(self, place, set_status, make_sweet):
        order = place((make_sweet().id, 1))
        for status in (
            OrderStatus.CONFIRMED,
            OrderStatus.PREPARING,
            OrderStatus.READY,
            OrderStatus.OUT_FOR_DELIVERY,
            OrderStatus.DELIVERED,
            OrderStatus.COMPLETED,
        ):
            assert set_status(order["id"], status)["status"] == status.value


# ---------------------------------------------------------------------------
# item mutations
# ---------------------------------------------------------------------------


class TestAddItem:
    def test_same_sweet_twice_merges_into_one_line(self, handler, place, make_sweet, stock_of):
        a = make_sweet("Jalebi", quantity=50, price="2.50")
        b = make_sweet("Imarti", quantity=50)
        order = place((b.id, 1))
        add = handler(AddItemToOrderHandler)

        asyncio.run(add(AddItemToOrder(order["id"], a.id, 3)))
        result = asyncio.run(add(AddItemToOrder(order["id"], a.id, 2)))

        lines = [i for i in result["items"] if i["sweet_id"] == a.id]
        assert len(lines) == 1
        assert lines[0]["quantity"] == 5
        assert lines[0]["subtotal"] == Decimal("12.50")
        assert stock_of(a.id) == 45
        assert_totals_consistent(result)

    def test_merge_keeps_original_price(self, handler, place, make_sweet):
        sweet = make_sweet(price="10.00")
        order = place((sweet.id, 1))
        asyncio.run(handler(UpdateSweetHandler)(UpdateSweet(sweet.id, price=Decimal("12.00"))))

        result = asyncio.run(handler(AddItemToOrderHandler)(AddItemToOrder(order["id"], sweet.id, 1)))

        assert result["items"][0]["unit_price"] == Decimal("10.00")
        assert result["total_amount"] == Decimal("20.00")

    def test_merged_quantity_over_limit(self, handler, place, make_sweet, stock_of):
        sweet = make_sweet(quantity=2000)
        order = place((sweet.id, 999))

        with pytest.raises(ValidationError):
            asyncio.run(handler(AddItemToOrderHandler)(AddItemToOrder(order["id"], sweet.id, 2)))
        assert stock_of(sweet.id) == 1001

    def test_not_on_confirmed_order(self, handler, place, set_status, make_sweet):
        sweet = make_sweet()
        order = place((sweet.id, 1))
        set_status(order["id"], OrderStatus.CONFIRMED)

        with pytest.raises(ConflictError, match="Order with status 'CONFIRMED' cannot be modified"):
            asyncio.run(handler(AddItemToOrderHandler)(AddItemToOrder(order["id"], sweet.id, 1)))

    def test_short_stock(self, handler, place, make_sweet, stock_of):
        sweet = make_sweet(quantity=3)
        order = place((sweet.id, 2))

        with pytest.raises(ConflictError, match="Available: 1, Requested: 2"):
            asyncio.run(handler(AddItemToOrderHandler)(AddItemToOrder(order["id"], sweet.id, 2)))
        assert stock_of(sweet.id) == 1


class TestUpdateOrderItem:
    def test_changes_quantity_and_stock(self, handler, place, make_sweet, stock_of):
        sweet = make_sweet(quantity=100, price="10.00")
        order = place((sweet.id, 5))
        item_id = order["items"][0]["id"]

        result = asyncio.run(handler(UpdateOrderItemHandler)(UpdateOrderItem(order["id"], item_id, 8, "extra syrup")))

        assert result["items"][0]["quantity"] == 8
        assert result["items"][0]["notes"] == "extra syrup"
        assert result["total_amount"] == Decimal("80.00")
        assert stock_of(sweet.id) == 92

    def test_failure_leaves_stock_unchanged(self, handler, place, make_sweet, stock_of, orders):
        sweet = make_sweet(quantity=100)
        order = place((sweet.id, 5))
        item_id = order["items"][0]["id"]

        with pytest.raises(ConflictError, match="Available: 100, Requested: 200"):
            asyncio.run(handler(UpdateOrderItemHandler)(UpdateOrderItem(order["id"], item_id, 200)))

        assert stock_of(sweet.id) == 95
        stored = asyncio.run(orders.get(order["id"]))
        assert stored.items[0].quantity == 5

    def test_item_of_another_order(self, handler, place, make_sweet):
        sweet = make_sweet()
        first = place((sweet.id, 1))
        second = place((sweet.id, 1))

        with pytest.raises(ValidationError, match="does not belong"):
            asyncio.run(
                handler(UpdateOrderItemHandler)(UpdateOrderItem(first["id"], second["items"][0]["id"], 2))
            )

    def test_unknown_item(self, handler, place, make_sweet):
        order = place((make_sweet().id, 1))

        with pytest.raises(NotFoundError, match="Order item not found with ID: 777"):
            asyncio.run(handler(UpdateOrderItemHandler)(UpdateOrderItem(order["id"], 777, 2)))


class TestRemoveItem:
    def test_restores_stock_and_recalculates(self, handler, place, make_sweet, stock_of):
        a = make_sweet("Rasgulla", price="20.00", quantity=10)
        b = make_sweet("Sandesh", price="22.00", quantity=10)
        order = place((a.id, 2), (b.id, 3))
        item_a = next(i for i in order["items"] if i["sweet_id"] == a.id)

        result = asyncio.run(handler(RemoveItemFromOrderHandler)(RemoveItemFromOrder(order["id"], item_a["id"])))

        assert [i["sweet_id"] for i in result["items"]] == [b.id]
        assert result["total_amount"] == Decimal("66.00")
        assert stock_of(a.id) == 10
        assert stock_of(b.id) == 7


class TestUpdateOrderDetails:
    def test_only_given_fields_change(self, handler, place, make_sweet):
        order = place((make_sweet().id, 1))

        result = asyncio.run(
            handler(UpdateOrderHandler)(UpdateOrder(order["id"], delivery_address="12 MG Road, Pune"))
        )

        assert result["delivery_address"] == "12 MG Road, Pune"
        assert result["customer_name"] == "Asha Rao"

    def test_not_after_confirmation(self, handler, place, set_status, make_sweet):
        order = place((make_sweet().id, 1))
        set_status(order["id"], OrderStatus.CONFIRMED)

        with pytest.raises(ConflictError):
            asyncio.run(handler(UpdateOrderHandler)(UpdateOrder(order["id"], notes="late change")))


class TestOrderQueries:
    def test_get_and_lookups(self, handler, place, make_sweet):
        a = make_sweet("Rasgulla")
        b = make_sweet("Sandesh")
        first = place((a.id, 1), email="Asha@Example.com")
        second = place((a.id, 1), (b.id, 1), email="ravi@example.com")

        assert asyncio.run(handler(GetOrderHandler)(GetOrder(first["id"])))["id"] == first["id"]
        by_email = asyncio.run(handler(ListOrdersByCustomerEmailHandler)(ListOrdersByCustomerEmail("asha@example.com")))
        assert [o["id"] for o in by_email] == [first["id"]]
        with_a = asyncio.run(handler(ListOrdersContainingSweetHandler)(ListOrdersContainingSweet(a.id)))
        assert {o["id"] for o in with_a} == {first["id"], second["id"]}
        with_b = asyncio.run(handler(ListOrdersContainingSweetHandler)(ListOrdersContainingSweet(b.id)))
        assert [o["id"] for o in with_b] == [second["id"]]

    def test_get_missing(self, handler):
        with pytest.raises(NotFoundError):
            asyncio.run(handler(GetOrderHandler)(GetOrder(1)))
