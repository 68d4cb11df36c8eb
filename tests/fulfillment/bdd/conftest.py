"""Shared BDD fixtures and step definitions for the Fulfillment domain."""

import pytest
from fulfillment.carrier.fake_adapter import FakeCarrier
from fulfillment.gateway.fake_adapter import FakeGateway
from fulfillment.inventory.allocator import InventoryAllocator
from fulfillment.inventory.warehouse import Warehouse
from fulfillment.order.order import Order
from fulfillment.order.service import OrderService
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then


@pytest.fixture()
def world():
    """Scenario state: warehouses in priority order, adapters and the order under test."""
    return {
        "warehouses": {},
        "gateway": FakeGateway(),
        "carrier": FakeCarrier(),
        "service": None,
        "order": None,
        "created": None,
    }


@pytest.fixture()
def service(world):
    if world["service"] is None:
        world["service"] = OrderService(
            InventoryAllocator(world["warehouses"].values()),
            world["gateway"],
            world["carrier"],
        )
    return world["service"]


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.parse('warehouse "{warehouse_id}" holds {quantity:d} units of "{product_id}"'))
def warehouse_with_stock(world, warehouse_id, quantity, product_id):
    warehouse = world["warehouses"].get(warehouse_id)
    if warehouse is None:
        warehouse = Warehouse(warehouse_id, f"Location {warehouse_id}")
        world["warehouses"][warehouse_id] = warehouse
    warehouse.add_stock(product_id, quantity)


@given(parsers.parse('an order for {quantity:d} units of "{product_id}" at {price:f}'))
def order_with_item(world, quantity, product_id, price):
    order = Order.create(customer_id="cust-bdd")
    order.add_item(product_id, quantity, price)
    order.attach_payment()
    order.attach_delivery("12 Abay Ave, Almaty", courier_name="QCourier")
    world["order"] = order


@given("the payment gateway declines charges")
def gateway_declines(world):
    world["gateway"].configure(should_succeed=False, failure_reason="Card declined")


@given("the courier rejects shipments")
def courier_rejects(world):
    world["carrier"].configure(should_succeed=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.parse('warehouse "{warehouse_id}" holds {quantity:d} units of "{product_id}"'))
def warehouse_holds(world, warehouse_id, quantity, product_id):
    assert world["warehouses"][warehouse_id].get_stock(product_id) == quantity


@then(parsers.parse('total stock of "{product_id}" is {quantity:d}'))
def total_stock_is(service, product_id, quantity):
    assert service.allocator.get_total_stock(product_id) == quantity


@then(parsers.parse("the order is {status}"))
def order_status_is(world, status):
    assert world["order"].status == status


@then(parsers.parse("the payment is {status}"))
def payment_status_is(world, status):
    assert world["order"].payment.status == status


@then(parsers.parse("the delivery is {status}"))
def delivery_status_is(world, status):
    assert world["order"].delivery.status == status


@then("the payment gateway was not called")
def gateway_not_called(world):
    assert world["gateway"].calls == []


@then("shipping the order is rejected")
def shipping_rejected(service, world):
    with pytest.raises(ValidationError):
        service.ship_order(world["order"])
