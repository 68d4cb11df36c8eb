import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def fulfillment_bed():
    from fulfillment.domain import fulfillment

    bed = DomainFixture(fulfillment)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(fulfillment_bed):
    with fulfillment_bed.domain_context():
        yield


@pytest.fixture()
def warehouses():
    from fulfillment.inventory.warehouse import Warehouse

    almaty = Warehouse("wh-almaty", "Almaty Warehouse")
    almaty.add_stock("prod-phone", 10)
    almaty.add_stock("prod-case", 3)
    astana = Warehouse("wh-astana", "Astana Warehouse")
    astana.add_stock("prod-phone", 5)
    astana.add_stock("prod-case", 2)
    return [almaty, astana]


@pytest.fixture()
def allocator(warehouses):
    from fulfillment.inventory.allocator import InventoryAllocator

    return InventoryAllocator(warehouses)


@pytest.fixture()
def gateway():
    from fulfillment.gateway.fake_adapter import FakeGateway

    return FakeGateway()


@pytest.fixture()
def carrier():
    from fulfillment.carrier.fake_adapter import FakeCarrier

    return FakeCarrier()


@pytest.fixture()
def service(allocator, gateway, carrier):
    from fulfillment.order.service import OrderService

    return OrderService(allocator, gateway, carrier)
