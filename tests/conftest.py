import pytest
from decimal import Decimal
import uuid

from storefront import create_app
from storefront.database import create_tables, drop_tables, get_session
from storefront.models import OrderLineItem, OrderStatus, Shipment
from storefront.services.inventory_service import InventoryLedger
from storefront.services.order_service import OrderWorkflow
from storefront.store import Eq, SqlStore


@pytest.fixture(scope='function')
def app():
    """Create application instance backed by a fresh in-memory database."""
    app = create_app('config.TestConfig')
    with app.app_context():
        create_tables(app)
        yield app
        get_session().remove()
        drop_tables(app)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session for the current app context."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def store(session):
    return SqlStore(session)


@pytest.fixture(scope='function')
def ledger(store):
    return InventoryLedger(store)


@pytest.fixture(scope='function')
def workflow(store, ledger):
    return OrderWorkflow(store, ledger=ledger)


@pytest.fixture(scope='function')
def make_product(ledger):
    """Factory creating a product (and its opening shipment) through the ledger."""
    def _make_product(qty=10, product_id=None, price='10.00', name=None):
        product_id = product_id or f'prod-{str(uuid.uuid4())[:8]}'
        ledger.create_product({
            'product_id': product_id,
            'name': name or f'Product {product_id}',
            'description': 'Test product',
            'price': Decimal(price),
            'qty': qty,
        })
        return ledger.get_product(product_id)
    return _make_product


@pytest.fixture(scope='function')
def ledger_qty(store):
    """Quantity derived straight from the fact tables (shipments - non-cancelled sales)."""
    def _ledger_qty(product_id):
        received = sum(row['qty'] for row in store.find(Shipment, [Eq('product_id', product_id)]))
        cancelled = {
            row['order_id'] for row in store.raw_query(
                "SELECT order_id FROM orders WHERE order_status = :status",
                {'status': OrderStatus.CANCELLED.value}
            )
        }
        sold = sum(
            row['qty'] for row in store.find(OrderLineItem, [Eq('product_id', product_id)])
            if row['order_id'] not in cancelled
        )
        return received - sold
    return _ledger_qty
