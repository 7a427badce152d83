"""
Inventory ledger service.

Product rows carry a derived ``qty``. It is recomputed from two fact tables
(shipments received and units sold on non-cancelled orders) instead of being
adjusted in place, so the history of shipments and sales stays authoritative.
"""
import logging
import uuid
from typing import Any, Dict, Iterable, List

from storefront.exceptions import InsertFailureError, NotFoundError
from storefront.models import Order, OrderLineItem, OrderStatus, Product, Shipment
from storefront.store import Eq

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = frozenset(column.name for column in Product.__table__.columns)

RECOMPUTE_QUANTITY_SQL = """
    UPDATE products
    SET qty = (
            SELECT COALESCE(SUM(sp.qty), 0)
            FROM shipment_product sp
            WHERE sp.product_id = products.product_id
        ) - (
            SELECT COALESCE(SUM(op.qty), 0)
            FROM orders_product op
            WHERE op.product_id = products.product_id
              AND op.order_id NOT IN (
                  SELECT o.order_id FROM orders o WHERE o.order_status = :cancelled
              )
        ),
        last_updated = CURRENT_TIMESTAMP
    WHERE products.product_id IN :product_ids
"""


def _product_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep product columns only, dropping unset timestamps so defaults apply."""
    return {
        key: value for key, value in data.items()
        if key in PRODUCT_FIELDS and not (key in ('created', 'last_updated') and value is None)
    }


class InventoryLedger:
    """Product catalog plus the shipment/sales ledger behind ``Product.qty``."""

    def __init__(self, store):
        self.store = store

    def list_products(self) -> List[Dict[str, Any]]:
        return self.store.find(Product)

    def get_product(self, product_id: str) -> Dict[str, Any]:
        product = self.store.find_one(Product, [Eq('product_id', product_id)])
        if not product:
            raise NotFoundError(f'Product {product_id} not found')
        return product

    def create_product(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a product with its initial inventory.

        The product row is stored with the given ``qty`` and a shipment of
        the same quantity is recorded, so the ledger and the derived
        quantity agree from the start.

        Args:
            data: product fields; ``product_id`` is generated when absent

        Returns:
            dict with the inserted ``product`` and ``shipment`` payloads

        Raises:
            InsertFailureError: if either insert affected no rows (nothing is kept)
        """
        payload = _product_payload(data)
        payload['product_id'] = payload.get('product_id') or str(uuid.uuid4())
        payload.setdefault('qty', 0)

        shipment = {
            'shipment_id': str(uuid.uuid4()),
            'product_id': payload['product_id'],
            'qty': payload['qty'],
        }

        with self.store.transaction():
            if not self.store.insert_one(Product, payload):
                raise InsertFailureError('product', f"Could not create product {payload['product_id']}")

            # Typically shipments arrive through their own flow; creating a
            # product records the opening stock as one.
            if not self.store.insert_one(Shipment, shipment):
                raise InsertFailureError('shipment', f"Could not record shipment for {payload['product_id']}")

        logger.info(f"Product {payload['product_id']} created with opening shipment of {payload['qty']}")
        return {'product': payload, 'shipment': shipment}

    def update_product(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update product details. ``qty`` cannot be changed here and is dropped.

        Raises:
            NotFoundError: if no product matched ``product_id``
        """
        product_id = data.get('product_id')
        patch = {
            key: value for key, value in _product_payload(data).items()
            if key not in ('product_id', 'qty')
        }

        if not product_id or not patch:
            raise NotFoundError('Could not update')

        with self.store.transaction():
            updated = self.store.update_one(Product, [Eq('product_id', product_id)], patch)
            if not updated:
                raise NotFoundError('Could not update')

        return self.get_product(product_id)

    def recompute_quantity(self, product_ids: Iterable[str]) -> None:
        """
        Refresh ``qty`` for the given products from the fact tables.

        qty = shipments received - units on orders that are not cancelled.
        One bulk statement, restricted to ``product_ids``.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return

        with self.store.transaction():
            self.store.raw_query(RECOMPUTE_QUANTITY_SQL, {
                'product_ids': ids,
                'cancelled': OrderStatus.CANCELLED.value,
            })
        logger.debug(f"Recomputed quantity for {len(ids)} product(s)")

    def flush(self) -> None:
        """Remove all catalog, shipment and order data."""
        with self.store.transaction():
            for entity in (OrderLineItem, Shipment, Order, Product):
                deleted = self.store.delete_all(entity)
                logger.info(f"Deleted {deleted} row(s) from {entity.__tablename__}")
