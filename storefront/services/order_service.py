"""
Order workflow service.

Handles order placement (availability check, order + line items, ledger
refresh) and the order status transition new -> cancelled, which puts the
ordered units back into inventory.
"""
import logging
import uuid
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from storefront.exceptions import (
    InsertFailureError, InsufficientStockError, NoChangeNeededError,
    NotFoundError, StorefrontError, UnsupportedTransitionError
)
from storefront.models import Order, OrderLineItem, OrderStatus, Product
from storefront.services.inventory_service import InventoryLedger
from storefront.store import Eq, SortBy

logger = logging.getLogger(__name__)


def _requested_quantities(lines: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Total requested qty per product_id (repeated products are summed)."""
    requested = defaultdict(int)
    for line in lines or ():
        requested[line['product_id']] += line['qty']
    return dict(requested)


def _coerce_status(value) -> Optional[OrderStatus]:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        return None


class OrderWorkflow:
    """
    Order placement and cancellation against an injected store.

    Availability is a point-in-time check: with ``lock_inventory`` off
    (default) two concurrent orders for the same product can both pass it
    before either is written. Turning it on locks the product rows read by
    the check until the order transaction ends.
    """

    def __init__(self, store, ledger: Optional[InventoryLedger] = None, lock_inventory: bool = False):
        self.store = store
        self.ledger = ledger or InventoryLedger(store)
        self.lock_inventory = lock_inventory

    # =====================================================
    # AVAILABILITY
    # =====================================================

    def can_fulfill(self, lines: List[Dict[str, Any]]) -> bool:
        """
        Return True if every requested product has enough available units.

        ``Product.qty`` is the available quantity. An empty request, or one
        naming an unknown product, cannot be fulfilled.
        """
        requested = _requested_quantities(lines)
        if not requested:
            return False
        return not self._shortfall(requested)

    def _shortfall(self, requested: Dict[str, int]) -> List[str]:
        """Product ids whose available qty would go negative."""
        inventories = self.store.find_where_in(
            Product, 'product_id', list(requested), for_update=self.lock_inventory
        )
        available = {row['product_id']: row['qty'] for row in inventories}

        return [
            product_id for product_id, qty in requested.items()
            if product_id not in available or available[product_id] - qty < 0
        ]

    # =====================================================
    # ORDERS
    # =====================================================

    def create_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Place an order and deduct its quantities from inventory.

        Steps:
        1. Build the order (status 'new', generated order_id if absent)
        2. Check availability; reject without writing anything if short
        3. Insert the order, then all line items as one batch
        4. Recompute quantity for the ordered products
        5. Return the reloaded order with its line items

        Steps 2-4 share one store transaction, so a rejected or failed
        insert leaves no order behind.

        Raises:
            InsufficientStockError: availability check failed
            InsertFailureError: an insert affected no rows
        """
        products = data.get('products') or []
        order_id = data.get('order_id') or str(uuid.uuid4())
        order_payload = {
            'order_id': order_id,
            'email': data.get('email'),
            'order_status': OrderStatus.NEW,
        }
        order_lines = [
            {'order_id': order_id, 'product_id': line['product_id'], 'qty': line['qty']}
            for line in products
        ]
        product_ids = {line['product_id'] for line in order_lines}

        with self.store.transaction():
            requested = _requested_quantities(products)
            shortfall = self._shortfall(requested) if requested else []
            if not requested or shortfall:
                logger.warning(f"Order {order_id} rejected: insufficient stock for {shortfall or 'empty order'}")
                raise InsufficientStockError(product_ids=shortfall)

            if not self.store.insert_one(Order, order_payload):
                raise InsertFailureError('order', f'Could not create order {order_id}')
            if not self.store.insert_many(OrderLineItem, order_lines):
                raise InsertFailureError('order products', f'Could not add products to order {order_id}')

            self.ledger.recompute_quantity(product_ids)

        logger.info(f"Order {order_id} created with {len(order_lines)} line(s)")
        return self.get_order(order_id)

    def update_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Change an order's status. Only cancellation of a 'new' order is supported.

        Cancelling re-stocks inventory: the recomputation leaves out line
        items of cancelled orders. A failed recomputation is logged; the
        cancellation itself stands.

        Raises:
            NotFoundError: order does not exist
            UnsupportedTransitionError: order is cancelled, or the status is unknown
            NoChangeNeededError: requested status equals the current one
        """
        order_id = data.get('order_id')
        order = self.get_order(order_id)
        current = order['order_status']
        requested = _coerce_status(data.get('order_status'))

        if requested is None:
            raise UnsupportedTransitionError(current.value, data.get('order_status'))

        if requested is OrderStatus.CANCELLED and current is OrderStatus.NEW:
            with self.store.transaction():
                changed = self.store.update_one(
                    Order, [Eq('order_id', order_id)], {'order_status': requested}
                )
                if not changed:
                    raise NotFoundError(f'Could not update order {order_id}')

            product_ids = {line['product_id'] for line in order['products']}
            try:
                self.ledger.recompute_quantity(product_ids)
            except StorefrontError as e:
                logger.error(f"Order {order_id} cancelled but inventory refresh failed: {e.message}", exc_info=True)

            logger.info(f"Order {order_id} cancelled")
            order['order_status'] = requested
            return order

        # Re-instating a cancelled order is not supported.
        if current is OrderStatus.CANCELLED:
            raise UnsupportedTransitionError(current.value, requested.value)

        raise NoChangeNeededError()

    def list_orders(self, limit: Optional[int] = None, skip: Optional[int] = None) -> List[Dict[str, Any]]:
        """All orders, newest first, each with its line items under ``products``."""
        orders = self.store.find(
            Order, sort_by=SortBy('created', descending=True), limit=limit, skip=skip
        )
        if not orders:
            return []

        lines = self.store.find_where_in(OrderLineItem, 'order_id', [order['order_id'] for order in orders])
        lines_by_order = defaultdict(list)
        for line in sorted(lines, key=lambda line: line['id']):
            lines_by_order[line['order_id']].append(line)

        for order in orders:
            order['products'] = lines_by_order.get(order['order_id'], [])
        return orders

    def get_order(self, order_id: str) -> Dict[str, Any]:
        order = self.store.find_one(Order, [Eq('order_id', order_id)])
        if not order:
            raise NotFoundError(f'Order {order_id} not found')

        order['products'] = self.store.find(
            OrderLineItem, [Eq('order_id', order_id)], sort_by=SortBy('id')
        )
        return order
