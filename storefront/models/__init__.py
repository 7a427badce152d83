"""Models package - exports all SQLAlchemy models."""
from storefront.models.product import Product
from storefront.models.shipment import Shipment
from storefront.models.order import Order, OrderStatus
from storefront.models.order_line_item import OrderLineItem

__all__ = [
    'Product', 'Shipment', 'Order', 'OrderStatus', 'OrderLineItem',
]
