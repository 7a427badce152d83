"""Order Line Item model."""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base


class OrderLineItem(Base):
    """Units of a product sold on an order (append-only fact)."""

    __tablename__ = 'orders_product'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    order_id = Column(String(64), ForeignKey('orders.order_id'), nullable=False, index=True)
    product_id = Column(String(64), ForeignKey('products.product_id'), nullable=False, index=True)
    qty = Column(Integer, nullable=False)
    created = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    order = relationship('Order', back_populates='lines')
    product = relationship('Product')

    def __repr__(self):
        return f"<OrderLineItem(order_id='{self.order_id}', product_id='{self.product_id}', qty={self.qty})>"
