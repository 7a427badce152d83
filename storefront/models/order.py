"""Order model."""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base
import enum


class OrderStatus(enum.Enum):
    """Order status enum."""
    NEW = "new"
    CANCELLED = "cancelled"


def _utcnow():
    return datetime.now(timezone.utc)


class Order(Base):
    """Customer order."""

    __tablename__ = 'orders'

    order_id = Column(String(64), primary_key=True)
    email = Column(String(128), nullable=False)
    order_status = Column(
        Enum(OrderStatus, name='order_status', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=OrderStatus.NEW,
    )
    # Orders are listed newest first, so created keeps microseconds
    # (CURRENT_TIMESTAMP and plain MySQL DATETIME stop at seconds).
    created = Column(
        DateTime(timezone=True).with_variant(mysql.DATETIME(fsp=6), 'mysql', 'mariadb'),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
    last_updated = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    lines = relationship('OrderLineItem', back_populates='order')

    def __repr__(self):
        return f"<Order(order_id='{self.order_id}', status={self.order_status.value})>"
