"""Shipment model."""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base


class Shipment(Base):
    """Units received for a product (append-only fact)."""

    __tablename__ = 'shipment_product'

    shipment_id = Column(String(64), primary_key=True)
    product_id = Column(String(64), ForeignKey('products.product_id'), nullable=False, index=True)
    qty = Column(Integer, nullable=False)
    created = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationship
    product = relationship('Product', back_populates='shipments')

    def __repr__(self):
        return f"<Shipment(shipment_id='{self.shipment_id}', product_id='{self.product_id}', qty={self.qty})>"
