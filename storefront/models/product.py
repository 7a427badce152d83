"""Product model."""
from sqlalchemy import Column, String, Text, Integer, Numeric, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base


class Product(Base):
    """Catalog product.

    ``qty`` is derived from shipments and order line items and is only
    written at creation and by the quantity recomputation.
    """

    __tablename__ = 'products'

    product_id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default='')
    price = Column(Numeric(10, 2), nullable=False)
    qty = Column(Integer, nullable=False, default=0, server_default='0')
    created = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_updated = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    shipments = relationship('Shipment', back_populates='product')

    def __repr__(self):
        return f"<Product(product_id='{self.product_id}', name='{self.name}', qty={self.qty})>"
