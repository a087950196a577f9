from sqlalchemy import Column, String, Text, DateTime, Numeric, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from product_admin.db.base_class import Base
import uuid

class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relaciones
    images = relationship(
        "Image",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Image.order_index",
    )

    # Índices para el listado (más recientes primero, filtro por fecha)
    __table_args__ = (
        Index('idx_product_created_at', 'created_at'),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"
