from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from product_admin.db.base_class import Base
import uuid

class Image(Base):
    __tablename__ = "images"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    uuid = Column(String(36), nullable=False, unique=True)  # Identificador del objeto en el bucket
    url = Column(String(1024), nullable=False)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    order_index = Column(Integer, nullable=False, default=1)  # Posición 1..N dentro del producto
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relaciones
    product = relationship("Product", back_populates="images")

    # Índices
    __table_args__ = (
        Index('idx_image_product_id_order', 'product_id', 'order_index'),
    )

    def __repr__(self):
        return f"<Image(id={self.id}, product_id={self.product_id}, order_index={self.order_index})>"
