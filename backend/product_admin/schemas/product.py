from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

class ImageResponse(BaseModel):
    id: str
    uuid: str
    url: str
    product_id: str
    order_index: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProductSummary(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProductResponse(ProductSummary):
    updated_at: Optional[datetime] = None
    images: List[ImageResponse] = []

class ProductListResponse(BaseModel):
    products: List[ProductSummary] = []
    total: int
    page: int
    limit: int
    total_pages: int
    query: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None

class SubmissionErrors(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[str] = None
    images: Optional[str] = None
    form: Optional[str] = None

    def has_errors(self) -> bool:
        return any(value is not None for value in self.model_dump().values())

class SubmissionResponse(BaseModel):
    """Respuesta del envío del formulario de producto."""
    success: Optional[str] = None
    product_id: Optional[str] = Field(None, alias="productId")
    errors: Optional[SubmissionErrors] = None

    class Config:
        populate_by_name = True
