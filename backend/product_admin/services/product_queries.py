import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from product_admin.core.exceptions import InvalidPageError, ProductNotFoundError
from product_admin.models.product import Product
from product_admin.schemas.product import ProductListResponse, ProductSummary

logger = logging.getLogger(__name__)

def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)

def start_of_next_day(day: date) -> datetime:
    return start_of_day(day + timedelta(days=1))

def get_filtered_products(
    db: Session,
    *,
    query: str = "",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    limit: int = 10,
) -> ProductListResponse:
    """
    Obtener productos (más recientes primero) filtrados por texto y rango de fechas.
    """
    db_query = db.query(Product)

    # Aplicar filtro de fecha inicio si existe
    if start_date:
        db_query = db_query.filter(Product.created_at >= start_of_day(start_date))

    # Aplicar filtro de fecha fin si existe (incluye el día completo)
    if end_date:
        db_query = db_query.filter(Product.created_at < start_of_next_day(end_date))

    # Aplicar filtro de búsqueda si existe
    if query:
        pattern = f"%{query}%"
        db_query = db_query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))

    total = db_query.count()
    total_pages = math.ceil(total / limit) if limit else 0

    if page > total_pages and total > 0:
        raise InvalidPageError(page, total_pages)

    products = (
        db_query.order_by(Product.created_at.desc(), Product.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return ProductListResponse(
        products=[ProductSummary.model_validate(product) for product in products],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
        query=query,
        start_date=start_date.isoformat() if start_date else None,
        end_date=end_date.isoformat() if end_date else None,
    )

def get_product_with_images(db: Session, product_id: str) -> Product:
    """
    Obtener un producto con sus imágenes ordenadas por order_index.
    """
    product = (
        db.query(Product)
        .options(selectinload(Product.images))
        .filter(Product.id == product_id)
        .first()
    )
    if product is None:
        raise ProductNotFoundError(product_id)
    return product
