from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Any, Optional
from datetime import date
import logging

from product_admin.api import deps
from product_admin.core.config import settings
from product_admin.core.exceptions import InvalidPageError, ProductNotFoundError
from product_admin.schemas.product import (
    ProductListResponse,
    ProductResponse,
    SubmissionErrors,
    SubmissionResponse,
)
from product_admin.services import product_queries
from product_admin.services.product_submission import ProductSubmissionService
from product_admin.services.submission_form import parse_submission_form
from product_admin.storage.base import BlobStorage

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/", response_model=ProductListResponse)
def get_products(
    *,
    db: Session = Depends(deps.get_db),
    q: str = Query("", description="Texto a buscar en nombre o descripción"),
    start_date: Optional[date] = Query(None, alias="startDate", description="Fecha de creación desde (inclusive)"),
    end_date: Optional[date] = Query(None, alias="endDate", description="Fecha de creación hasta (inclusive)"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=settings.PRODUCTS_MAX_PAGE_SIZE),
) -> Any:
    """
    Obtener lista paginada de productos con filtros opcionales.
    """
    try:
        return product_queries.get_filtered_products(
            db,
            query=q.strip(),
            start_date=start_date,
            end_date=end_date,
            page=page,
            limit=limit or settings.PRODUCTS_PAGE_SIZE,
        )
    except InvalidPageError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Página inválida: {e.page} de {e.total_pages}",
        )

@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    *,
    db: Session = Depends(deps.get_db),
    product_id: str,
) -> Any:
    """
    Obtener un producto por su ID junto con sus imágenes ordenadas.
    """
    try:
        return product_queries.get_product_with_images(db, product_id)
    except ProductNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Producto no encontrado",
        )

@router.post("/", response_model=SubmissionResponse)
async def submit_product(
    request: Request,
    db: Session = Depends(deps.get_db),
    storage: BlobStorage = Depends(deps.get_storage),
) -> Any:
    """
    Crear o actualizar un producto y sincronizar sus imágenes.

    Recibe el formulario multipart del editor de producto: campos del producto,
    imágenes nuevas, posiciones de las existentes e ids a eliminar.
    """
    try:
        form = await request.form()
    except Exception as e:
        logger.error(f"Error al procesar el formulario: {e}")
        errors = SubmissionErrors(form="Error al procesar el formulario. Por favor, intenta de nuevo.")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=SubmissionResponse(errors=errors).model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    submission = await parse_submission_form(form)
    result = await ProductSubmissionService(db, storage).submit(submission)

    return JSONResponse(
        status_code=result.status_code,
        content=result.response.model_dump(mode="json", by_alias=True, exclude_none=True),
    )
