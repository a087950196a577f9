#backend/product_admin/api/deps.py
from functools import lru_cache
from typing import Generator
from fastapi import HTTPException, status
from sqlalchemy import text
from sqlalchemy.orm import Session
from product_admin.core.config import settings
from product_admin.storage.base import BlobStorage
from product_admin.storage.local import LocalStorage
from product_admin.storage.supabase import SupabaseStorage
import logging

logger = logging.getLogger(__name__)

def get_db() -> Generator[Session, None, None]:
    """
    Dependency para obtener una sesión de base de datos sincrónica.
    """
    # Importamos aquí para leer el estado actual del módulo
    from product_admin.db import session as db_session

    if not db_session._is_initialized or db_session.SessionLocal is None:
        logger.error("Sesión solicitada antes de inicializar la base de datos")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Base de datos no inicializada",
        )

    db = db_session.SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        yield db
    except HTTPException:
        # Propagar excepciones HTTP sin transformarlas
        db.rollback()
        raise
    finally:
        db.close()

@lru_cache
def build_storage() -> BlobStorage:
    """Crea el cliente de almacenamiento configurado (uno por proceso)."""
    if settings.STORAGE_BACKEND == "supabase":
        logger.info(f"Usando Supabase Storage, bucket {settings.STORAGE_BUCKET}")
        return SupabaseStorage(
            base_url=settings.SUPABASE_URL or "",
            service_key=settings.SUPABASE_SERVICE_KEY or "",
            bucket=settings.STORAGE_BUCKET,
            timeout=settings.STORAGE_TIMEOUT_SECONDS,
        )

    logger.info(f"Usando almacenamiento local en {settings.LOCAL_STORAGE_DIR}")
    return LocalStorage(
        root_dir=settings.LOCAL_STORAGE_DIR,
        bucket=settings.STORAGE_BUCKET,
        base_url=settings.LOCAL_STORAGE_URL,
    )

def get_storage() -> BlobStorage:
    """
    Dependency para obtener el cliente de almacenamiento de imágenes.
    """
    return build_storage()
