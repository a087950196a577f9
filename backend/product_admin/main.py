from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from pathlib import Path
import logging
from contextlib import asynccontextmanager

from product_admin.api.api import api_router
from product_admin.api.deps import build_storage
from product_admin.core.config import settings
from product_admin.middleware.security import setup_security_middleware

# Configurar logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    from product_admin.db import session as db_session

    logger.info(f"Iniciando la aplicación en entorno: {settings.ENVIRONMENT}")
    if await db_session.init_db_connection(max_retries=5, initial_delay=2):
        try:
            db_session.create_tables()
        except Exception as e:
            logger.error(f"Error al crear las tablas: {e}")
    else:
        logger.error("No se pudo inicializar la conexión a la base de datos")

    yield

    # Shutdown logic
    logger.info("Deteniendo la aplicación...")
    build_storage().close()
    db_session.dispose_engine()
    logger.info("Conexiones a base de datos cerradas")

def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="API para administrar productos y sus imágenes",
        version="0.1.0",
        openapi_url=f"{settings.API_V1_STR}/openapi.json" if not settings.ENVIRONMENT == "production" else None,
        lifespan=lifespan,
    )

    # Configurar middlewares de seguridad
    setup_security_middleware(app)

    # Con almacenamiento local, las imágenes se sirven desde la propia API
    if settings.STORAGE_BACKEND == "local":
        media_dir = Path(settings.LOCAL_STORAGE_DIR)
        media_dir.mkdir(parents=True, exist_ok=True)
        app.mount(settings.LOCAL_STORAGE_URL, StaticFiles(directory=str(media_dir)), name="media")
        logger.info(f"Directorio de imágenes montado: {media_dir} en {settings.LOCAL_STORAGE_URL}")

    # Incluir routers
    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/health", include_in_schema=False)
    def health() -> dict:
        return {"status": "ok", "environment": settings.ENVIRONMENT}

    return app

app = create_app()
