##backend/product_admin/db/session.py
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from product_admin.core.config import settings
from product_admin.db.base_class import Base
import logging
import asyncio

logger = logging.getLogger(__name__)

# Inicialización de engine con None
engine = None
SessionLocal = None

# Control de inicialización
_is_initialized = False
_initialization_lock = asyncio.Lock()

def build_engine(url: str, echo: bool = False):
    """Crea el motor de SQLAlchemy con opciones adecuadas al dialecto."""
    if url.startswith("sqlite"):
        # SQLite no admite pool_size/max_overflow y FastAPI usa varios hilos
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_timeout=60,
        pool_recycle=1800,  # Reciclar conexiones cada 30 minutos
        pool_pre_ping=True,  # Verificar conexiones
    )

async def init_db_connection(max_retries=5, initial_delay=1):
    """Inicializa la conexión a la base de datos con reintentos."""
    global engine, SessionLocal, _is_initialized

    # Si ya está inicializado, no hacer nada
    if _is_initialized:
        return True

    # Usar lock para evitar inicializaciones concurrentes
    async with _initialization_lock:
        # Verificar de nuevo dentro del lock
        if _is_initialized:
            return True

        retry_count = 0
        last_exception = None

        while retry_count < max_retries:
            try:
                engine = build_engine(str(settings.DATABASE_URL), echo=settings.DEBUG)

                # Probar la conexión
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))

                logger.info(f"Conexión a la base de datos establecida (intento {retry_count + 1})")

                SessionLocal = sessionmaker(
                    autocommit=False,
                    autoflush=False,
                    bind=engine,
                )

                # Marcar como inicializado
                _is_initialized = True

                return True

            except Exception as e:
                retry_count += 1
                last_exception = e
                wait_time = initial_delay * (2 ** (retry_count - 1))  # Exponential backoff

                logger.warning(f"Intento {retry_count}/{max_retries} fallido para conectar a la base de datos: {e}")
                if retry_count < max_retries:
                    logger.warning(f"Reintentando en {wait_time} segundos...")
                    await asyncio.sleep(wait_time)

        logger.error(f"No se pudo conectar a la base de datos después de {max_retries} intentos: {last_exception}")
        return False

def create_tables() -> None:
    """Crea las tablas que falten (products, images)."""
    # Importar modelos para registrarlos en la metadata
    from product_admin.models import product, image  # noqa: F401

    if engine is None:
        raise RuntimeError("La base de datos no está inicializada")
    Base.metadata.create_all(bind=engine)
    logger.info("Tablas de base de datos creadas/verificadas")

def dispose_engine() -> None:
    global engine, SessionLocal, _is_initialized

    if engine is not None:
        engine.dispose()
    engine = None
    SessionLocal = None
    _is_initialized = False
