from typing import Any, Dict, List, Optional, Union
from pydantic import AnyHttpUrl, validator, Field
from pydantic_settings import BaseSettings
import logging
import urllib.parse

# Configurar logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

class EnvironmentSettings(BaseSettings):
    """Configuración básica de entorno"""
    # Entorno de ejecución
    ENVIRONMENT: str = "development"

    @validator("ENVIRONMENT")
    def validate_environment(cls, v):
        allowed = ["development", "testing", "staging", "production"]
        if v.lower() not in allowed:
            raise ValueError(f"Entorno debe ser uno de: {', '.join(allowed)}")
        return v.lower()

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

# Cargar el entorno primero
env = EnvironmentSettings().ENVIRONMENT

# Mapeo de archivos de entorno
env_files = {
    "development": [".env.development", ".env"],
    "testing": [".env.testing", ".env"],
    "staging": [".env.staging", ".env"],
    "production": [".env.production", ".env"],
}

class Settings(BaseSettings):
    # API
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Administración de Productos"
    DEBUG: bool = False

    # Entorno
    ENVIRONMENT: str = env

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Base de datos
    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: str = "product_admin"
    DATABASE_URL: Optional[str] = None

    @validator("DATABASE_URL", pre=True, always=True)
    def assemble_db_connection(cls, v: Optional[str], values: Dict[str, Any]) -> Any:
        if isinstance(v, str) and v:
            # Heroku/Supabase entregan postgres://, SQLAlchemy espera postgresql://
            if v.startswith("postgres://"):
                return v.replace("postgres://", "postgresql://", 1)
            return v

        server = values.get("POSTGRES_SERVER")
        user = values.get("POSTGRES_USER")
        password = values.get("POSTGRES_PASSWORD")
        if server and user and password:
            encoded_password = urllib.parse.quote_plus(password)
            return (
                f"postgresql://{user}:{encoded_password}@"
                f"{server}:{values.get('POSTGRES_PORT')}/{values.get('POSTGRES_DB')}"
            )

        if env == "production":
            raise ValueError("DATABASE_URL o las variables POSTGRES_* son obligatorias en producción")
        # En desarrollo, usar SQLite como fallback
        logger.warning("Configuración PostgreSQL incompleta, usando SQLite")
        return "sqlite:///./product_admin.db"

    # Almacenamiento de imágenes
    STORAGE_BACKEND: str = "local"  # supabase, local
    STORAGE_BUCKET: str = "product-images"
    STORAGE_TIMEOUT_SECONDS: float = 30.0
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_KEY: Optional[str] = None
    LOCAL_STORAGE_DIR: str = "storage/media"
    LOCAL_STORAGE_URL: str = "/media"

    @validator("STORAGE_BACKEND")
    def validate_storage_backend(cls, v):
        if v.lower() not in ["supabase", "local"]:
            raise ValueError('STORAGE_BACKEND debe ser "supabase" o "local"')
        return v.lower()

    @validator("SUPABASE_SERVICE_KEY", always=True)
    def validate_supabase_credentials(cls, v, values):
        if values.get("STORAGE_BACKEND") == "supabase" and (not v or not values.get("SUPABASE_URL")):
            if env == "production":
                raise ValueError("SUPABASE_URL y SUPABASE_SERVICE_KEY son obligatorias con STORAGE_BACKEND=supabase")
            logger.warning("Credenciales de Supabase no configuradas, la subida de imágenes fallará")
        return v

    # Límites de subida
    MAX_IMAGE_FILE_SIZE: int = Field(20_000_000, gt=0)  # 20MB por archivo
    MAX_IMAGES_TOTAL_SIZE: int = Field(50_000_000, gt=0)  # 50MB por envío

    # Paginación
    PRODUCTS_PAGE_SIZE: int = Field(10, ge=1)
    PRODUCTS_MAX_PAGE_SIZE: int = Field(100, ge=1)

    # Configuraciones específicas por entorno
    def get_settings_by_environment(self) -> Dict[str, Any]:
        settings_map = {
            "development": {
                "DEBUG": True,
            },
            "testing": {
                "DEBUG": True,
                "STORAGE_BACKEND": "local",
            },
            "staging": {
                "DEBUG": False,
            },
            "production": {
                "DEBUG": False,
            },
        }

        return settings_map.get(self.ENVIRONMENT, {})

    # Aplicar configuraciones específicas del entorno
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        env_settings = self.get_settings_by_environment()
        for key, value in env_settings.items():
            if hasattr(self, key):
                setattr(self, key, value)

    class Config:
        case_sensitive = True
        env_file = env_files.get(env, [".env"])
        extra = "ignore"

# Crear instancia de configuración
settings = Settings()

# Registrar información de inicio
logger.info(f"Iniciando aplicación en entorno: {settings.ENVIRONMENT}")
logger.info(f"Depuración: {'activada' if settings.DEBUG else 'desactivada'}")
if settings.DATABASE_URL:
    db_url_safe = str(settings.DATABASE_URL)
    if settings.POSTGRES_PASSWORD:
        db_url_safe = db_url_safe.replace(urllib.parse.quote_plus(settings.POSTGRES_PASSWORD), '****')
    logger.info(f"Base de datos: {db_url_safe}")
logger.info(f"Almacenamiento de imágenes: {settings.STORAGE_BACKEND} (bucket {settings.STORAGE_BUCKET})")
