"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales del motor de
sincronizacion de listings (base local <-> Airtable).
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    - DATABASE_URL: base local de listings (PostgreSQL en produccion, SQLite en desarrollo)
    - AIRTABLE_*: credenciales y parametros del cliente HTTP de Airtable
    - MEDIA_*: importacion de adjuntos (descarga, validacion, miniaturas)
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Listing Sync Service")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # Base de datos local (contenido de listings)
    DATABASE_URL: str = Field(default="sqlite:///./listings.db")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # Airtable
    AIRTABLE_TOKEN: str = Field(default="")
    AIRTABLE_BASE_ID: str = Field(default="")
    AIRTABLE_TABLE_NAME: str = Field(default="Listings")
    AIRTABLE_API_URL: str = Field(default="https://api.airtable.com/v0")
    AIRTABLE_TIMEOUT_S: int = Field(default=30)
    AIRTABLE_PAGE_SIZE: int = Field(default=100)
    AIRTABLE_MAX_RETRIES: int = Field(default=5)

    # Media (adjuntos importados desde Airtable)
    MEDIA_ROOT: str = Field(default="media/airtable-sync")
    MEDIA_DOWNLOAD_TIMEOUT_S: int = Field(default=30)
    MEDIA_DOWNLOAD_WORKERS: int = Field(default=4)
    MEDIA_MAX_FILE_SIZE: int = Field(default=10 * 1024 * 1024)
    # Lista JSON de lados maximos en px, p.ej. "[150, 300, 1024]"
    THUMBNAIL_SIZES: str = Field(default="[150, 300, 1024]")

    # Sinonimos de nombres de campos Airtable (JSON opcional que reemplaza/extiende los de codigo)
    FIELD_SYNONYMS_FILE: str = Field(default="")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva para el engine sincrono.
        Los DSN de Postgres se normalizan al driver psycopg (v3).
        """
        url = self.DATABASE_URL
        if "://" not in url:
            return url
        scheme, rest = url.split("://", 1)
        if scheme.startswith("postgres"):
            scheme = "postgresql+psycopg"
        return f"{scheme}://{rest}"

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",") if origin.strip()]


def get_thumbnail_sizes(raw: str) -> List[int]:
    """
    Parsea la configuracion de miniaturas.
    Acepta una lista JSON o valores separados por comas.
    """
    try:
        sizes = json.loads(raw)
    except json.JSONDecodeError:
        sizes = [part.strip() for part in raw.split(",") if part.strip()]
    return [int(size) for size in sizes]


# Instancia global de configuracion
settings = Settings()
