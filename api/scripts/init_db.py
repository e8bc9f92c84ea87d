"""
Script para inicializar la base de datos de listings (crea tablas si no existen).
Para entornos con migraciones usar `alembic upgrade head`.
"""
import sys
from pathlib import Path

from loguru import logger

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

from app.core.config import settings
from app.infrastructure.database.session import init_db


def main() -> None:
    """Función principal para inicializar la base de datos."""
    logger.info(f"Inicializando base de datos ({settings.effective_database_url.split('://')[0]})...")

    try:
        init_db()
        logger.success("Base de datos inicializada correctamente")
    except Exception as e:
        logger.error(f"Error al inicializar base de datos: {e}")
        raise


if __name__ == "__main__":
    main()
