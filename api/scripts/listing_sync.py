"""
CLI: sincronización de listings base local <-> Airtable.

Uso recomendado:
  - Ejecutar como job (cron/systemd timer) o a mano desde el servidor.
  - Llama a los mismos casos de uso que el API (/api/v1/sync/...).

Variables de entorno requeridas:
  - AIRTABLE_TOKEN
  - AIRTABLE_BASE_ID
  - AIRTABLE_TABLE_NAME (default "Listings")
  - DATABASE_URL (postgresql://... o sqlite:///...)

Ejecución:
  python scripts/listing_sync.py pull
  python scripts/listing_sync.py push
  python scripts/listing_sync.py test
  python scripts/listing_sync.py template --output airtable_template.json
  python scripts/listing_sync.py validate
  python scripts/listing_sync.py history --limit 10
  python scripts/listing_sync.py media-stats
  python scripts/listing_sync.py media-cleanup
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raíz `app/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar variables desde .env si existe (api/.env o raíz del repo).
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_API_ROOT.parent / ".env", override=False)

from app.application.use_cases.sync_use_cases import ListingSyncUseCases
from app.core.config import settings
from app.infrastructure.database.session import SessionLocal, init_db
from app.infrastructure.external.airtable_sync.sync_service import build_from_settings
from app.shared.exceptions.base import AppException


def _print_json(data: Any) -> None:
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [d.model_dump(mode="json") if hasattr(d, "model_dump") else d for d in data]
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sincronización de listings con Airtable")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("pull", help="Airtable -> base local")
    sub.add_parser("push", help="Base local -> Airtable")
    sub.add_parser("test", help="Probar credenciales y existencia de la tabla")
    template = sub.add_parser("template", help="Imprime la estructura de tabla Airtable esperada")
    template.add_argument("--output", help="Escribe el template JSON en este archivo")
    sub.add_parser("validate", help="Compara la tabla Airtable con el mapeo de fields")
    history = sub.add_parser("history", help="Últimas pasadas registradas")
    history.add_argument("--limit", type=int, default=20)
    sub.add_parser("media-stats", help="Estadísticas de adjuntos importados")
    sub.add_parser("media-cleanup", help="Elimina adjuntos que ningún listing referencia")
    return parser


def run_command(args: argparse.Namespace, use_cases: ListingSyncUseCases) -> int:
    if args.command == "pull":
        result = use_cases.run_pull()
        logger.info(result.message)
        _print_json(result)
        return 0 if result.errored == 0 else 1
    if args.command == "push":
        result = use_cases.run_push()
        logger.info(result.message)
        _print_json(result)
        return 0 if result.errored == 0 else 1
    if args.command == "test":
        diagnostic = use_cases.test_connection()
        _print_json(diagnostic)
        return 0 if diagnostic.success and diagnostic.table_exists else 1
    if args.command == "template":
        template = use_cases.get_table_template()
        if args.output:
            Path(args.output).write_text(json.dumps(template, indent=2, ensure_ascii=False), encoding="utf-8")
            logger.info(f"Template escrito en {args.output}")
        else:
            _print_json(template)
        return 0
    if args.command == "validate":
        report = use_cases.validate_table()
        _print_json(report)
        return 0 if report.valid else 1
    if args.command == "history":
        _print_json(use_cases.list_history(args.limit))
        return 0
    if args.command == "media-stats":
        _print_json(use_cases.media_statistics())
        return 0
    if args.command == "media-cleanup":
        _print_json(use_cases.cleanup_media())
        return 0
    raise SystemExit(f"Comando desconocido: {args.command}")


def main() -> int:
    args = _build_parser().parse_args()

    init_db()
    db = SessionLocal()
    try:
        service = build_from_settings(db, settings)
        return run_command(args, ListingSyncUseCases(service, service.store))
    except AppException as e:
        logger.error(f"{e.error_code}: {e.message}")
        if e.details:
            logger.error(json.dumps(e.details, ensure_ascii=False, default=str))
        return 2
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
