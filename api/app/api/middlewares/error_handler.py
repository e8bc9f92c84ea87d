"""
Middleware para manejo centralizado de errores.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware
from loguru import logger


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Captura errores no manejados por los endpoints.
    Las AppException ya las resuelve el handler global de main.py.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except SQLAlchemyError as exc:
            logger.error(f"Error de base de datos en {request.method} {request.url.path}: {_escape(exc)}")
            return _error_response(
                status.HTTP_503_SERVICE_UNAVAILABLE,
                "DATABASE_ERROR",
                "La base local de listings no esta disponible",
            )
        except Exception as exc:
            logger.error(f"Error no manejado en {request.method} {request.url.path}: {_escape(exc)}", exc_info=True)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "INTERNAL_SERVER_ERROR",
                "Ha ocurrido un error interno del servidor",
            )


def _escape(exc: Exception) -> str:
    # Escapar llaves para evitar error de formato en loguru
    return str(exc).replace("{", "{{").replace("}", "}}")


def _error_response(status_code: int, error_code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error_code, "message": message, "details": {}},
    )
