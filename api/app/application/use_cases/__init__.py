"""
Casos de uso de la aplicacion.
"""
from .sync_use_cases import ListingSyncUseCases

__all__ = ["ListingSyncUseCases"]
