# verifymail/logging/__init__.py
"""
Módulo de logging del servicio de verificación.
Logger estándar con destino opcional en PostgreSQL y enmascarado de datos sensibles.
"""

from .logger import (
    configurar_logs,
    enmascarar_correo,
    registrar_evento,
    registrar_warning,
    registrar_error,
    registrar_info,
    registrar_debug,
)

__all__ = [
    'configurar_logs',
    'enmascarar_correo',
    'registrar_evento',
    'registrar_warning',
    'registrar_error',
    'registrar_info',
    'registrar_debug',
]
