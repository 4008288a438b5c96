# verifymail/__init__.py
"""
Servicio de verificación de correo mediante códigos OTP de 6 dígitos.
"""

from .main import create_app, shutdown_app

__all__ = ['create_app', 'shutdown_app']
