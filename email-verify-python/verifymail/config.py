# verifymail/config.py
import os
from dotenv import load_dotenv

# Cargar variables de entorno desde .env
load_dotenv()


def _to_bool(val, default=False):
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _to_int(val, default):
    try:
        return int(val) if val is not None else default
    except ValueError:
        return default


def _to_float(val, default):
    try:
        return float(val) if val is not None else default
    except ValueError:
        return default


def _to_origins(val):
    origenes = [o.strip() for o in val.split(',') if o.strip()]
    if not origenes or '*' in origenes:
        return '*'
    return origenes


def cargar_configuracion():
    """
    Lee la configuración de la aplicación desde variables de entorno.

    Returns:
        dict: claves listas para app.config.update()
    """
    return {
        # OTP
        'OTP_TTL_SECONDS': _to_int(os.environ.get('OTP_TTL_SECONDS'), 10 * 60),
        # Devuelve el código en la respuesta y acepta customCode; nunca en producción
        'OTP_TEST_MODE': _to_bool(os.environ.get('OTP_TEST_MODE'), False),
        'OTP_DELIVERY_TIMEOUT_SECONDS': _to_float(os.environ.get('OTP_DELIVERY_TIMEOUT_SECONDS'), 15.0),
        'OTP_SWEEP_INTERVAL_SECONDS': _to_int(os.environ.get('OTP_SWEEP_INTERVAL_SECONDS'), 60),
        'OTP_LEDGER_SHARDS': _to_int(os.environ.get('OTP_LEDGER_SHARDS'), 16),

        # Rate limiting
        'RATE_LIMIT_SEND_CODE': os.environ.get('RATE_LIMIT_SEND_CODE', '5 per 15 minutes'),
        'RATE_LIMIT_VERIFY_CODE': os.environ.get('RATE_LIMIT_VERIFY_CODE', '10 per minute'),

        # Proxies reversos de confianza delante de la app (0 = ninguno)
        'PROXY_TRUSTED_HOPS': _to_int(os.environ.get('PROXY_TRUSTED_HOPS'), 0),

        # CORS: '*' o lista separada por comas
        'CORS_ORIGINS': _to_origins(os.environ.get('CORS_ORIGINS', '*')),

        # SMTP (SendGrid por defecto; Gmail u otro relay cambiando host/usuario)
        'SMTP_HOST': os.environ.get('SMTP_HOST', 'smtp.sendgrid.net'),
        'SMTP_PORT': _to_int(os.environ.get('SMTP_PORT'), 587),
        'SMTP_USER': os.environ.get('SMTP_USER', 'apikey'),
        'SMTP_PASS': os.environ.get('SMTP_PASS') or os.environ.get('SENDGRID_API_KEY'),
        'SMTP_USE_TLS': _to_bool(os.environ.get('SMTP_USE_TLS'), True),
        'SMTP_USE_SSL': _to_bool(os.environ.get('SMTP_USE_SSL'), False),
        'MAIL_FROM': os.environ.get('MAIL_FROM', '"Email Verify" <noreply@yourapp.com>'),
        'MAIL_SUPPRESS_SEND': _to_bool(os.environ.get('MAIL_SUPPRESS_SEND'), False),

        # Tokens de verificación
        'JWT_SECRET_KEY': os.environ.get('JWT_SECRET_KEY'),
        'JWT_EXPIRATION_HOURS': _to_float(os.environ.get('JWT_EXPIRATION_HOURS'), 0.25),

        # Logging
        'LOG_LEVEL': os.environ.get('LOG_LEVEL', 'INFO'),
        'LOG_DB_ENABLED': _to_bool(os.environ.get('LOG_DB_ENABLED'), False),

        'PORT': _to_int(os.environ.get('PORT'), 3000),
    }
