# verifymail/logging/logger.py
"""
Sistema de logging para el servicio de verificación de correo.

Características:
- Registra eventos en el logger estándar 'verifymail' (siempre)
- Opcionalmente también en PostgreSQL (LOG_DB_ENABLED=true)
- Formato de fecha y hora: YYYY-MM-DD HH:MM:SS.ssssss (hora local)
- Tipos de log: INFO, DEBUG, WARNING, ERROR
- Información de trazabilidad: IP, usuario (correo enmascarado), acción, código HTTP
- Nunca registra códigos OTP ni correos completos
"""

import logging
import os
import re
from datetime import datetime

import psycopg2

# Variables de entorno para conexión a PostgreSQL
DB_HOST = os.environ.get('POSTGRES_HOST', 'db')
DB_PORT = os.environ.get('POSTGRES_PORT', '5432')
DB_NAME = os.environ.get('POSTGRES_DB', 'verifymail')
DB_USER = os.environ.get('POSTGRES_USER', 'postgres')
DB_PASSWORD = os.environ.get('POSTGRES_PASSWORD', 'postgres')

TIPOS_LOG = ('INFO', 'DEBUG', 'WARNING', 'ERROR')

logger = logging.getLogger('verifymail')

_estado = {'db_habilitada': False}


def configurar_logs(nivel: str = 'INFO', db_habilitada: bool = False) -> None:
    """
    Configura el nivel del logger y el destino PostgreSQL.

    Args:
        nivel (str): nivel de logging (DEBUG, INFO, WARNING, ERROR)
        db_habilitada (bool): si True, también se guardan los eventos en la base
    """
    logger.setLevel(getattr(logging, str(nivel).upper(), logging.INFO))
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(message)s'))
        logger.addHandler(handler)

    _estado['db_habilitada'] = bool(db_habilitada)
    if db_habilitada:
        inicializar_tabla_logs()


def obtener_hora_local() -> str:
    """
    Obtiene la hora local del servidor.

    Returns:
        str: Fecha y hora en formato YYYY-MM-DD HH:MM:SS.ssssss
    """
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S.%f')


def obtener_conexion_logs():
    """
    Obtiene una conexión a PostgreSQL para el sistema de logs.

    Returns:
        psycopg2.connection: Conexión a la base de datos, o None si falla
    """
    try:
        conn = psycopg2.connect(
            host=DB_HOST,
            port=DB_PORT,
            dbname=DB_NAME,
            user=DB_USER,
            password=DB_PASSWORD
        )
        return conn
    except psycopg2.Error:
        logger.warning("No se pudo conectar a PostgreSQL para logs")
        return None


def inicializar_tabla_logs():
    """
    Crea la tabla verify.logs_sistema si no existe.
    """
    conn = obtener_conexion_logs()
    if not conn:
        return

    try:
        cur = conn.cursor()

        cur.execute("""
            CREATE SCHEMA IF NOT EXISTS verify;
            CREATE TABLE IF NOT EXISTS verify.logs_sistema (
                id_log SERIAL PRIMARY KEY,
                fecha_hora TIMESTAMP NOT NULL,
                tipo_log VARCHAR(10) NOT NULL,
                ip_remota VARCHAR(45) NOT NULL,
                usuario VARCHAR(100) NOT NULL,
                accion TEXT NOT NULL,
                codigo_http INT NOT NULL,
                CONSTRAINT check_tipo_log CHECK (tipo_log IN ('INFO', 'DEBUG', 'WARNING', 'ERROR'))
            );
        """)

        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_logs_fecha_hora ON verify.logs_sistema(fecha_hora);
        """)
        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_logs_tipo ON verify.logs_sistema(tipo_log);
        """)

        conn.commit()
        cur.close()

    except psycopg2.Error:
        conn.rollback()
        logger.warning("No se pudo crear la tabla de logs")
    finally:
        conn.close()


def _guardar_en_db(fecha_hora, tipo_log, ip_remota, usuario, accion, codigo_http) -> bool:
    conn = obtener_conexion_logs()
    if not conn:
        return False

    try:
        cur = conn.cursor()

        cur.execute("""
            INSERT INTO verify.logs_sistema (fecha_hora, tipo_log, ip_remota, usuario, accion, codigo_http)
            VALUES (%s, %s, %s, %s, %s, %s)
        """, (fecha_hora, tipo_log, ip_remota, usuario, accion, codigo_http))

        conn.commit()
        cur.close()
        return True

    except psycopg2.Error:
        conn.rollback()
        return False
    finally:
        conn.close()


def registrar_evento(tipo_log: str, ip_remota: str, usuario: str, accion: str, codigo_http: int) -> bool:
    """
    Registra un evento en el sistema de logs.

    Args:
        tipo_log (str): Tipo de log (INFO, DEBUG, WARNING, ERROR)
        ip_remota (str): Dirección IP del cliente
        usuario (str): Correo del usuario o 'anon'
        accion (str): Descripción de la acción realizada
        codigo_http (int): Código de respuesta HTTP

    Returns:
        bool: True si el registro fue exitoso, False en caso contrario
    """
    # Validación de parámetros de entrada
    if not isinstance(tipo_log, str) or tipo_log not in TIPOS_LOG:
        return False

    if not isinstance(ip_remota, str) or len(ip_remota.strip()) == 0:
        ip_remota = "unknown"

    if not isinstance(usuario, str) or len(usuario.strip()) == 0:
        usuario = "anon"

    if not isinstance(accion, str) or len(accion.strip()) == 0:
        accion = "accion_no_especificada"

    if isinstance(codigo_http, bool) or not isinstance(codigo_http, int) or codigo_http < 100 or codigo_http > 599:
        return False

    fecha_hora = obtener_hora_local()

    # Enmascarar información sensible
    usuario = enmascarar_correo(usuario)
    accion_enmascarada = enmascarar_informacion_sensible(accion)

    # Truncar campos que podrían ser muy largos
    ip_remota = ip_remota[:45]
    usuario = usuario[:100]
    accion_enmascarada = accion_enmascarada[:1000]

    logger.log(
        getattr(logging, tipo_log),
        "%s | ip=%s | usuario=%s | %s | http=%s",
        fecha_hora, ip_remota, usuario, accion_enmascarada, codigo_http
    )

    if _estado['db_habilitada']:
        return _guardar_en_db(fecha_hora, tipo_log, ip_remota, usuario, accion_enmascarada, codigo_http)
    return True


_EMAIL_RE = re.compile(r'([A-Za-z0-9._%+\-])[A-Za-z0-9._%+\-]*@([A-Za-z0-9])[A-Za-z0-9.\-]*')


def enmascarar_correo(texto: str) -> str:
    """Reemplaza cada correo por su primera letra de usuario y dominio: a***@x***"""
    return _EMAIL_RE.sub(r'\1***@\2***', texto)


def enmascarar_informacion_sensible(texto: str) -> str:
    """
    Enmascara información sensible en los logs.

    Args:
        texto (str): Texto que puede contener información sensible

    Returns:
        str: Texto con información sensible enmascarada
    """
    # Palabras clave que indican información sensible
    palabras_sensibles = ['password', 'token', 'secret', 'key', 'customcode', 'code', 'otp']

    for palabra in palabras_sensibles:
        # Buscar patrones como "code": "valor" o code=valor
        patron_json = rf'("{palabra}"\s*:\s*)"[^"]*"'
        patron_form = rf'({palabra}\s*=\s*)[^\s&]*'

        texto = re.sub(patron_json, r'\1"***"', texto, flags=re.IGNORECASE)
        texto = re.sub(patron_form, r'\1***', texto, flags=re.IGNORECASE)

    texto = enmascarar_correo(texto)

    # Enmascarar números de 6 dígitos sueltos (posibles códigos OTP)
    texto = re.sub(r'\b\d{6}\b', '******', texto)

    # Enmascarar secuencias largas de dígitos
    texto = re.sub(r'\b\d{8,}\b', lambda m: '*' * len(m.group()), texto)

    return texto


def registrar_info(ip_remota: str, usuario: str, accion: str, codigo_http: int = 200) -> bool:
    """Método auxiliar para registrar eventos de tipo INFO"""
    return registrar_evento('INFO', ip_remota, usuario, accion, codigo_http)


def registrar_debug(ip_remota: str, usuario: str, accion: str, codigo_http: int = 200) -> bool:
    """Método auxiliar para registrar eventos de tipo DEBUG"""
    return registrar_evento('DEBUG', ip_remota, usuario, accion, codigo_http)


def registrar_warning(ip_remota: str, usuario: str, accion: str, codigo_http: int = 400) -> bool:
    """Método auxiliar para registrar eventos de tipo WARNING"""
    return registrar_evento('WARNING', ip_remota, usuario, accion, codigo_http)


def registrar_error(ip_remota: str, usuario: str, accion: str, codigo_http: int = 500) -> bool:
    """Método auxiliar para registrar eventos de tipo ERROR"""
    return registrar_evento('ERROR', ip_remota, usuario, accion, codigo_http)
