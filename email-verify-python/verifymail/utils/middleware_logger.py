# verifymail/utils/middleware_logger.py
"""
Middleware de logging para interceptar y registrar todas las peticiones HTTP.

Características:
- Intercepta todas las peticiones HTTP automáticamente
- Obtiene IP remota (la dirección del socket, corregida por ProxyFix detrás de proxies de confianza)
- Registra método HTTP, ruta accedida y código de respuesta
- Enmascara nombres de campos sensibles (código OTP, tokens)
- Las peticiones que un endpoint ya registró (g.log_registrado) se omiten aquí
"""

from flask import Flask, request, g
from ..logging.logger import logger, registrar_evento

PARAMETROS_SENSIBLES = ('code', 'otp', 'token', 'secret', 'password', 'key')

STATUS_TEXTS = {
    200: 'OK', 201: 'Created', 204: 'No Content',
    301: 'Moved Permanently', 302: 'Found', 304: 'Not Modified',
    400: 'Bad Request', 401: 'Unauthorized', 403: 'Forbidden',
    404: 'Not Found', 405: 'Method Not Allowed', 422: 'Unprocessable Entity',
    429: 'Too Many Requests',
    500: 'Internal Server Error', 502: 'Bad Gateway', 503: 'Service Unavailable'
}


def obtener_ip_remota() -> str:
    """
    Obtiene la dirección IP remota del cliente de la petición actual.

    Las cabeceras X-Forwarded-For no se leen aquí: las reescribe ProxyFix
    solo cuando PROXY_TRUSTED_HOPS > 0, así un cliente no puede falsificarlas.

    Returns:
        str: Dirección IP del cliente
    """
    return request.remote_addr or 'unknown'


def marcar_registrado() -> None:
    """Indica que el endpoint ya registró su propio evento para esta petición."""
    g.log_registrado = True


def es_parametro_sensible(nombre_param: str) -> bool:
    """Determina si un parámetro contiene información sensible."""
    nombre_lower = nombre_param.lower()
    return any(sensible in nombre_lower for sensible in PARAMETROS_SENSIBLES)


def determinar_tipo_log(status_code: int) -> str:
    """
    Determina el tipo de log basado en el código de respuesta HTTP.

    Returns:
        str: Tipo de log (INFO, WARNING, ERROR)
    """
    if status_code < 400 or status_code == 404:
        return 'INFO'
    if status_code < 500:
        return 'WARNING'
    return 'ERROR'


class LoggingMiddleware:
    """
    Middleware para registrar automáticamente todas las peticiones HTTP.
    """

    def __init__(self, app: Flask = None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask):
        """
        Registra los hooks before_request y after_request en la aplicación Flask.

        Args:
            app (Flask): Instancia de la aplicación Flask
        """
        app.before_request(self.before_request)
        app.after_request(self.after_request)

    def before_request(self):
        """Captura información inicial de la petición."""
        g.log_info = {
            'ip_remota': obtener_ip_remota(),
            'metodo': request.method,
            'ruta': request.path,
        }

    def after_request(self, response):
        """
        Registra el evento completo antes de enviar la respuesta.

        Returns:
            response: El mismo objeto de respuesta (sin modificaciones)
        """
        try:
            # El endpoint ya dejó su propio registro (evitar duplicación)
            if getattr(g, 'log_registrado', False):
                return response

            log_info = getattr(g, 'log_info', None) or {
                'ip_remota': obtener_ip_remota(),
                'metodo': request.method,
                'ruta': request.path,
            }

            registrar_evento(
                tipo_log=determinar_tipo_log(response.status_code),
                ip_remota=log_info['ip_remota'],
                usuario='anon',
                accion=self.construir_descripcion_accion(log_info, response.status_code),
                codigo_http=response.status_code
            )
        except Exception:
            # Un fallo del logging nunca debe romper la respuesta
            logger.exception("Error en middleware de logging")

        return response

    def construir_descripcion_accion(self, log_info: dict, status_code: int) -> str:
        """
        Construye una descripción de la acción realizada.
        Solo se registran los nombres de los campos, nunca sus valores.
        """
        metodo = log_info.get('metodo', 'UNKNOWN')
        ruta = log_info.get('ruta', '/unknown')

        descripcion = f"{metodo} {ruta}"

        if metodo in ['POST', 'PUT', 'PATCH'] and request.is_json:
            data = request.get_json(silent=True)
            if isinstance(data, dict):
                keys = [k if not es_parametro_sensible(k) else f"{k}:***" for k in data.keys()]
                descripcion += f" | datos: {{{', '.join(keys)}}}"

        status_text = STATUS_TEXTS.get(status_code, 'Unknown')
        descripcion += f" | respuesta: {status_code} {status_text}"

        return descripcion
