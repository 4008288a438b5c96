from flask import Flask, current_app
from flask_cors import CORS
from flask_restx import Api, Namespace, Resource, fields  # type: ignore
from werkzeug.middleware.proxy_fix import ProxyFix

# Módulos internos
from .config import cargar_configuracion
from .jwt_auth import create_jwt_manager
from .mailer import create_sender
from .verification import DeliveryFailedError, InvalidInputError, VerificationService
from .utils.middleware_logger import LoggingMiddleware, marcar_registrado, obtener_ip_remota
from .utils.otp_manager import OTPLedger
from .utils.rate_limiter import RateLimiter
from .utils.sweeper import iniciar_barrido

# Logging con enmascarado de datos sensibles
from .logging import (
    configurar_logs,
    registrar_warning,
    registrar_error,
    registrar_info,
)

EXTENSION = 'verifymail'

# Namespaces
otp_ns = Namespace('otp', description='Operaciones OTP')
health_ns = Namespace('health', description='Estado del servicio')

# Define the expected payload models for Swagger
send_code_model = otp_ns.model('SendCode', {
    'email': fields.String(required=True, description='Correo a verificar', example='a@x.com'),
    'customCode': fields.String(required=False, description='Código fijo de 6 dígitos (solo OTP_TEST_MODE)', example='123456')
})

verify_code_model = otp_ns.model('VerifyCode', {
    'email': fields.String(required=True, description='Correo a verificar', example='a@x.com'),
    'code': fields.String(required=True, description='Código OTP recibido', example='123456')
})


def _contexto():
    return current_app.extensions[EXTENSION]


# ---------------- OTP Endpoints ----------------

@otp_ns.route('/send-code')
class SendCode(Resource):
    @otp_ns.expect(send_code_model, validate=True)
    @otp_ns.doc('send_code')
    def post(self):
        """Genera un código de 6 dígitos y lo envía al correo indicado."""
        ctx = _contexto()
        data = otp_ns.payload
        email = data.get('email')
        custom_code = data.get('customCode')
        ip_remota = obtener_ip_remota()
        modo_prueba = current_app.config['OTP_TEST_MODE']

        if not ctx['send_limiter'].allow(ip_remota):
            marcar_registrado()
            registrar_warning(ip_remota, email, "POST /otp/send-code | Límite de peticiones excedido", 429)
            otp_ns.abort(429, "Too many requests")

        if custom_code is not None and not modo_prueba:
            marcar_registrado()
            registrar_warning(ip_remota, email, "POST /otp/send-code | customCode rechazado fuera de modo prueba", 400)
            otp_ns.abort(400, "customCode is only accepted in test mode")

        try:
            emitido = ctx['service'].issue_challenge(email, override_code=custom_code)
        except InvalidInputError as e:
            marcar_registrado()
            registrar_warning(ip_remota, email, f"POST /otp/send-code | Entrada inválida: {e}", 422)
            otp_ns.abort(422, str(e))
        except DeliveryFailedError as e:
            marcar_registrado()
            registrar_error(ip_remota, email, f"POST /otp/send-code | Envío fallido: {e}", 500)
            otp_ns.abort(500, "Delivery failed")

        marcar_registrado()
        registrar_info(ip_remota, emitido.identity, "POST /otp/send-code | Código enviado", 200)

        respuesta = {
            "success": True,
            "message": "Code sent!",
            "expires_in": emitido.expires_in
        }
        if modo_prueba:
            respuesta["code"] = emitido.code  # Mostrar solo en entorno de pruebas
        return respuesta, 200


@otp_ns.route('/verify-code')
class VerifyCode(Resource):
    @otp_ns.expect(verify_code_model, validate=True)
    @otp_ns.doc('verify_code')
    def post(self):
        """
        Verifica el código recibido por correo.
        - Éxito consume el código: no puede usarse dos veces.
        - Código inexistente, expirado o incorrecto devuelven la misma respuesta.
        """
        ctx = _contexto()
        data = otp_ns.payload
        email = data.get('email')
        ip_remota = obtener_ip_remota()

        if not ctx['verify_limiter'].allow(ip_remota):
            marcar_registrado()
            registrar_warning(ip_remota, email, "POST /otp/verify-code | Límite de peticiones excedido", 429)
            otp_ns.abort(429, "Too many requests")

        resultado = ctx['service'].verify_challenge(email, data.get('code'))

        if not resultado.success:
            # El motivo preciso queda solo en el log
            marcar_registrado()
            registrar_warning(ip_remota, email, f"POST /otp/verify-code | Verificación fallida: {resultado.outcome.value}", 400)
            return {"success": False, "message": "Invalid or expired code"}, 400

        marcar_registrado()
        registrar_info(ip_remota, email, "POST /otp/verify-code | Correo verificado", 200)

        respuesta = {"success": True, "message": "Verified!"}
        jwt_manager = ctx['jwt']
        if jwt_manager is not None:
            respuesta["token"] = jwt_manager.generate_token(resultado.identity)
        return respuesta, 200


@health_ns.route('')
class Health(Resource):
    @health_ns.doc('health')
    def get(self):
        """Estado del servicio y endpoints disponibles."""
        return {"status": "Email API LIVE", "endpoints": ["/otp/send-code", "/otp/verify-code"]}, 200


def create_app(test_config=None, sender=None, ledger=None):
    """
    Crea la aplicación Flask con el ledger, el servicio y los limitadores.

    Args:
        test_config (dict): valores que sobrescriben la configuración del entorno.
        sender: implementación de Sender; por defecto SMTPSender según config.
        ledger (OTPLedger): ledger a usar; por defecto uno nuevo.
    """
    app = Flask(__name__)
    app.config.update(cargar_configuracion())
    if test_config:
        app.config.update(test_config)

    # Detrás de N proxies de confianza, remote_addr se toma de X-Forwarded-For
    saltos = app.config['PROXY_TRUSTED_HOPS']
    if saltos > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=saltos, x_proto=saltos)  # type: ignore[assignment]

    CORS(app, resources={r"/*": {"origins": app.config['CORS_ORIGINS']}})

    configurar_logs(app.config['LOG_LEVEL'], app.config['LOG_DB_ENABLED'])
    LoggingMiddleware(app)

    if ledger is None:
        ledger = OTPLedger(shards=app.config['OTP_LEDGER_SHARDS'])
    if sender is None:
        sender = create_sender(app.config)
    service = VerificationService(
        ledger,
        sender,
        ttl_seconds=app.config['OTP_TTL_SECONDS'],
        delivery_timeout=app.config['OTP_DELIVERY_TIMEOUT_SECONDS'],
    )

    app.extensions[EXTENSION] = {
        'ledger': ledger,
        'service': service,
        'send_limiter': RateLimiter(app.config['RATE_LIMIT_SEND_CODE'], namespace='send-code'),
        'verify_limiter': RateLimiter(app.config['RATE_LIMIT_VERIFY_CODE'], namespace='verify-code'),
        'jwt': create_jwt_manager(app),
        'scheduler': iniciar_barrido(ledger, app.config['OTP_SWEEP_INTERVAL_SECONDS']),
    }

    api = Api(
        app,
        version='1.0',
        title='Email Verification API',
        description='API para emitir y verificar códigos OTP de 6 dígitos enviados por correo.',
        doc='/swagger'  # Swagger UI endpoint
    )
    api.add_namespace(otp_ns)
    api.add_namespace(health_ns)

    return app


def shutdown_app(app):
    """Detiene el barrido periódico y descarta el estado en memoria."""
    ctx = app.extensions.get(EXTENSION)
    if not ctx:
        return
    if ctx['scheduler'] is not None:
        ctx['scheduler'].shutdown(wait=False)
        ctx['scheduler'] = None
    ctx['service'].shutdown()
    ctx['ledger'].shutdown()


if __name__ == "__main__":
    import atexit

    app = create_app()
    atexit.register(shutdown_app, app)
    app.run(host="0.0.0.0", port=app.config['PORT'], threaded=True)
