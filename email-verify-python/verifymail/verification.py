# verifymail/verification.py
"""
Servicio de verificación de correo mediante OTP.

Orquesta el ledger de desafíos con la generación del código y su entrega
por correo. Es el único componente con dependencia hacia afuera (el Sender).
"""

import logging
import secrets
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Optional

from .mailer import DeliveryError, Sender
from .utils.otp_manager import ConsumeResult, OTPLedger, TTL_POR_DEFECTO
from .validators import normalize_email, validate_code, validate_email

logger = logging.getLogger("verifymail.verification")

ASUNTO = "Your 6-digit verification code"

PLANTILLA_HTML = """
<div style="font-family: Arial; max-width: 500px; margin: 0 auto;">
    <h2>Your Verification Code</h2>
    <div style="background: #007bff; color: white; font-size: 48px; font-weight: bold; padding: 20px; text-align: center; border-radius: 10px; letter-spacing: 10px;">
        {code}
    </div>
    <p>This code expires in {duracion}.</p>
</div>
"""


class OtpError(Exception):
    """Clase base para fallas del servicio OTP."""


class InvalidInputError(OtpError):
    """Correo o código con forma inválida; error del cliente, no se reintenta."""


class DeliveryFailedError(OtpError):
    """El código quedó guardado pero no se pudo entregar; es seguro reintentar."""


@dataclass(frozen=True)
class IssuedChallenge:
    identity: str
    code: str
    expires_in: int


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    outcome: ConsumeResult
    identity: str = ""


def generar_codigo() -> str:
    """
    Genera un OTP de 6 dígitos uniforme en 000000-999999.

    Se utiliza la librería secrets (fuente criptográficamente segura) y se
    conservan los ceros a la izquierda.
    """
    return f"{secrets.randbelow(1_000_000):06d}"


def _describir_duracion(ttl_seconds: float) -> str:
    """'1 minute', '10 minutes' o, por debajo de un minuto, '45 seconds'."""
    segundos = int(ttl_seconds)
    if segundos < 60:
        return f"{segundos} second" if segundos == 1 else f"{segundos} seconds"
    minutos = segundos // 60
    return f"{minutos} minute" if minutos == 1 else f"{minutos} minutes"


def renderizar_mensaje(code: str, ttl_seconds: float):
    """Devuelve (asunto, cuerpo HTML) del correo con el código."""
    return ASUNTO, PLANTILLA_HTML.format(code=code, duracion=_describir_duracion(ttl_seconds))


class VerificationService:
    """
    Casos de uso de emisión y verificación de desafíos.

    Args:
        ledger (OTPLedger): almacén de desafíos.
        sender (Sender): capacidad de entrega de correo.
        ttl_seconds (float): validez de cada desafío (10 minutos por defecto).
        delivery_timeout (float): espera máxima de la entrega en segundos.
        max_workers (int): hilos disponibles para entregas concurrentes.
    """

    def __init__(self, ledger: OTPLedger, sender: Sender, ttl_seconds: float = TTL_POR_DEFECTO,
                 delivery_timeout: float = 15, max_workers: int = 8):
        self.ledger = ledger
        self.sender = sender
        self.ttl_seconds = ttl_seconds
        self.delivery_timeout = delivery_timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="otp-delivery")

    def issue_challenge(self, identity, override_code: Optional[str] = None,
                        timeout: Optional[float] = None) -> IssuedChallenge:
        """
        Emite un desafío nuevo para el correo y lo entrega.

        Args:
            identity (str): correo electrónico del usuario.
            override_code (str): código fijo de 6 dígitos (solo para pruebas).
            timeout (float): espera máxima de la entrega; por defecto delivery_timeout.

        Returns:
            IssuedChallenge: correo normalizado, código y segundos de validez.

        Raises:
            InvalidInputError: correo o código con forma inválida.
            DeliveryFailedError: el envío falló o excedió el timeout. El desafío
                guardado no se revierte; una nueva emisión lo reemplaza.
        """
        email = normalize_email(identity)
        valido, mensaje = validate_email(email)
        if not valido:
            raise InvalidInputError(mensaje)

        if override_code is not None:
            valido, mensaje = validate_code(override_code)
            if not valido:
                raise InvalidInputError(mensaje)
            code = override_code
        else:
            code = generar_codigo()

        self.ledger.put(email, code, self.ttl_seconds)

        # La entrega ocurre fuera de cualquier lock del ledger.
        subject, body = renderizar_mensaje(code, self.ttl_seconds)
        self._entregar(email, subject, body, self.delivery_timeout if timeout is None else timeout)

        return IssuedChallenge(identity=email, code=code, expires_in=int(self.ttl_seconds))

    def _entregar(self, email, subject, body, timeout):
        try:
            future = self._executor.submit(self.sender.deliver, email, subject, body)
        except RuntimeError as e:
            # Pool detenido por shutdown()
            raise DeliveryFailedError("Delivery unavailable") from e
        try:
            future.result(timeout=timeout)
        except FutureTimeoutError as e:
            future.cancel()
            logger.warning("Entrega excedió %ss", timeout)
            raise DeliveryFailedError("Delivery timed out") from e
        except DeliveryError as e:
            raise DeliveryFailedError(str(e)) from e
        except Exception as e:
            logger.exception("Error inesperado del sender")
            raise DeliveryFailedError("Delivery failed") from e

    def verify_challenge(self, identity, submitted_code) -> VerificationResult:
        """
        Verifica un código contra el desafío vivo del correo.

        Returns:
            VerificationResult: success solo para MATCHED; outcome conserva el
            motivo preciso (EXPIRED, NOT_FOUND, MISMATCH) para logs internos.
        """
        email = normalize_email(identity)
        valido, _ = validate_email(email)
        if not valido:
            return VerificationResult(success=False, outcome=ConsumeResult.NOT_FOUND, identity=email)

        if not isinstance(submitted_code, str):
            submitted_code = ""

        outcome = self.ledger.consume(email, submitted_code)
        return VerificationResult(success=outcome is ConsumeResult.MATCHED, outcome=outcome, identity=email)

    def shutdown(self):
        """Detiene el pool de entregas sin esperar envíos pendientes."""
        self._executor.shutdown(wait=False)
