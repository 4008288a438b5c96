# verifymail/mailer.py
"""
Envío de correos para la entrega de códigos OTP.

El núcleo solo conoce la interfaz Sender.deliver(identity, subject, body);
SMTPSender es la implementación por defecto sobre cualquier relay SMTP
(SendGrid por defecto, Gmail u otro mediante variables de entorno).
"""

import logging
import re
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional, Protocol

from .logging.logger import enmascarar_correo

logger = logging.getLogger("verifymail.mailer")


class DeliveryError(Exception):
    """El transporte de correo no pudo entregar el mensaje."""


class Sender(Protocol):
    def deliver(self, identity: str, subject: str, body: str) -> None:
        """Entrega el mensaje o lanza DeliveryError."""


def _texto_plano(html: str) -> str:
    texto = re.sub(r"<[^>]+>", " ", html)
    return "\n".join(linea.strip() for linea in texto.splitlines() if linea.strip())


class SMTPSender:
    """
    Entrega mensajes HTML mediante SMTP (STARTTLS o SSL).

    Args:
        host (str): servidor SMTP.
        port (int): puerto del servidor.
        username (str): usuario SMTP; si es None no se hace login.
        password (str): contraseña o API key del relay.
        mail_from (str): remitente, p. ej. '"Email Verify" <noreply@yourapp.com>'.
        use_tls (bool): usar STARTTLS (ignorado si use_ssl es True).
        use_ssl (bool): conexión SSL directa.
        timeout (float): timeout de socket en segundos.
        suppress_send (bool): solo registra el envío, útil en desarrollo.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        mail_from: str = '"Email Verify" <noreply@yourapp.com>',
        use_tls: bool = True,
        use_ssl: bool = False,
        timeout: float = 15,
        suppress_send: bool = False,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.mail_from = mail_from
        self.use_tls = use_tls and not use_ssl
        self.use_ssl = use_ssl
        self.timeout = timeout
        self.suppress_send = suppress_send

    def construir_mensaje(self, identity: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.mail_from
        msg["To"] = identity
        msg.set_content(_texto_plano(body))
        msg.add_alternative(body, subtype="html")
        return msg

    def deliver(self, identity: str, subject: str, body: str) -> None:
        msg = self.construir_mensaje(identity, subject, body)

        if self.suppress_send:
            logger.info("Envío suprimido (MAIL_SUPPRESS_SEND) para %s", enmascarar_correo(identity))
            return

        if not self.host:
            raise DeliveryError("SMTP_HOST no está configurado")

        try:
            if self.use_ssl:
                ctx = ssl.create_default_context()
                with smtplib.SMTP_SSL(self.host, self.port, context=ctx, timeout=self.timeout) as s:
                    self._autenticar_y_enviar(s, msg)
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
                    if self.use_tls:
                        s.starttls(context=ssl.create_default_context())
                    self._autenticar_y_enviar(s, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Fallo SMTP %s:%s hacia %s: %r", self.host, self.port, enmascarar_correo(identity), e)
            raise DeliveryError(f"SMTP delivery failed: {e}") from e

        logger.info("Correo enviado vía %s:%s a %s", self.host, self.port, enmascarar_correo(identity))

    def _autenticar_y_enviar(self, s, msg):
        if self.username and self.password:
            s.login(self.username, self.password)
        s.send_message(msg)


def create_sender(config) -> SMTPSender:
    """
    Crea el sender SMTP a partir de la configuración de la aplicación.

    Args:
        config (dict): configuración de Flask (app.config).
    """
    return SMTPSender(
        host=config.get("SMTP_HOST"),
        port=int(config.get("SMTP_PORT", 587)),
        username=config.get("SMTP_USER"),
        password=config.get("SMTP_PASS"),
        mail_from=config.get("MAIL_FROM", '"Email Verify" <noreply@yourapp.com>'),
        use_tls=bool(config.get("SMTP_USE_TLS", True)),
        use_ssl=bool(config.get("SMTP_USE_SSL", False)),
        timeout=float(config.get("OTP_DELIVERY_TIMEOUT_SECONDS", 15)),
        suppress_send=bool(config.get("MAIL_SUPPRESS_SEND", False)),
    )
