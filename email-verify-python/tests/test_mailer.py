import smtplib

import pytest

from verifymail.mailer import DeliveryError, SMTPSender, create_sender


class FakeSMTP:
    instances = []
    fail_on_send = False

    def __init__(self, host, port, timeout=None, context=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.started_tls = False
        self.logged_in = None
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, msg):
        if FakeSMTP.fail_on_send:
            raise smtplib.SMTPServerDisconnected("gone")
        self.messages.append(msg)


@pytest.fixture(autouse=True)
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_on_send = False
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(smtplib, "SMTP_SSL", FakeSMTP)
    return FakeSMTP


def test_delivers_html_message_with_starttls_and_login():
    sender = SMTPSender("smtp.sendgrid.net", 587, "apikey", "secret", timeout=7)

    sender.deliver("a@x.com", "Your 6-digit verification code", "<div><b>012345</b></div>")

    smtp = FakeSMTP.instances[0]
    assert (smtp.host, smtp.port, smtp.timeout) == ("smtp.sendgrid.net", 587, 7)
    assert smtp.started_tls is True
    assert smtp.logged_in == ("apikey", "secret")
    msg = smtp.messages[0]
    assert msg["To"] == "a@x.com"
    assert msg["Subject"] == "Your 6-digit verification code"
    remitente = msg["From"].addresses[0]
    assert remitente.display_name == "Email Verify"
    assert remitente.addr_spec == "noreply@yourapp.com"
    assert "012345" in msg.get_body(preferencelist=("plain",)).get_content()
    assert "<b>012345</b>" in msg.get_body(preferencelist=("html",)).get_content()


def test_ssl_mode_skips_starttls():
    sender = SMTPSender("smtp.example.com", 465, use_ssl=True)

    sender.deliver("a@x.com", "s", "<p>123456</p>")

    smtp = FakeSMTP.instances[0]
    assert smtp.started_tls is False
    assert smtp.logged_in is None


def test_smtp_errors_become_delivery_error():
    FakeSMTP.fail_on_send = True
    sender = SMTPSender("smtp.example.com")

    with pytest.raises(DeliveryError):
        sender.deliver("a@x.com", "s", "<p>123456</p>")


def test_missing_host_is_delivery_error():
    with pytest.raises(DeliveryError):
        SMTPSender(None).deliver("a@x.com", "s", "<p>123456</p>")


def test_suppressed_send_does_not_connect():
    SMTPSender("smtp.example.com", suppress_send=True).deliver("a@x.com", "s", "<p>123456</p>")

    assert FakeSMTP.instances == []


def test_create_sender_from_config():
    sender = create_sender({
        "SMTP_HOST": "smtp.gmail.com",
        "SMTP_PORT": "465",
        "SMTP_USER": "me@gmail.com",
        "SMTP_PASS": "app-password",
        "SMTP_USE_SSL": True,
        "OTP_DELIVERY_TIMEOUT_SECONDS": 3,
    })

    assert sender.host == "smtp.gmail.com"
    assert sender.port == 465
    assert sender.use_ssl is True
    assert sender.use_tls is False
    assert sender.timeout == 3.0
