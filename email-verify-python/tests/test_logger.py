import logging

import psycopg2
import pytest

from verifymail.logging import logger as log_module
from verifymail.logging import registrar_evento, registrar_info, registrar_warning
from verifymail.logging.logger import enmascarar_correo, enmascarar_informacion_sensible


@pytest.fixture(autouse=True)
def db_deshabilitada():
    log_module._estado['db_habilitada'] = False
    yield
    log_module._estado['db_habilitada'] = False


def test_masks_email_addresses():
    assert enmascarar_correo("alice@example.com") == "a***@e***"
    assert enmascarar_correo("anon") == "anon"


def test_masks_codes_and_secrets():
    texto = enmascarar_informacion_sensible('{"code": "123456", "token": "abc.def"} customCode=654321 otp=111111')

    assert "123456" not in texto
    assert "654321" not in texto
    assert "111111" not in texto
    assert "abc.def" not in texto


def test_masks_bare_six_digit_runs():
    assert enmascarar_informacion_sensible("OTP generado: 012345") == "OTP generado: ******"


def test_invalid_log_type_or_status_rejected():
    assert registrar_evento("TRACE", "1.2.3.4", "anon", "accion", 200) is False
    assert registrar_evento("INFO", "1.2.3.4", "anon", "accion", 99) is False
    assert registrar_evento("INFO", "1.2.3.4", "anon", "accion", 600) is False
    assert registrar_evento("INFO", "1.2.3.4", "anon", "accion", True) is False


def test_event_goes_to_standard_logger_masked(caplog):
    with caplog.at_level(logging.INFO, logger="verifymail"):
        assert registrar_warning("1.2.3.4", "bob@x.com", "Código 123456 rechazado", 400) is True

    mensaje = caplog.records[-1].getMessage()
    assert caplog.records[-1].levelname == "WARNING"
    assert "b***@x***" in mensaje
    assert "bob@x.com" not in mensaje
    assert "123456" not in mensaje
    assert "http=400" in mensaje


def test_blank_fields_get_defaults(caplog):
    with caplog.at_level(logging.INFO, logger="verifymail"):
        registrar_info("", None, "   ")

    mensaje = caplog.records[-1].getMessage()
    assert "ip=unknown" in mensaje
    assert "usuario=anon" in mensaje
    assert "accion_no_especificada" in mensaje


class _FakeCursor:
    def __init__(self, calls):
        self.calls = calls

    def execute(self, sql, params=None):
        self.calls.append((sql, params))

    def close(self):
        pass


class _FakeConnection:
    def __init__(self):
        self.calls = []
        self.committed = False
        self.closed = False

    def cursor(self):
        return _FakeCursor(self.calls)

    def commit(self):
        self.committed = True

    def rollback(self):
        pass

    def close(self):
        self.closed = True


def test_database_sink_inserts_masked_event(monkeypatch):
    conn = _FakeConnection()
    monkeypatch.setattr(log_module.psycopg2, "connect", lambda **kwargs: conn)
    log_module._estado['db_habilitada'] = True

    assert registrar_info("1.2.3.4", "bob@x.com", "Correo verificado", 200) is True

    sql, params = conn.calls[-1]
    assert "INSERT INTO verify.logs_sistema" in sql
    assert params[1:] == ("INFO", "1.2.3.4", "b***@x***", "Correo verificado", 200)
    assert conn.committed and conn.closed


def test_database_sink_failure_returns_false(monkeypatch):
    def _fallar(**kwargs):
        raise psycopg2.OperationalError("no db")

    monkeypatch.setattr(log_module.psycopg2, "connect", _fallar)
    log_module._estado['db_habilitada'] = True

    assert registrar_info("1.2.3.4", "anon", "accion", 200) is False
