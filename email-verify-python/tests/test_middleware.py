import logging

from verifymail.utils import middleware_logger
from verifymail.utils.middleware_logger import determinar_tipo_log, es_parametro_sensible


def test_log_type_from_status():
    assert determinar_tipo_log(200) == "INFO"
    assert determinar_tipo_log(404) == "INFO"
    assert determinar_tipo_log(429) == "WARNING"
    assert determinar_tipo_log(500) == "ERROR"


def test_sensitive_parameters():
    assert es_parametro_sensible("code")
    assert es_parametro_sensible("customCode")
    assert not es_parametro_sensible("email")


def test_generic_requests_are_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="verifymail"):
        client.get("/health", environ_base={"REMOTE_ADDR": "198.51.100.7"})

    mensajes = [r.getMessage() for r in caplog.records]
    assert any("GET /health" in m and "ip=198.51.100.7" in m and "200 OK" in m for m in mensajes)


def test_otp_endpoints_log_outcome_without_code(test_mode_client, caplog):
    with caplog.at_level(logging.INFO, logger="verifymail"):
        test_mode_client.post("/otp/send-code", json={"email": "bob@x.com", "customCode": "246810"})
        test_mode_client.post("/otp/verify-code", json={"email": "bob@x.com", "code": "999999"})

    mensajes = " ".join(r.getMessage() for r in caplog.records)
    assert "246810" not in mensajes
    assert "999999" not in mensajes
    assert "bob@x.com" not in mensajes
    assert "Verificación fallida: mismatch" in mensajes
    # Los endpoints OTP no se registran dos veces
    assert "| datos:" not in mensajes


def test_schema_rejection_on_otp_endpoint_is_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="verifymail"):
        resp = client.post("/otp/verify-code", json={"email": "a@x.com"})

    assert resp.status_code == 400
    mensajes = [r.getMessage() for r in caplog.records]
    assert any("POST /otp/verify-code" in m and "400 Bad Request" in m for m in mensajes)


def test_forwarded_header_is_ignored_without_trusted_proxy(client, caplog):
    with caplog.at_level(logging.INFO, logger="verifymail"):
        client.get(
            "/health",
            headers={"X-Forwarded-For": "203.0.113.50"},
            environ_base={"REMOTE_ADDR": "198.51.100.7"},
        )

    mensajes = " ".join(r.getMessage() for r in caplog.records)
    assert "ip=198.51.100.7" in mensajes
    assert "203.0.113.50" not in mensajes


def test_logging_failure_does_not_break_response(client, monkeypatch, caplog):
    def explota(**kwargs):
        raise RuntimeError("sink caído")

    monkeypatch.setattr(middleware_logger, "registrar_evento", explota)

    with caplog.at_level(logging.ERROR, logger="verifymail"):
        resp = client.get("/health")

    assert resp.status_code == 200
    assert any("Error en middleware de logging" in r.getMessage() for r in caplog.records)
