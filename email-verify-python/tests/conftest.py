import threading

import pytest

from verifymail import create_app, shutdown_app
from verifymail.mailer import DeliveryError
from verifymail.utils.otp_manager import OTPLedger


class FakeClock:
    """Reloj manual para simular el paso del tiempo."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingSender:
    """Sender que guarda los mensajes en lugar de enviarlos."""

    def __init__(self):
        self.sent = []
        self.fail = False
        self.block = None
        self._lock = threading.Lock()

    def deliver(self, identity, subject, body):
        if self.block is not None:
            self.block.wait(5)
        if self.fail:
            raise DeliveryError("relay unavailable")
        with self._lock:
            self.sent.append((identity, subject, body))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(clock):
    return OTPLedger(shards=4, clock=clock)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def base_config():
    return {
        'TESTING': True,
        'OTP_TEST_MODE': False,
        'OTP_SWEEP_INTERVAL_SECONDS': 0,
        'OTP_DELIVERY_TIMEOUT_SECONDS': 2,
        'RATE_LIMIT_SEND_CODE': '5 per 15 minutes',
        'RATE_LIMIT_VERIFY_CODE': '10 per minute',
        'JWT_SECRET_KEY': None,
        'LOG_DB_ENABLED': False,
        'PROXY_TRUSTED_HOPS': 0,
        'CORS_ORIGINS': '*',
    }


@pytest.fixture
def make_app(sender, ledger, base_config):
    apps = []

    def _make(**overrides):
        config = dict(base_config)
        config.update(overrides)
        app = create_app(config, sender=sender, ledger=ledger)
        apps.append(app)
        return app

    yield _make

    for app in apps:
        shutdown_app(app)


@pytest.fixture
def client(make_app):
    return make_app().test_client()


@pytest.fixture
def test_mode_client(make_app):
    return make_app(OTP_TEST_MODE=True).test_client()
