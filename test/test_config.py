import pytest

from pingmonitor.core.settings import Settings
from pingmonitor.core.ssl_config import get_uvicorn_ssl_kwargs


def test_ssl_disabled_by_default():
    assert get_uvicorn_ssl_kwargs(Settings(SSL_ENABLED=False)) == {}


def test_ssl_enabled_returns_uvicorn_kwargs():
    settings = Settings(SSL_ENABLED=True, SSL_CERTFILE="certs/cert.pem", SSL_KEYFILE="certs/key.pem")
    assert get_uvicorn_ssl_kwargs(settings) == {
        "ssl_certfile": "certs/cert.pem",
        "ssl_keyfile": "certs/key.pem",
    }


def test_ssl_enabled_without_files_fails():
    with pytest.raises(RuntimeError):
        get_uvicorn_ssl_kwargs(Settings(SSL_ENABLED=True, SSL_CERTFILE=None, SSL_KEYFILE=None))


@pytest.mark.parametrize("field, value", [("SCAN_BATCH_SIZE", 0), ("SCAN_BATCH_SIZE", 256), ("BUSY_POLICY", "abort")])
def test_invalid_scan_settings(field, value):
    with pytest.raises(ValueError):
        Settings(**{field: value})
