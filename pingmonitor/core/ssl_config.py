from dataclasses import dataclass

from pingmonitor.core.logger import get_logger
from pingmonitor.core.settings import Settings, get_settings

log = get_logger(__name__)


# Configuracion SSL para servir HTTPS / WSS
@dataclass
class SSLConfig:
    enabled: bool
    certfile: str | None
    keyfile: str | None


def get_ssl_config(settings: Settings | None = None) -> SSLConfig:
    """
    Lee la configuración SSL desde Settings (.env).

    Variables usadas:
      - SSL_ENABLED (true/false)
      - SSL_CERTFILE (ruta al certificado PEM)
      - SSL_KEYFILE  (ruta a la clave privada PEM)
    """
    settings = settings or get_settings()

    enabled = settings.SSL_ENABLED
    certfile = settings.SSL_CERTFILE
    keyfile = settings.SSL_KEYFILE

    if enabled:
        if not certfile or not keyfile:
            # Error fuerte: se habilitó SSL pero faltan archivos
            msg = (
                "SSL_ENABLED=true pero falta SSL_CERTFILE o SSL_KEYFILE en el .env. "
                "Deshabilita SSL o configura las rutas correctas."
            )
            log.error(msg)
            raise RuntimeError(msg)
        log.info(f"SSL habilitado. Cert: {certfile}  Key: {keyfile}")
    else:
        log.info("SSL deshabilitado. El monitor correrá sobre HTTP/WS.")

    return SSLConfig(
        enabled=enabled,
        certfile=certfile,
        keyfile=keyfile,
    )


def get_uvicorn_ssl_kwargs(settings: Settings | None = None) -> dict:
    """
    Devuelve un dict con los argumentos SSL para uvicorn.run(),
    o un dict vacío si SSL está deshabilitado.
    """
    cfg = get_ssl_config(settings)

    if not cfg.enabled:
        return {}

    return {
        "ssl_certfile": cfg.certfile,
        "ssl_keyfile": cfg.keyfile,
    }
