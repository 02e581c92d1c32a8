from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


# Carga de variables y configuracion que se usa en el .env
class Settings(BaseSettings):
    APP_NAME: str = "Network Ping Monitor"
    DEBUG: bool = False

    # Servidor
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    STATIC_DIR: str = "public"

    # Escaneo
    SCAN_BATCH_SIZE: int = Field(50, ge=1, le=255)
    PING_TIMEOUT: float = Field(1.0, gt=0)
    BUSY_POLICY: Literal["reject", "queue"] = "reject"
    MAX_PENDING: int = Field(5, ge=1)

    # Cliente
    DATABASE_URL: str = "sqlite:///ping_monitor.db"
    SERVER_URL: str = "ws://localhost:3000/ws"
    RECONNECT_DELAY: float = Field(3.0, gt=0)
    RECONNECT_MAX_DELAY: float = Field(3.0, gt=0)
    DEFAULT_RANGE: str = "192.168.50"

    # SSL
    SSL_ENABLED: bool = False
    SSL_CERTFILE: str | None = None
    SSL_KEYFILE: str | None = None

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()
