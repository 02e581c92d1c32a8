from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pingmonitor.core.logger import get_logger
from pingmonitor.core.settings import get_settings

settings = get_settings()
log = get_logger(__name__)


# Configuracion general del servidor
class AppConfig:
    """
    Configuración general de la app
    Manejo de:
      - CORS
      - Parámetros del escaneo
      - Logs de arranque
    """

    APP_NAME = settings.APP_NAME
    DEBUG = settings.DEBUG
    WS_PATH = "/ws"

    # Orígenes permitidos
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost",
        "http://127.0.0.1",
        "*",  # Para cualquier origen
    ]

    @staticmethod
    def init_app(app: FastAPI):
        # CORS
        app.add_middleware(
            CORSMiddleware,
            allow_origins=AppConfig.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        # Logging
        log.info(f"== Iniciando {AppConfig.APP_NAME} ==")
        log.info(f"Debug: {AppConfig.DEBUG}")
        log.info(f"WebSocket: {AppConfig.WS_PATH}")
        log.info(f"Lote de ping: {settings.SCAN_BATCH_SIZE} hosts, timeout {settings.PING_TIMEOUT}s")
        log.info(f"Política con escaneo en curso: {settings.BUSY_POLICY}")

        return app
