import os
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from pingmonitor.config import AppConfig
from pingmonitor.core.logger import get_logger
from pingmonitor.core.settings import get_settings
from pingmonitor.core.ssl_config import get_uvicorn_ssl_kwargs
from pingmonitor.api.routes_scan import router as scan_router
from pingmonitor.websocket_manager import ws_manager

settings = get_settings()
log = get_logger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Network Ping Monitor",
        description="Escaneo continuo de disponibilidad y latencia de rangos /24 con progreso en tiempo real.",
        version="1.0.0",
    )

    # Config general (CORS, logs de arranque)
    AppConfig.init_app(app)

    # Router de escaneo (WebSocket /ws)
    app.include_router(scan_router)

    # verifica estado del servidor
    @app.get("/health", tags=["Health"])
    def health_check():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    # Eventos de ciclo de vida
    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("Cerrando sesiones de escaneo...")
        await ws_manager.shutdown()

    # Archivos estáticos del frontend (opcional, va al final para no tapar /ws ni /health)
    if os.path.isdir(settings.STATIC_DIR):
        app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")
        log.info(f"Sirviendo estáticos desde {settings.STATIC_DIR}")
    else:
        log.info(f"Sin estáticos: no existe {settings.STATIC_DIR}")

    return app


app = create_app()


def run():
    import uvicorn

    ssl_kwargs = {}
    try:
        ssl_kwargs = get_uvicorn_ssl_kwargs()
    except Exception as e:
        # Si hay error en SSL, logueamos y seguimos sin SSL
        log.error(f"Error al configurar SSL: {e}")
        ssl_kwargs = {}

    log.info(f"Network Ping Monitor en http://localhost:{settings.PORT} (SSL: {bool(ssl_kwargs)})")

    uvicorn.run(
        "pingmonitor.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        **ssl_kwargs,
    )


# Ejecución directa con SSL opcional (leyendo .env)
if __name__ == "__main__":
    run()
