from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from pingmonitor.core.logger import get_logger
from pingmonitor.schemas.scan import ErrorEvent, ScanRequest
from pingmonitor.websocket_manager import WebSocketManager, get_ws_manager

log = get_logger(__name__)

router = APIRouter(tags=["Scanner"])


def format_validation_error(error: ValidationError) -> str:
    """
    Resume los errores de pydantic en una línea:
        "ranges.0.prefix: Value error, Prefijo inválido: '10.0'"
    """
    parts = []
    for err in error.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return "Petición inválida → " + "; ".join(parts)


# WEBSOCKET: ESCANEO DE RANGOS
@router.websocket("/ws")
async def scan_ws(ws: WebSocket, manager: WebSocketManager = Depends(get_ws_manager)):
    ctx = await manager.connect(ws)

    try:
        while True:
            raw = await ws.receive_text()

            # Validación en la frontera: prefijos mal formados no llegan al escáner
            try:
                request = ScanRequest.model_validate_json(raw)
            except ValidationError as e:
                message = format_validation_error(e)
                log.warning(f"Cliente {ctx.connection_id}: {message}")
                await manager.safe_emit(ctx, ErrorEvent(message=message))
                continue

            await manager.submit(ctx, request)

    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(ws)
