# pingmonitor/websocket_manager.py

import asyncio
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional

from fastapi import WebSocket
from pydantic import BaseModel

from pingmonitor.core.logger import get_logger
from pingmonitor.core.settings import get_settings
from pingmonitor.schemas.scan import ErrorEvent, ScanRequest, dump_event
from pingmonitor.services.scanner.batch_scheduler import BatchScheduler, batch_scheduler
from pingmonitor.services.scanner.session import ScanSession

settings = get_settings()
log = get_logger(__name__)

BUSY_MESSAGE = "Ya hay un escaneo en curso en esta conexión"
QUEUE_FULL_MESSAGE = "Cola de escaneos llena en esta conexión"


@dataclass(eq=False)
class ConnectionContext:
    """Estado privado de una conexión: nada de esto se comparte con otras."""

    websocket: WebSocket
    connection_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    scan_task: Optional[asyncio.Task] = None
    pending: Deque[ScanRequest] = field(default_factory=deque)

    @property
    def busy(self) -> bool:
        return self.scan_task is not None and not self.scan_task.done()


class WebSocketManager:
    def __init__(
        self,
        scheduler: Optional[BatchScheduler] = None,
        busy_policy: str = "reject",
        max_pending: int = 5,
    ):
        if busy_policy not in ("reject", "queue"):
            raise ValueError(f"Política desconocida: {busy_policy}")
        if max_pending < 1:
            raise ValueError(f"max_pending inválido: {max_pending}")

        self.scheduler = scheduler or batch_scheduler
        self.busy_policy = busy_policy
        self.max_pending = max_pending
        # Una entrada por conexión activa
        self.connections: Dict[WebSocket, ConnectionContext] = {}

    # GESTIÓN DE CONEXIONES
    async def connect(self, websocket: WebSocket) -> ConnectionContext:
        """Conectar cliente y aceptarlo."""
        await websocket.accept()
        ctx = ConnectionContext(websocket=websocket)
        self.connections[websocket] = ctx
        log.info(f"Cliente {ctx.connection_id} conectado → Total activos: {len(self.connections)}")
        return ctx

    async def disconnect(self, websocket: WebSocket):
        """Desconectar cliente y cancelar su escaneo en curso."""
        ctx = self.connections.pop(websocket, None)
        if ctx is None:
            return

        ctx.pending.clear()
        if ctx.busy:
            log.info(f"Cliente {ctx.connection_id} se fue con un escaneo en curso → cancelando")
            ctx.scan_task.cancel()
            await asyncio.gather(ctx.scan_task, return_exceptions=True)

        log.info(f"Cliente {ctx.connection_id} desconectado → Total activos: {len(self.connections)}")

    async def shutdown(self):
        for websocket in list(self.connections):
            await self.disconnect(websocket)

    # ENVÍO INDIVIDUAL
    async def send_to(self, ctx: ConnectionContext, event: BaseModel):
        """Envía un evento a un solo cliente. Los fallos se propagan a la sesión."""
        await ctx.websocket.send_json(dump_event(event))

    # ENVÍO SEGURO INDIVIDUAL
    async def safe_emit(self, ctx: ConnectionContext, event: BaseModel):
        """Envío seguro a un cliente sin romper servidor."""
        try:
            await self.send_to(ctx, event)
        except Exception as e:
            log.warning(f"No se pudo enviar a {ctx.connection_id}: {e}")

    # ESCANEOS
    async def submit(self, ctx: ConnectionContext, request: ScanRequest) -> bool:
        """
        Arranca el escaneo de la conexión.
        Con uno en curso: 'reject' responde con error, 'queue' lo encola
        hasta `max_pending` peticiones en espera.
        """
        if ctx.busy:
            if self.busy_policy == "queue":
                if len(ctx.pending) >= self.max_pending:
                    log.warning(f"Cliente {ctx.connection_id}: cola llena ({self.max_pending}), escaneo rechazado")
                    await self.safe_emit(ctx, ErrorEvent(message=QUEUE_FULL_MESSAGE))
                    return False

                ctx.pending.append(request)
                log.info(f"Cliente {ctx.connection_id}: escaneo encolado ({len(ctx.pending)} en espera)")
                return True

            log.warning(f"Cliente {ctx.connection_id}: escaneo rechazado, ya hay uno en curso")
            await self.safe_emit(ctx, ErrorEvent(message=BUSY_MESSAGE))
            return False

        ctx.scan_task = asyncio.create_task(self._run(ctx, request))
        return True

    async def _run(self, ctx: ConnectionContext, request: ScanRequest):
        session = ScanSession(self.scheduler)

        async def emit(event: BaseModel):
            await self.send_to(ctx, event)

        while request is not None:
            log.info(f"Cliente {ctx.connection_id}: escaneando {', '.join(request.prefixes)}")
            ok = await session.run(request, emit)
            if not ok:
                # Canal roto o fallo interno: lo encolado tampoco se ejecuta
                ctx.pending.clear()
            request = ctx.pending.popleft() if ctx.pending else None


def get_ws_manager() -> WebSocketManager:
    return ws_manager


# INSTANCIA GLOBAL
ws_manager = WebSocketManager(busy_policy=settings.BUSY_POLICY, max_pending=settings.MAX_PENDING)
