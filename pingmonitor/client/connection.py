import asyncio
import json
from enum import Enum
from typing import Awaitable, Callable

import websockets
from websockets.exceptions import WebSocketException
from pydantic import ValidationError

from pingmonitor.client.state import ClientError, RangeStore
from pingmonitor.core.logger import get_logger

log = get_logger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class MonitorClient:
    """
    Conexión del cliente con reconexión indefinida.

    DISCONNECTED → CONNECTING → CONNECTED → (cierre) → DISCONNECTED → espera → ...

    La espera empieza en `delay` y se duplica en cada intento fallido hasta
    `max_delay`; con delay == max_delay es un reintento fijo (3 s por defecto).
    """

    def __init__(
        self,
        store: RangeStore,
        url: str,
        delay: float = 3.0,
        max_delay: float = 3.0,
        connect: Callable = websockets.connect,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.url = url
        self.delay = delay
        self.max_delay = max(max_delay, delay)
        self._connect = connect
        self._sleep = sleep

        self.state = ConnectionState.DISCONNECTED
        self.connected = asyncio.Event()
        self.idle = asyncio.Event()
        self.idle.set()
        self._ws = None
        self._stopping = False

    def next_delay(self, attempt: int) -> float:
        """Espera antes del reintento número `attempt` (1, 2, ...)."""
        return min(self.delay * (2 ** (attempt - 1)), self.max_delay)

    def stop(self):
        self._stopping = True

    async def run_forever(self):
        attempt = 0

        while not self._stopping:
            self._set_state(ConnectionState.CONNECTING)
            try:
                async with self._connect(self.url) as ws:
                    attempt = 0
                    self._ws = ws
                    self._set_state(ConnectionState.CONNECTED)
                    async for message in ws:
                        self._handle_message(message)
                        if self._stopping:
                            break

            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                log.warning(f"Conexión con {self.url} falló: {e}")

            finally:
                self._ws = None
                self._set_state(ConnectionState.DISCONNECTED)
                # El servidor cancela el escaneo al perder la conexión
                if self.store.scanning:
                    self.store.abort_scan()
                self.idle.set()

            if self._stopping:
                break

            attempt += 1
            wait = self.next_delay(attempt)
            log.info(f"Reconectando en {wait:.1f}s (intento {attempt})")
            await self._sleep(wait)

    async def request_scan(self):
        if self.state != ConnectionState.CONNECTED or self._ws is None:
            raise ClientError("No hay conexión con el servidor")

        message = self.store.begin_scan()
        self.idle.clear()
        await self._ws.send(json.dumps(message))
        log.info(f"Escaneo solicitado: {', '.join(r['prefix'] for r in message['ranges'])}")

    def _handle_message(self, message):
        try:
            data = json.loads(message)
            self.store.apply_event(data)
        except (ValueError, ValidationError) as e:
            log.warning(f"Mensaje del servidor ignorado: {e}")
            return

        if not self.store.scanning:
            self.idle.set()

    def _set_state(self, state: ConnectionState):
        if state == self.state:
            return
        log.debug(f"Conexión: {self.state.value} → {state.value}")
        self.state = state
        if state == ConnectionState.CONNECTED:
            self.connected.set()
        else:
            self.connected.clear()
