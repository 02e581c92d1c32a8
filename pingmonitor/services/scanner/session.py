import asyncio
from contextlib import aclosing
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel

from pingmonitor.core.logger import get_logger
from pingmonitor.schemas.scan import CompleteEvent, ErrorEvent, HostResult, ProgressEvent, ScanRequest
from pingmonitor.services.scanner.batch_scheduler import BatchScheduler, batch_scheduler

log = get_logger(__name__)

Emit = Callable[[BaseModel], Awaitable[None]]


class ScanSession:
    """
    Recorre los rangos de una petición uno detrás de otro.

    Por cada lote emite un ProgressEvent; al agotar el rango emite un
    CompleteEvent con los 255 resultados ordenados. Si algo falla se emite
    un único ErrorEvent y el resto de rangos de la petición se descarta.
    """

    def __init__(self, scheduler: Optional[BatchScheduler] = None):
        self.scheduler = scheduler or batch_scheduler

    async def run(self, request: ScanRequest, emit: Emit) -> bool:
        """Devuelve True si todos los rangos terminaron."""
        prefix = None
        try:
            for prefix in request.prefixes:
                await self.scan_range(prefix, emit)

        except asyncio.CancelledError:
            log.info(f"Escaneo cancelado durante {prefix}")
            raise

        except Exception as e:
            log.exception(f"Fallo escaneando {prefix}: {e}")
            await self._emit_error(emit, str(e) or e.__class__.__name__)
            return False

        return True

    async def scan_range(self, prefix: str, emit: Emit) -> List[HostResult]:
        log.info(f"Escaneando red {prefix}.1-255")

        collected: Dict[int, HostResult] = {}

        async with aclosing(self.scheduler.scan_range(prefix)) as batches:
            async for batch in batches:
                for result in batch.results:
                    collected[result.index] = result

                await emit(ProgressEvent(
                    prefix=prefix,
                    percent=batch.percent,
                    results=batch.results,
                ))

        results = [collected[i] for i in sorted(collected)]

        await emit(CompleteEvent(
            prefix=prefix,
            results=results,
            timestamp=datetime.now(timezone.utc),
        ))

        online = sum(1 for r in results if r.reachable)
        log.info(f"Red {prefix} completada → {online}/{len(results)} hosts en línea")
        return results

    async def _emit_error(self, emit: Emit, message: str):
        # Si el canal ya está roto solo queda registrarlo
        try:
            await emit(ErrorEvent(message=message))
        except Exception as e:
            log.warning(f"No se pudo notificar el error al cliente: {e}")
