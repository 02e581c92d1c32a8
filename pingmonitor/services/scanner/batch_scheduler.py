import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Iterator, List, Tuple

from pingmonitor.core.logger import get_logger
from pingmonitor.core.settings import get_settings
from pingmonitor.schemas.scan import HostResult
from pingmonitor.services.scanner.prober import Prober, prober
from pingmonitor.utils.ip_tools import HOSTS_PER_RANGE, host_addresses

settings = get_settings()
log = get_logger(__name__)


@dataclass
class BatchResult:
    prefix: str
    end_host: int          # último host (1..255) del lote
    percent: int
    results: List[HostResult]


# Porcentaje del rango completado al terminar el host `end_host`
def batch_percent(end_host: int) -> int:
    """
    round(100 * end_host / 255) redondeando .5 hacia arriba, en aritmética entera.
    """
    return (200 * end_host + HOSTS_PER_RANGE) // (2 * HOSTS_PER_RANGE)


def batch_bounds(batch_size: int) -> Iterator[Tuple[int, int]]:
    """
    Lotes consecutivos (inicio, fin) sobre los hosts 1..255; el último puede ser menor.
        50 → (1, 50), (51, 100), ..., (251, 255)
    """
    if batch_size < 1:
        raise ValueError(f"Tamaño de lote inválido: {batch_size}")

    for start in range(1, HOSTS_PER_RANGE + 1, batch_size):
        yield start, min(start + batch_size - 1, HOSTS_PER_RANGE)


class BatchScheduler:
    def __init__(self, prober: Prober, batch_size: int = 50):
        if batch_size < 1:
            raise ValueError(f"Tamaño de lote inválido: {batch_size}")
        self.prober = prober
        self.batch_size = batch_size

    async def scan_range(self, prefix: str) -> AsyncIterator[BatchResult]:
        """
        Recorre el rango lote a lote.
        Dentro de un lote todos los pings van en paralelo; el lote siguiente
        no empieza hasta que termina el anterior.
        """
        addresses = host_addresses(prefix)

        for start, end in batch_bounds(self.batch_size):
            hosts = range(start, end + 1)
            probes = await self._probe_batch(addresses[start - 1:end])

            results = [
                HostResult(index=n - 1, reachable=p.reachable, latency_ms=p.latency_ms)
                for n, p in zip(hosts, probes)
            ]

            yield BatchResult(
                prefix=prefix,
                end_host=end,
                percent=batch_percent(end),
                results=results,
            )

    async def _probe_batch(self, addresses: List[str]):
        tasks = [asyncio.ensure_future(self.prober.probe(ip)) for ip in addresses]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            # Cancelación o fallo: ningún ping del lote sigue vivo
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise


# INSTANCIA GLOBAL
batch_scheduler = BatchScheduler(prober, batch_size=settings.SCAN_BATCH_SIZE)
