import asyncio
import contextlib
import math
import platform
import re
from dataclasses import dataclass
from typing import List, Optional

from pingmonitor.core.logger import get_logger
from pingmonitor.core.settings import get_settings

settings = get_settings()
log = get_logger(__name__)

# "time=0.43 ms" (Linux/macOS) o "time<1ms" (Windows)
LATENCY_PATTERN = re.compile(r"time[=<]\s*(\d+(?:\.\d+)?)", re.IGNORECASE)


@dataclass(frozen=True)
class ProbeResult:
    reachable: bool
    latency_ms: int = 0

    @classmethod
    def unreachable(cls) -> "ProbeResult":
        return cls(reachable=False, latency_ms=0)


# Extrae la latencia
def extract_latency(output: str) -> Optional[float]:
    """
    Extrae el tiempo de respuesta (ms) de la salida del ping.
    Retorna None si no aparece.
    """
    match = LATENCY_PATTERN.search(output)
    if not match:
        return None
    return float(match.group(1))


class Prober:
    """
    Un solo eco ICMP por dirección usando el `ping` del sistema.

    Nunca lanza excepciones: cualquier fallo (timeout, permisos, binario
    ausente, salida ilegible) se reporta como host caído. Solo la
    cancelación se propaga, y antes mata el proceso hijo.
    """

    def __init__(self, timeout: float = 1.0):
        self.timeout = timeout

    def build_command(self, address: str) -> List[str]:
        system = platform.system().lower()

        if system == "windows":
            return ["ping", "-n", "1", "-w", str(int(self.timeout * 1000)), address]
        # Linux/macOS
        return ["ping", "-c", "1", "-W", str(max(1, math.ceil(self.timeout))), address]

    async def probe(self, address: str) -> ProbeResult:
        try:
            output = await self._run_ping(address)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.debug(f"Ping a {address} falló: {e}")
            return ProbeResult.unreachable()

        if output is None:
            return ProbeResult.unreachable()

        latency = extract_latency(output)
        if latency is None:
            return ProbeResult(reachable=True, latency_ms=0)

        return ProbeResult(reachable=True, latency_ms=math.floor(latency + 0.5))

    async def _run_ping(self, address: str) -> Optional[str]:
        """
        Ejecuta el ping y devuelve stdout, o None si el código de salida != 0.
        """
        process = await asyncio.create_subprocess_exec(
            *self.build_command(address),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self.timeout + 1)
        finally:
            # Timeout o cancelación: no dejar procesos huérfanos
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        if process.returncode != 0:
            return None

        return stdout.decode(errors="ignore")


# INSTANCIA GLOBAL
prober = Prober(timeout=settings.PING_TIMEOUT)
