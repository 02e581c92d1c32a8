import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel

from pingmonitor.client.storage import RangeStorage
from pingmonitor.core.logger import get_logger
from pingmonitor.schemas.scan import CompleteEvent, ErrorEvent, HostResult, ProgressEvent, parse_event
from pingmonitor.utils.ip_tools import HOSTS_PER_RANGE, normalize_prefix

log = get_logger(__name__)

NEVER = "Never"
SCANNING = "Scanning"


class ClientError(Exception):
    pass


@dataclass
class HostSlot:
    reachable: bool = False
    latency_ms: int = 0


def empty_grid() -> List[HostSlot]:
    return [HostSlot() for _ in range(HOSTS_PER_RANGE)]


@dataclass
class Range:
    id: int
    prefix: str
    hosts: List[HostSlot] = field(default_factory=empty_grid)
    last_completed: Optional[datetime] = None
    scanning: bool = False

    # "Never" | "Scanning" | fecha del último escaneo completo
    @property
    def last_scan(self) -> Union[str, datetime]:
        if self.scanning:
            return SCANNING
        return self.last_completed or NEVER

    @property
    def online_count(self) -> int:
        return sum(1 for h in self.hosts if h.reachable)

    @property
    def offline_count(self) -> int:
        return HOSTS_PER_RANGE - self.online_count

    def merge(self, results: List[HostResult]):
        for r in results:
            self.hosts[r.index] = HostSlot(reachable=r.reachable, latency_ms=r.latency_ms)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "prefix": self.prefix,
            "hosts": [{"reachable": h.reachable, "latencyMs": h.latency_ms} for h in self.hosts],
            "lastScan": self.last_completed.isoformat() if self.last_completed else NEVER,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Range":
        hosts = [
            HostSlot(
                reachable=bool(h.get("reachable")),
                latency_ms=int(h.get("latencyMs", 0)) if h.get("reachable") else 0,
            )
            for h in data.get("hosts", [])
        ][:HOSTS_PER_RANGE]
        hosts += empty_grid()[len(hosts):]

        last_scan = data.get("lastScan")
        # Un "Scanning" guardado no sobrevive a un reinicio
        last_completed = None
        if last_scan not in (None, NEVER, SCANNING):
            last_completed = datetime.fromisoformat(last_scan)

        return cls(
            id=int(data["id"]),
            prefix=normalize_prefix(data["prefix"]),
            hosts=hosts,
            last_completed=last_completed,
        )


class RangeStore:
    """
    Lista de rangos del cliente y su última rejilla conocida.
    Solo cambia al añadir/quitar rangos o al mezclar eventos del servidor.
    """

    def __init__(self, storage: RangeStorage, default_range: Optional[str] = None):
        self.storage = storage
        self.default_range = default_range
        self.ranges: List[Range] = []
        self.scanning = False

    # PERSISTENCIA
    def load(self):
        saved = self.storage.load()

        if saved is None:
            self.ranges = []
            if self.default_range:
                self.ranges.append(Range(id=self._new_id(), prefix=normalize_prefix(self.default_range)))
            log.info(f"Sin rangos guardados → iniciando con {len(self.ranges)}")
        else:
            self.ranges = [Range.from_dict(r) for r in saved]
            log.info(f"{len(self.ranges)} rangos cargados")

        return self

    def save(self):
        self.storage.save([r.to_dict() for r in self.ranges])

    # RANGOS
    def find(self, prefix: str) -> Optional[Range]:
        return next((r for r in self.ranges if r.prefix == prefix), None)

    def add_range(self, prefix: str) -> Optional[Range]:
        if not prefix or not prefix.strip():
            return None

        prefix = normalize_prefix(prefix)
        if self.find(prefix) is not None:
            raise ValueError(f"El rango {prefix} ya existe")

        new = Range(id=self._new_id(), prefix=prefix)
        self.ranges.append(new)
        self.save()
        return new

    def remove_range(self, range_id: int) -> bool:
        before = len(self.ranges)
        self.ranges = [r for r in self.ranges if r.id != range_id]
        removed = len(self.ranges) != before
        if removed:
            self.save()
        return removed

    # ESCANEO
    def begin_scan(self) -> dict:
        """Marca todos los rangos como 'Scanning' y arma el mensaje `scan`."""
        if not self.ranges:
            raise ClientError("No hay rangos configurados")

        self.scanning = True
        for r in self.ranges:
            r.scanning = True

        return {"type": "scan", "ranges": [{"prefix": r.prefix} for r in self.ranges]}

    def abort_scan(self):
        """Quita el estado 'Scanning' sin tocar las rejillas."""
        self.scanning = False
        for r in self.ranges:
            r.scanning = False

    # EVENTOS DEL SERVIDOR
    def apply_event(self, event: Union[dict, BaseModel]) -> bool:
        """
        Mezcla un evento en la rejilla. Devuelve False si se descartó
        (prefijo que ya no existe localmente).
        """
        if isinstance(event, dict):
            event = parse_event(event)

        if isinstance(event, ErrorEvent):
            log.error(f"Error de escaneo: {event.message}")
            self.abort_scan()
            return True

        target = self.find(event.prefix)
        if target is None:
            log.debug(f"Evento {event.type} para {event.prefix} descartado: rango eliminado")
            return False

        if isinstance(event, ProgressEvent):
            target.merge(event.results)
            target.scanning = True
            return True

        if isinstance(event, CompleteEvent):
            target.hosts = empty_grid()
            target.merge(event.results)
            target.last_completed = event.timestamp
            target.scanning = False
            self.save()

            if not any(r.scanning for r in self.ranges):
                self.scanning = False
            return True

        return False

    # RESUMEN
    def summary(self) -> str:
        if not self.ranges:
            return "No hay rangos configurados"

        lines = []
        for r in self.ranges:
            last = r.last_scan
            if isinstance(last, datetime):
                last = last.astimezone().strftime("%H:%M:%S")
            lines.append(
                f"[{r.id}] {r.prefix}.1-255  Último escaneo: {last}  "
                f"En línea: {r.online_count}  Fuera de línea: {r.offline_count}"
            )
            online = [
                f"{r.prefix}.{i + 1} ({h.latency_ms}ms)"
                for i, h in enumerate(r.hosts) if h.reachable
            ]
            if online:
                lines.append("    " + ", ".join(online))
        return "\n".join(lines)

    def _new_id(self) -> int:
        new_id = int(time.time() * 1000)
        used = {r.id for r in self.ranges}
        while new_id in used:
            new_id += 1
        return new_id
