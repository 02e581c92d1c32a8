from datetime import datetime
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from pingmonitor.utils.ip_tools import HOSTS_PER_RANGE, normalize_prefix


# ENTRADA (cliente → servidor)
class ScanRangeIn(BaseModel):
    prefix: str = Field(..., description="Prefijo de 3 octetos Ej: 192.168.1")

    @field_validator("prefix")
    @classmethod
    def _validate_prefix(cls, value: str) -> str:
        return normalize_prefix(value)


class ScanRequest(BaseModel):
    type: Literal["scan"]
    ranges: List[ScanRangeIn] = Field(..., min_length=1)

    @property
    def prefixes(self) -> List[str]:
        return [r.prefix for r in self.ranges]


# RESULTADO POR HOST
class HostResult(BaseModel):
    index: int = Field(..., ge=0, le=HOSTS_PER_RANGE - 1)
    reachable: bool
    latency_ms: int = Field(0, ge=0, alias="latencyMs")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _latency_only_when_reachable(self):
        if not self.reachable and self.latency_ms != 0:
            raise ValueError("latencyMs debe ser 0 si el host no responde")
        return self


# SALIDA (servidor → cliente)
class ProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    prefix: str
    percent: int = Field(..., ge=0, le=100)
    results: List[HostResult]


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    prefix: str
    results: List[HostResult] = Field(..., min_length=HOSTS_PER_RANGE, max_length=HOSTS_PER_RANGE)
    timestamp: datetime


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


ServerEvent = Annotated[
    Union[ProgressEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]

server_event_adapter = TypeAdapter(ServerEvent)


def dump_event(event: BaseModel) -> dict:
    """Serializa un evento al formato del cable (camelCase, fechas ISO-8601)."""
    return event.model_dump(mode="json", by_alias=True)


def parse_event(data: dict) -> Union[ProgressEvent, CompleteEvent, ErrorEvent]:
    """Valida un mensaje entrante del servidor (lado cliente)."""
    return server_event_adapter.validate_python(data)
