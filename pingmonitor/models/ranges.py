from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String

from pingmonitor.database import Base


class RangeSnapshot(Base):
    """
    Lista completa de rangos del cliente, guardada como un solo documento JSON
    bajo una clave local opaca.
    """

    __tablename__ = "range_snapshots"

    key = Column(String(64), primary_key=True)
    payload = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
