from typing import List, Optional

from sqlalchemy.orm import sessionmaker

from pingmonitor.core.logger import get_logger
from pingmonitor.models.ranges import RangeSnapshot

log = get_logger(__name__)

DEFAULT_KEY = "networks"


class RangeStorage:
    """Persistencia de la lista de rangos del cliente (SQLAlchemy)."""

    def __init__(self, session_factory: sessionmaker, key: str = DEFAULT_KEY):
        self.session_factory = session_factory
        self.key = key

    def load(self) -> Optional[List[dict]]:
        """
        Devuelve la lista guardada, o None si nunca se guardó nada
        (distinto de una lista vacía).
        """
        with self.session_factory() as db:
            snapshot = db.get(RangeSnapshot, self.key)
            if snapshot is None:
                return None
            return list(snapshot.payload)

    def save(self, ranges: List[dict]):
        """GUARDADO COMPLETO, seguro con commit/rollback"""
        with self.session_factory() as db:
            try:
                snapshot = db.get(RangeSnapshot, self.key)
                if snapshot is None:
                    snapshot = RangeSnapshot(key=self.key, payload=ranges)
                    db.add(snapshot)
                else:
                    snapshot.payload = ranges

                db.commit()

            except Exception as e:
                db.rollback()
                log.exception(f"Error guardando rangos ({self.key}): {e}")
                raise
