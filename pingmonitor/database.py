from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from pingmonitor.core.logger import get_logger
from pingmonitor.core.settings import get_settings

settings = get_settings()
log = get_logger(__name__)

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    # CONFIG PARA SQLITE (local, por defecto)
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False}
        )

    # Cualquier otra BD
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine
    )


def init_db(engine: Engine):
    """
    Crea las tablas del cliente si no existen.
    """
    # Registra los modelos en Base.metadata
    import pingmonitor.models.ranges  # noqa: F401

    Base.metadata.create_all(bind=engine)
    log.info(f"Base de datos lista: {engine.url}")


engine = make_engine(settings.DATABASE_URL)
SessionLocal = make_session_factory(engine)
