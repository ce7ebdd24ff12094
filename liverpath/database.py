from sqlmodel import SQLModel, create_engine
from sqlalchemy.engine import Engine

from .core.config import settings


def build_engine(db_url: str, echo: bool = False) -> Engine:
    engine_kwargs = {}
    if db_url.startswith("sqlite"):
        engine_kwargs.update({
            "connect_args": {"check_same_thread": False}
        })
    else:
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_recycle": 300,
        })
    return create_engine(db_url, echo=echo, **engine_kwargs)


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def create_db_and_tables(target: Engine = engine) -> None:
    # Import registers the table on SQLModel.metadata
    from . import models  # noqa: F401
    SQLModel.metadata.create_all(target)
