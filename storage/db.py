# storage/db.py
from typing import Callable, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from core.settings import DB_PATH
from models.operation_row import OfflineOperationRow
from storage import migrations


MEMORY_URL = "sqlite://"


def _is_memory(url: str) -> bool:
    return url in (MEMORY_URL, "sqlite:///:memory:")


def create_db_engine(url: Optional[str] = None) -> Engine:
    if url is None:
        DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{DB_PATH.as_posix()}"
    if _is_memory(url):
        # one shared connection, otherwise every session sees an empty database
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=False)


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine, tables=[OfflineOperationRow.__table__])
    migrations.run_all(engine)


def session_factory(engine: Engine) -> Callable[[], Session]:
    def factory() -> Session:
        return Session(engine)

    return factory


__all__ = ["MEMORY_URL", "create_db_engine", "init_db", "session_factory"]
