# plura/db_helpers.py

import logging
from typing import Callable, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from plura.entities import Base

logger = logging.getLogger("plura_db")


def get_db_engine(database_url: str, encryption_key: Optional[str] = None) -> Engine:
    is_sqlite = database_url.startswith("sqlite")
    is_memory = is_sqlite and (database_url in ("sqlite://", "sqlite:///:memory:"))

    kwargs = {"future": True, "pool_pre_ping": True}
    if is_sqlite:
        # FastAPI handlers run in worker threads
        kwargs["connect_args"] = {"check_same_thread": False}
    if is_memory:
        # one shared connection, otherwise every checkout sees an empty database
        kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)
    logger.info("[DB] Using database URL: %s", engine.url.render_as_string(hide_password=True))

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            if encryption_key:
                # only honoured by SQLCipher builds of sqlite
                cursor.execute("PRAGMA key = '%s'" % encryption_key.replace("'", "''"))
            cursor.execute("PRAGMA foreign_keys = ON")
            cursor.close()

    return engine


def build_db_session_factory(
    database_url: str,
    encryption_key: Optional[str] = None,
) -> Callable[[], Session]:
    engine = get_db_engine(database_url, encryption_key)
    Base.metadata.create_all(engine)
    maker = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )

    def _factory() -> Session:
        return maker()

    return _factory
