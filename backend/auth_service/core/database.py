from __future__ import annotations

import logging
from typing import Any, Generator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


class Database:
    """
    Process-scoped connection pool + session factory.

    Owned by the FastAPI app (app.state.database). Created by the app factory,
    connected in the lifespan via init(), released via dispose().
    """

    def __init__(self, url: str, **engine_kwargs: Any) -> None:
        self.url = url
        self._engine_kwargs = engine_kwargs
        self._engine: Engine | None = None
        self._sessionmaker: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not initialized; call init() first")
        return self._engine

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def init(self, *, check_connection: bool = True) -> None:
        if self._engine is not None:
            return
        kwargs = {"pool_pre_ping": True, **self._engine_kwargs}
        self._engine = create_engine(self.url, **kwargs)
        self._sessionmaker = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        if check_connection:
            try:
                self.check_connection()
            except Exception:
                logger.exception("Database connection check failed")
                self.dispose()
                raise
            logger.info("Connected to database")

    def check_connection(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not initialized; call init() first")
        return self._sessionmaker()

    def dispose(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database connection pool disposed")


def get_db(request: Request) -> Generator[Session, None, None]:
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
