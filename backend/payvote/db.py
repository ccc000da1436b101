from __future__ import annotations

from pathlib import Path
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from payvote.core.settings import Settings
from payvote.logger import ledger_logger as logger


class Base(DeclarativeBase):
    pass


def create_db_engine(settings: Settings) -> Engine:
    url = settings.sqlalchemy_url
    is_sqlite = url.startswith("sqlite")
    if is_sqlite and settings.database_url is None:
        Path(settings.db_path).parent.mkdir(parents=True, exist_ok=True)

    # check_same_thread=False is required for SQLite when using threads (Uvicorn workers)
    engine = create_engine(
        url,
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA busy_timeout=5000;")
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

    return engine


def create_session_factory(settings: Settings) -> sessionmaker[Session]:
    engine = create_db_engine(settings)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(session_factory: sessionmaker[Session], settings: Settings) -> None:
    """Create the schema and seed the singleton settings row and candidates.

    Safe to run on every startup. Candidates are seeded only while the table
    is empty, so the candidate set is fixed once the first deploy has run.
    """
    from payvote.db_models import Candidate, SiteSettings

    Base.metadata.create_all(bind=session_factory.kw["bind"])

    with session_factory() as db:
        if db.get(SiteSettings, 1) is None:
            db.add(SiteSettings(id=1, question=settings.default_question, glow=settings.default_glow))

        count = db.execute(select(func.count()).select_from(Candidate)).scalar_one()
        if count == 0:
            for name in dict.fromkeys(settings.candidates):
                db.add(Candidate(name=name))
            logger.info(f"Seeded candidates: {', '.join(settings.candidates)}")
        db.commit()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
