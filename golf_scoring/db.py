from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import DATABASE_URL

Base = declarative_base()


def utcnow() -> datetime:
    # DateTime columns are naive and hold UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def make_engine(url: str = DATABASE_URL, **kwargs):
    connect_args = {}

    # SQLite connections are shared between the FastAPI threadpool workers
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    return create_engine(url, connect_args=connect_args, pool_pre_ping=True, **kwargs)


engine = make_engine()

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


def init_db(bind=None):
    # tables are registered on Base when the models module is imported
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def session_scope():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_db():
    with session_scope() as db:
        yield db
