from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from Security.security_config import APP_SETTINGS

DATABASE_URL = APP_SETTINGS["DATABASE_URL"]


def is_sqlite(url):
    return url.startswith("sqlite")


def is_memory_database(url):
    return url in ("sqlite://", "sqlite:///:memory:")


def build_engine(url):
    if not is_sqlite(url):
        return create_engine(url, pool_pre_ping=True)
    # Requests are served from a threadpool, so SQLite must allow cross-thread use
    kwargs = {"connect_args": {"check_same_thread": False}}
    if is_memory_database(url):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None):
    """Create the users table if it does not exist yet."""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine, checkfirst=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
