from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


def make_engine(url: str) -> Engine:
    """Create an engine, applying SQLite pragmas when the URL is SQLite."""
    if url.startswith("sqlite"):
        new_engine = create_engine(
            url,
            connect_args={
                "check_same_thread": False,
                "timeout": 30
            },
            pool_pre_ping=True
        )
        event.listen(new_engine, "connect", set_sqlite_pragma)
        return new_engine
    return create_engine(url, pool_pre_ping=True)


# Enable WAL mode and foreign keys for SQLite
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


engine = make_engine(SQLALCHEMY_DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


# Dependency to get database session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
