"""
Database setup using SQLAlchemy.

The database only receives what the collector reports each cycle; the
in-memory StatStore is never rebuilt from it.

We create:
- an Engine bound to the DATABASE_URL from config
- a SessionLocal factory for API requests and collector cycles
- a Base class to declare ORM models
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from netrate.config import settings

# SQLite connections are shared between the API's worker threads
_connect_args = (
    {"check_same_thread": False}
    if settings.database_url.startswith("sqlite")
    else {}
)

engine = create_engine(
    settings.database_url,
    connect_args=_connect_args,
    echo=False,
)

SessionLocal = sessionmaker(
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def init_db() -> None:
    """Create tables if they do not exist yet."""
    # models must be imported so their tables are registered on Base
    from netrate import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
