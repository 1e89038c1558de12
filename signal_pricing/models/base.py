"""
Base database model and session management
"""
import os
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import NullPool
from sqlalchemy.orm import declarative_base, sessionmaker
from signal_pricing.config import get_settings
from signal_pricing.utils.logger import log

settings = get_settings()

# Resolve relative SQLite paths to absolute so cwd changes can't break it
_db_url = settings.database_url
if _db_url.startswith("sqlite:///") and not _db_url.startswith("sqlite:////"):
    rel_path = _db_url[len("sqlite:///"):]
    _db_url = "sqlite:///" + os.path.abspath(rel_path)


def build_engine(url: str):
    """Create an engine tuned for the recalculation workload.

    The batch job runs one session per worker thread, so SQLite needs
    cross-thread connections and a generous busy timeout.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 60},
            poolclass=NullPool,
            pool_pre_ping=True
        )
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.recalc_max_workers + 2,
        max_overflow=settings.recalc_max_workers,
        pool_recycle=300,
    )


# Create database engine
engine = build_engine(_db_url)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


def get_db():
    """Get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _migrate_missing_columns(bind):
    """Add columns defined in models but missing from existing DB tables.

    create_all() only creates missing *tables*; it cannot add new columns
    to tables that already exist.
    """
    inspector = inspect(bind)
    with bind.connect() as conn:
        for table_name, table in Base.metadata.tables.items():
            if not inspector.has_table(table_name):
                continue  # create_all will handle it
            existing = {c["name"] for c in inspector.get_columns(table_name)}
            for col in table.columns:
                if col.name not in existing:
                    col_type = col.type.compile(dialect=bind.dialect)
                    sql = f'ALTER TABLE {table_name} ADD COLUMN {col.name} {col_type}'
                    log.info(f"Auto-migrating: {sql}")
                    conn.execute(text(sql))
        conn.commit()


def init_db(bind=None):
    """Initialize database tables and auto-migrate new columns."""
    # Register every model on the metadata before create_all
    import signal_pricing.models  # noqa: F401

    bind = bind if bind is not None else engine
    Base.metadata.create_all(bind=bind)
    _migrate_missing_columns(bind)
