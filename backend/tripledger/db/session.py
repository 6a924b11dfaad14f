"""
Database session management.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from tripledger.core.config import settings
from tripledger.db.base import Base


def configure_sqlite(engine: Engine) -> None:
    """
    Make pysqlite honour foreign keys and SAVEPOINTs.

    pysqlite defers BEGIN on its own, which breaks nested transactions; the
    driver is put in autocommit mode and SQLAlchemy emits BEGIN itself.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine, applying SQLite fixes when needed."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = create_engine(url, echo=settings.DB_ECHO, **kwargs)
        configure_sqlite(engine)
        return engine
    return create_engine(
        url,
        echo=settings.DB_ECHO,
        pool_pre_ping=True,
        pool_recycle=3600,
        **kwargs
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database tables."""
    # Import models so they register on the metadata
    import tripledger.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
