"""Database configuration and session management."""

import os
import logging
from typing import Optional
from fastapi import Request
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

# Create declarative base for models
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and session factory for one application instance.

    Created at startup and disposed at shutdown; handlers receive sessions
    through the ``get_db`` dependency.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        is_sqlite = database_url.startswith("sqlite")

        engine_kwargs = {}
        if is_sqlite:
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # A single shared connection keeps the in-memory database alive
                engine_kwargs["poolclass"] = StaticPool
            else:
                # Create data directory if it doesn't exist
                path = database_url.split("///", 1)[-1]
                directory = os.path.dirname(path)
                if directory:
                    os.makedirs(directory, exist_ok=True)

        self.engine = create_engine(database_url, **engine_kwargs)
        if is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        """Open a new session."""
        return self.SessionLocal()

    @retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(OperationalError),
        reraise=True
    )
    def wait_until_ready(self) -> None:
        """Block until the database accepts connections."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def init_db(self, encryption_service=None) -> None:
        """Initialize database tables.

        Creates all tables defined in the models if they don't exist, then
        applies migrations. This function is idempotent and safe to call
        multiple times.

        Args:
            encryption_service: Used by the migration that moves legacy
                provider auth columns into the encrypted descriptor list.
        """
        # Import all models to ensure they are registered with Base
        from api_manager.models import Provider, ProviderEndpoint, ExternalAPI, CallLog  # noqa: F401

        logger.info("Initializing database...")
        self.wait_until_ready()

        inspector = inspect(self.engine)
        existing_tables = inspector.get_table_names()

        if not existing_tables:
            logger.info("No existing tables found. Creating all tables...")
        else:
            logger.info(f"Found existing tables: {existing_tables}")

        Base.metadata.create_all(bind=self.engine)

        if existing_tables:
            logger.info("Running database migrations...")
            from api_manager.database.migrations import migrate_database
            db = self.session()
            try:
                migrate_database(db, encryption_service)
            finally:
                db.close()

        created_tables = inspect(self.engine).get_table_names()
        logger.info(f"Database initialized with tables: {created_tables}")

    def drop_all_tables(self) -> None:
        """Drop all tables from the database.

        WARNING: This will delete all data. Use only for testing or development.
        """
        logger.warning("Dropping all tables from database...")
        Base.metadata.drop_all(bind=self.engine)
        logger.info("All tables dropped successfully")

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
        logger.info("Database connections closed")


def get_db(request: Request):
    """Get database session dependency."""
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database is not initialized")
    db = database.session()
    try:
        yield db
    finally:
        db.close()
