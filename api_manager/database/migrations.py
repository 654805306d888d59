"""Database migration utilities."""

import logging
from typing import Dict, List, Tuple

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Columns added after the first release: (table, column, DDL type)
_ADDED_COLUMNS: List[Tuple[str, str, str]] = [
    ("api_providers", "auth_configs_encrypted", "TEXT"),
    ("api_providers", "documentation", "VARCHAR"),
    ("api_providers", "last_tested", "DATETIME"),
    ("api_providers", "test_status", "VARCHAR NOT NULL DEFAULT 'pending'"),
    ("external_apis", "last_tested", "DATETIME"),
    ("external_apis", "test_status", "VARCHAR NOT NULL DEFAULT 'pending'"),
    ("api_call_logs", "endpoint_id", "INTEGER"),
    ("api_call_logs", "response_size", "INTEGER NOT NULL DEFAULT 0"),
]


def _add_missing_columns(db: Session) -> None:
    inspector = inspect(db.get_bind())
    tables = inspector.get_table_names()

    for table, column, ddl in _ADDED_COLUMNS:
        if table not in tables:
            continue
        columns = [col['name'] for col in inspector.get_columns(table)]
        if column in columns:
            continue

        logger.info(f"Adding {column} column to {table} table")
        try:
            db.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"))
            db.commit()
            logger.info(f"Successfully added {column} column")
        except SQLAlchemyError as e:
            logger.error(f"Failed to add {column} column: {e}")
            db.rollback()


def lift_legacy_provider_auth(db: Session, encryption_service) -> int:
    """Move legacy ``auth_type``/``auth_config`` pairs into the encrypted list.

    Rows that already have an encrypted descriptor list only get their
    legacy columns cleared. Safe to run repeatedly.

    Args:
        db: Database session.
        encryption_service: Service used to encrypt the descriptor list.

    Returns:
        Number of providers rewritten.
    """
    from api_manager.models.provider import Provider
    from api_manager.services.provider_service import ProviderService

    service = ProviderService(encryption_service)
    providers = db.query(Provider).filter(Provider.auth_type.isnot(None)).all()

    migrated = 0
    for provider in providers:
        try:
            descriptors = service.load_auth_configs(provider)
        except Exception as e:
            logger.error(f"Skipping auth migration for provider {provider.id}: {e}")
            continue
        service.store_auth_configs(provider, descriptors)
        migrated += 1

    if not migrated:
        return 0

    try:
        db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Failed to migrate legacy provider auth: {e}")
        db.rollback()
        return 0

    logger.info(f"Migrated legacy auth config of {migrated} providers")
    return migrated


def migrate_database(db: Session, encryption_service=None) -> None:
    """Apply database migrations.

    This function checks for missing columns and adds them if needed, then
    lifts legacy provider auth columns when an encryption service is given.
    It's safe to call multiple times.

    Args:
        db: Database session.
        encryption_service: Optional EncryptionService for the auth lift.
    """
    logger.info("Checking for database migrations...")

    _add_missing_columns(db)

    if encryption_service is not None:
        lift_legacy_provider_auth(db, encryption_service)
    else:
        logger.warning("No encryption service given; legacy provider auth left in place")

    logger.info("Database migrations complete")


def get_migration_status(db: Session) -> Dict[str, list]:
    """Get the status of database migrations.

    Args:
        db: Database session.

    Returns:
        Dictionary with the existing tables, the added columns present and
        the IDs of providers still carrying legacy auth columns.
    """
    inspector = inspect(db.get_bind())

    status = {
        'tables': inspector.get_table_names(),
        'migrations_applied': [],
        'legacy_auth_providers': [],
    }

    for table, column, _ in _ADDED_COLUMNS:
        if table not in status['tables']:
            continue
        columns = [col['name'] for col in inspector.get_columns(table)]
        if column in columns:
            status['migrations_applied'].append(f"{table}.{column}")

    if 'api_providers' in status['tables']:
        rows = db.execute(text("SELECT id FROM api_providers WHERE auth_type IS NOT NULL")).fetchall()
        status['legacy_auth_providers'] = [row[0] for row in rows]

    return status
