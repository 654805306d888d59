"""Tests for database migrations."""

import json

import pytest
from cryptography.fernet import Fernet
from sqlalchemy import inspect, text

from api_manager.database.database import Database
from api_manager.database.migrations import (
    get_migration_status,
    lift_legacy_provider_auth,
    migrate_database,
)
from api_manager.models import Provider
from api_manager.services.encryption_service import EncryptionService


@pytest.fixture
def encryption_service():
    return EncryptionService(Fernet.generate_key().decode())


@pytest.fixture
def database():
    database = Database("sqlite:///:memory:")
    yield database
    database.dispose()


def test_missing_columns_added(database, encryption_service):
    """An old call log table without response_size gets the column."""
    with database.engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE api_call_logs ("
            "id INTEGER PRIMARY KEY, target_type VARCHAR NOT NULL, target_id INTEGER NOT NULL, "
            "method VARCHAR NOT NULL, url TEXT NOT NULL, status INTEGER NOT NULL, "
            "duration INTEGER NOT NULL, success BOOLEAN NOT NULL, error TEXT, created_at DATETIME NOT NULL)"
        ))

    database.init_db(encryption_service)

    columns = [col["name"] for col in inspect(database.engine).get_columns("api_call_logs")]
    assert "response_size" in columns
    assert "endpoint_id" in columns

    db = database.session()
    try:
        status = get_migration_status(db)
    finally:
        db.close()
    assert "api_call_logs.response_size" in status["migrations_applied"]


def test_legacy_auth_lifted_into_encrypted_list(database, encryption_service):
    database.init_db()
    db = database.session()
    try:
        db.add(Provider(
            name="Legacy",
            description="Old row",
            base_url="https://api.example.com",
            requires_auth=True,
            auth_type="api_key",
            auth_config={"headerName": "X-Key", "headerValue": "legacy-secret"},
        ))
        db.commit()
        assert get_migration_status(db)["legacy_auth_providers"] == [1]

        migrate_database(db, encryption_service)

        provider = db.query(Provider).filter(Provider.name == "Legacy").first()
        assert provider.auth_type is None
        assert provider.auth_config is None
        stored = json.loads(encryption_service.decrypt(provider.auth_configs_encrypted))
        assert stored[0]["header_value"] == "legacy-secret"
        assert get_migration_status(db)["legacy_auth_providers"] == []

        # Second run has nothing left to do
        assert lift_legacy_provider_auth(db, encryption_service) == 0
    finally:
        db.close()


def test_migrate_without_encryption_keeps_legacy_columns(database):
    database.init_db()
    db = database.session()
    try:
        db.add(Provider(
            name="Legacy",
            description="Old row",
            base_url="https://api.example.com",
            auth_type="bearer",
            auth_config={"headerValue": "tok"},
        ))
        db.commit()

        migrate_database(db)

        assert db.query(Provider).first().auth_type == "bearer"
    finally:
        db.close()
