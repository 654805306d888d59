"""Tests for YAML seeding of the provider registry."""

import os
import textwrap
from unittest.mock import patch

import pytest
from cryptography.fernet import Fernet

from api_manager.database.database import Database
from api_manager.errors import ValidationError
from api_manager.models import Provider, ProviderEndpoint
from api_manager.seed import main
from api_manager.services.encryption_service import EncryptionService
from api_manager.services.provider_service import ProviderService
from api_manager.services.seed_service import SeedService

SEED_YAML = textwrap.dedent("""
    providers:
      - name: JSONPlaceholder
        description: Fake REST API
        base_url: https://jsonplaceholder.typicode.com
        endpoints:
          - path: /posts
            method: GET
          - path: /posts/{id}
            method: GET
""")


@pytest.fixture
def test_db():
    database = Database("sqlite:///:memory:")
    database.init_db()
    db = database.session()
    yield db
    db.close()
    database.dispose()


@pytest.fixture
def seed_service():
    return SeedService(ProviderService(EncryptionService(Fernet.generate_key().decode())))


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "providers.yaml"
    path.write_text(SEED_YAML, encoding="utf-8")
    return str(path)


class TestSeedService:
    """Test idempotent seeding."""

    def test_seed_creates_providers(self, test_db, seed_service, seed_file):
        report = seed_service.seed_file(test_db, seed_file)

        assert report.providers_created == ["JSONPlaceholder"]
        assert report.endpoints_created == 2
        assert test_db.query(ProviderEndpoint).count() == 2

    def test_seed_twice_skips_existing(self, test_db, seed_service, seed_file):
        seed_service.seed_file(test_db, seed_file)

        report = seed_service.seed_file(test_db, seed_file)

        assert report.providers_created == []
        assert report.providers_skipped == ["JSONPlaceholder"]
        assert report.endpoints_skipped == 2
        assert test_db.query(Provider).count() == 1
        assert test_db.query(ProviderEndpoint).count() == 2

    def test_seed_adds_missing_endpoints_to_existing_provider(self, test_db, seed_service, seed_file):
        seed_service.seed_file(test_db, seed_file)

        report = seed_service.seed(test_db, [{
            "name": "JSONPlaceholder",
            "description": "Fake REST API",
            "base_url": "https://jsonplaceholder.typicode.com",
            "endpoints": [
                {"path": "/posts", "method": "GET"},
                {"path": "/users", "method": "GET"},
            ],
        }])

        assert report.endpoints_created == 1
        assert report.endpoints_skipped == 1
        assert test_db.query(ProviderEndpoint).count() == 3

    def test_list_document_accepted(self, tmp_path, seed_service):
        path = tmp_path / "list.yaml"
        path.write_text("- name: A\n  description: a\n  base_url: https://a.example.com\n", encoding="utf-8")

        assert seed_service.load_file(str(path))[0]["name"] == "A"

    def test_invalid_definition_rejected(self, test_db, seed_service):
        with pytest.raises(ValidationError, match="Invalid provider definition 'Broken'"):
            seed_service.seed(test_db, [{"name": "Broken", "description": "x", "base_url": "nope"}])

    def test_invalid_yaml_rejected(self, tmp_path, seed_service):
        path = tmp_path / "broken.yaml"
        path.write_text("providers: [unclosed", encoding="utf-8")

        with pytest.raises(ValidationError):
            seed_service.load_file(str(path))

    def test_scalar_document_rejected(self, tmp_path, seed_service):
        path = tmp_path / "scalar.yaml"
        path.write_text("just a string", encoding="utf-8")

        with pytest.raises(ValidationError):
            seed_service.load_file(str(path))


def test_bundled_seed_file_is_valid(test_db, seed_service):
    """The seed file shipped with the project loads cleanly."""
    path = os.path.join(os.path.dirname(__file__), "..", "seeds", "providers.yaml")
    report = seed_service.seed_file(test_db, path)

    assert "JSONPlaceholder" in report.providers_created


def test_seed_cli(seed_file, capsys):
    with patch("api_manager.services.encryption_service.settings") as mock_settings:
        mock_settings.encryption_key = Fernet.generate_key().decode()
        exit_code = main(["--file", seed_file, "--database-url", "sqlite:///:memory:"])

    assert exit_code == 0
    assert "Providers created: JSONPlaceholder" in capsys.readouterr().out


def test_seed_cli_missing_file(tmp_path):
    with patch("api_manager.services.encryption_service.settings") as mock_settings:
        mock_settings.encryption_key = Fernet.generate_key().decode()
        exit_code = main(["--file", str(tmp_path / "missing.yaml"), "--database-url", "sqlite:///:memory:"])

    assert exit_code == 1


def test_seed_cli_missing_encryption_key(seed_file, caplog):
    with patch("api_manager.services.encryption_service.settings") as mock_settings:
        mock_settings.encryption_key = ""
        exit_code = main(["--file", seed_file, "--database-url", "sqlite:///:memory:"])

    assert exit_code == 1
    assert "ENCRYPTION_KEY is not set" in caplog.text
