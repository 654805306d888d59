"""Tests for external API service."""

import pytest
from cryptography.fernet import Fernet
from pydantic import ValidationError as PydanticValidationError

from api_manager.database.database import Database
from api_manager.errors import NotFoundError, ValidationError
from api_manager.models import ExternalAPI
from api_manager.schemas.external_api import ExternalAPICreate, ExternalAPIUpdate
from api_manager.services.encryption_service import EncryptionService
from api_manager.services.external_api_service import ExternalAPIService


@pytest.fixture
def test_db():
    """Create a test database."""
    database = Database("sqlite:///:memory:")
    database.init_db()
    db = database.session()
    yield db
    db.close()
    database.dispose()


@pytest.fixture
def service():
    return ExternalAPIService(EncryptionService(Fernet.generate_key().decode()))


def weather_api(**overrides) -> ExternalAPICreate:
    data = {
        "name": "Weather",
        "description": "Current weather by city",
        "base_url": "https://api.weather.example.com",
        "endpoint": "/current/{city}",
        "method": "get",
    }
    data.update(overrides)
    return ExternalAPICreate.model_validate(data)


class TestExternalAPISchema:
    """Test request validation."""

    @pytest.mark.parametrize("field", ["name", "description", "endpoint"])
    def test_blank_required_field_rejected(self, field):
        with pytest.raises(PydanticValidationError):
            weather_api(**{field: ""})

    def test_missing_method_rejected(self):
        with pytest.raises(PydanticValidationError):
            ExternalAPICreate.model_validate({
                "name": "Weather",
                "description": "d",
                "base_url": "https://api.weather.example.com",
                "endpoint": "/current",
            })

    def test_unknown_method_rejected(self):
        with pytest.raises(PydanticValidationError):
            weather_api(method="TRACE")


class TestExternalAPICRUD:
    """Test external API CRUD operations."""

    def test_create_and_get(self, test_db, service):
        created = service.create_external_api(test_db, weather_api())

        fetched = service.require_external_api(test_db, created.id)

        assert fetched.method == "GET"
        assert fetched.auth_type == "none"
        assert fetched.timeout == 10000
        assert service.to_dict(fetched)["auth"] is None

    def test_create_with_auth_stores_encrypted(self, test_db, service):
        created = service.create_external_api(test_db, weather_api(
            requires_auth=True,
            auth={"type": "api_key", "headerName": "X-Weather-Key", "headerValue": "weather-secret-key"},
        ))

        assert created.auth_type == "api_key"
        assert "weather-secret-key" not in created.auth_config_encrypted
        assert service.load_auth(created).header_value == "weather-secret-key"
        assert service.to_dict(created)["auth"]["header_value"] != "weather-secret-key"

    def test_requires_auth_without_descriptor(self, test_db, service):
        with pytest.raises(ValidationError):
            service.create_external_api(test_db, weather_api(requires_auth=True))

        assert test_db.query(ExternalAPI).count() == 0

    def test_update(self, test_db, service):
        created = service.create_external_api(test_db, weather_api())

        updated = service.update_external_api(
            test_db, created.id, ExternalAPIUpdate(endpoint="/forecast/{city}", method="post")
        )

        assert updated.endpoint == "/forecast/{city}"
        assert updated.method == "POST"
        assert updated.name == "Weather"

    def test_update_clears_auth(self, test_db, service):
        created = service.create_external_api(test_db, weather_api(
            auth={"type": "bearer", "token": "tok"},
        ))

        updated = service.update_external_api(test_db, created.id, ExternalAPIUpdate(auth=None))

        assert updated.auth_type == "none"
        assert updated.auth_config_encrypted is None

    def test_set_status_and_delete(self, test_db, service):
        created = service.create_external_api(test_db, weather_api())

        assert service.set_status(test_db, created.id, False).is_active is False

        service.delete_external_api(test_db, created.id)
        with pytest.raises(NotFoundError, match="External API not found"):
            service.require_external_api(test_db, created.id)

    def test_list_newest_first(self, test_db, service):
        service.create_external_api(test_db, weather_api(name="Old"))
        service.create_external_api(test_db, weather_api(name="New"))

        assert [a["name"] for a in service.list_external_apis(test_db)] == ["New", "Old"]
