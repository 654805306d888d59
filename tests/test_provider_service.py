"""Tests for provider service."""

import json

import pytest
from cryptography.fernet import Fernet
from pydantic import ValidationError as PydanticValidationError

from api_manager.database.database import Database
from api_manager.errors import ConflictError, NotFoundError, ValidationError
from api_manager.models import CallLog, Provider, ProviderEndpoint, TARGET_PROVIDER
from api_manager.schemas.auth import ApiKeyAuth, BearerAuth
from api_manager.schemas.provider import EndpointCreate, ProviderCreate, ProviderUpdate
from api_manager.services.encryption_service import EncryptionService
from api_manager.services.provider_service import ProviderService


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
def encryption_service():
    """Create encryption service with test key."""
    return EncryptionService(Fernet.generate_key().decode())


@pytest.fixture
def provider_service(encryption_service):
    """Create provider service."""
    return ProviderService(encryption_service)


def jsonplaceholder(**overrides) -> ProviderCreate:
    data = {
        "name": "JSONPlaceholder",
        "description": "Fake REST API",
        "base_url": "https://jsonplaceholder.typicode.com/",
        "endpoints": [
            {"path": "/posts", "method": "GET"},
            {"path": "posts/{id}", "method": "get"},
        ],
    }
    data.update(overrides)
    return ProviderCreate.model_validate(data)


class TestProviderCreateSchema:
    """Test request validation for provider creation."""

    def test_normalizes_fields(self):
        data = jsonplaceholder()
        assert data.base_url == "https://jsonplaceholder.typicode.com"
        assert data.endpoints[1].path == "/posts/{id}"
        assert data.endpoints[1].method == "GET"

    @pytest.mark.parametrize("field", ["name", "description", "base_url"])
    def test_blank_required_field_rejected(self, field):
        with pytest.raises(PydanticValidationError):
            jsonplaceholder(**{field: "   "})

    def test_malformed_url_rejected(self):
        with pytest.raises(PydanticValidationError) as exc_info:
            jsonplaceholder(base_url="not a url")
        assert "Invalid base URL" in str(exc_info.value)

    def test_duplicate_endpoints_in_payload_rejected(self):
        with pytest.raises(PydanticValidationError):
            jsonplaceholder(endpoints=[
                {"path": "/posts", "method": "GET"},
                {"path": "posts", "method": "get"},
            ])

    def test_requires_auth_without_descriptor_rejected(self):
        with pytest.raises(PydanticValidationError):
            jsonplaceholder(requires_auth=True)
        with pytest.raises(PydanticValidationError):
            jsonplaceholder(
                requires_auth=True,
                auth_configs=[{"type": "bearer", "token": "t", "enabled": False}],
            )

    def test_camel_case_payload_accepted(self):
        data = ProviderCreate.model_validate({
            "name": "Keyed",
            "description": "Needs a key",
            "baseUrl": "https://api.example.com",
            "requiresAuth": True,
            "authConfigs": [{"type": "api_key", "headerName": "X-Key", "headerValue": "abc"}],
        })
        assert data.requires_auth is True
        assert isinstance(data.auth_configs[0], ApiKeyAuth)


class TestProviderCRUD:
    """Test provider CRUD operations."""

    def test_create_provider_with_endpoints(self, test_db, provider_service):
        provider = provider_service.create_provider(test_db, jsonplaceholder())

        assert provider.id is not None
        assert provider.base_url == "https://jsonplaceholder.typicode.com"
        assert provider.timeout == 10000
        assert provider.rate_limit == 1000
        assert [(e.method, e.path) for e in provider.endpoints] == [
            ("GET", "/posts"),
            ("GET", "/posts/{id}"),
        ]

    def test_duplicate_name_leaves_one_row(self, test_db, provider_service):
        provider_service.create_provider(test_db, jsonplaceholder())

        with pytest.raises(ConflictError) as exc_info:
            provider_service.create_provider(test_db, jsonplaceholder())

        assert exc_info.value.status_code == 400
        assert test_db.query(Provider).count() == 1

    def test_auth_configs_encrypted_at_rest(self, test_db, provider_service):
        data = jsonplaceholder(
            requires_auth=True,
            auth_configs=[{"type": "api_key", "header_name": "X-Key", "header_value": "sk-secret-value-123"}],
        )
        provider = provider_service.create_provider(test_db, data)

        assert "sk-secret-value-123" not in provider.auth_configs_encrypted
        assert provider.auth_type is None
        descriptors = provider_service.load_auth_configs(provider)
        assert descriptors[0].header_value == "sk-secret-value-123"

    def test_provider_to_dict_masks_secrets(self, test_db, provider_service):
        data = jsonplaceholder(
            requires_auth=True,
            auth_configs=[{"type": "bearer", "token": "tok-1234567890-abcd"}],
        )
        provider = provider_service.create_provider(test_db, data)

        result = provider_service.provider_to_dict(provider)

        assert result["auth_configs"][0]["token"] == "tok***************abcd"
        assert result["test_status"] == "pending"
        assert len(result["endpoints"]) == 2

    def test_legacy_auth_columns_read_when_no_encrypted_list(self, test_db, provider_service):
        provider = Provider(
            name="Legacy",
            description="Old row",
            base_url="https://api.example.com",
            requires_auth=True,
            auth_type="bearer",
            auth_config={"headerName": "Authorization", "headerValue": "legacy-token"},
        )
        test_db.add(provider)
        test_db.commit()

        descriptors = provider_service.load_auth_configs(provider)

        assert len(descriptors) == 1
        assert isinstance(descriptors[0], BearerAuth)
        assert descriptors[0].token == "legacy-token"

    def test_encrypted_list_takes_precedence(self, test_db, provider_service, encryption_service):
        provider = Provider(
            name="Both",
            description="Both columns set",
            base_url="https://api.example.com",
            auth_type="bearer",
            auth_config={"headerValue": "legacy-token"},
            auth_configs_encrypted=encryption_service.encrypt(
                json.dumps([{"type": "api_key", "header_name": "X-Key", "header_value": "new"}])
            ),
        )
        test_db.add(provider)
        test_db.commit()

        descriptors = provider_service.load_auth_configs(provider)

        assert [d.type for d in descriptors] == ["api_key"]

    def test_list_providers_newest_first(self, test_db, provider_service):
        provider_service.create_provider(test_db, jsonplaceholder(name="First"))
        provider_service.create_provider(test_db, jsonplaceholder(name="Second"))

        names = [p["name"] for p in provider_service.list_providers(test_db)]

        assert names == ["Second", "First"]

    def test_inactive_endpoints_hidden_by_default(self, test_db, provider_service):
        provider = provider_service.create_provider(test_db, jsonplaceholder())
        endpoint = provider.endpoints[0]
        provider_service.set_endpoint_status(test_db, provider.id, endpoint.id, False)

        visible = provider_service.provider_to_dict(provider)["endpoints"]
        everything = provider_service.provider_to_dict(provider, include_inactive=True)["endpoints"]

        assert [e["id"] for e in visible] == [provider.endpoints[1].id]
        assert len(everything) == 2

    def test_get_missing_provider(self, test_db, provider_service):
        assert provider_service.get_provider(test_db, 999) is None
        with pytest.raises(NotFoundError, match="API Provider not found"):
            provider_service.require_provider(test_db, 999)

    def test_update_provider(self, test_db, provider_service):
        provider = provider_service.create_provider(test_db, jsonplaceholder())

        updated = provider_service.update_provider(
            test_db, provider.id, ProviderUpdate(description="Updated", timeout=2000)
        )

        assert updated.description == "Updated"
        assert updated.timeout == 2000
        assert updated.name == "JSONPlaceholder"
        assert len(updated.endpoints) == 2

    def test_update_null_clears_documentation_only(self, test_db, provider_service):
        provider = provider_service.create_provider(
            test_db, jsonplaceholder(documentation="https://jsonplaceholder.typicode.com/guide", timeout=4000)
        )

        updated = provider_service.update_provider(
            test_db,
            provider.id,
            ProviderUpdate.model_validate({"documentation": None, "timeout": None, "description": None}),
        )

        assert updated.documentation is None
        assert updated.timeout == 4000
        assert updated.description == "Fake REST API"

    def test_update_rename_onto_existing_name(self, test_db, provider_service):
        provider_service.create_provider(test_db, jsonplaceholder(name="Taken"))
        provider = provider_service.create_provider(test_db, jsonplaceholder(name="Mine"))

        with pytest.raises(ConflictError):
            provider_service.update_provider(test_db, provider.id, ProviderUpdate(name="Taken"))

    def test_update_requires_auth_without_credentials(self, test_db, provider_service):
        provider = provider_service.create_provider(test_db, jsonplaceholder())

        with pytest.raises(ValidationError):
            provider_service.update_provider(test_db, provider.id, ProviderUpdate(requires_auth=True))

    def test_set_status(self, test_db, provider_service):
        provider = provider_service.create_provider(test_db, jsonplaceholder())

        assert provider_service.set_status(test_db, provider.id, False).is_active is False
        assert provider_service.set_status(test_db, provider.id, True).is_active is True

    def test_delete_provider_cascades_endpoints_keeps_logs(self, test_db, provider_service):
        provider = provider_service.create_provider(test_db, jsonplaceholder())
        test_db.add(CallLog(
            target_type=TARGET_PROVIDER,
            target_id=provider.id,
            method="GET",
            url="https://jsonplaceholder.typicode.com/posts",
            status=200,
            success=True,
        ))
        test_db.commit()

        provider_service.delete_provider(test_db, provider.id)

        assert test_db.query(Provider).count() == 0
        assert test_db.query(ProviderEndpoint).count() == 0
        assert test_db.query(CallLog).count() == 1

    def test_delete_missing_provider(self, test_db, provider_service):
        with pytest.raises(NotFoundError):
            provider_service.delete_provider(test_db, 999)


class TestEndpointManagement:
    """Test adding, toggling and deleting endpoints."""

    def test_add_endpoint(self, test_db, provider_service):
        provider = provider_service.create_provider(test_db, jsonplaceholder())

        endpoint = provider_service.add_endpoint(
            test_db, provider.id, EndpointCreate(path="/users", method="get")
        )

        assert endpoint.provider_id == provider.id
        assert endpoint.method == "GET"

    def test_add_duplicate_endpoint_rejected(self, test_db, provider_service):
        provider = provider_service.create_provider(test_db, jsonplaceholder())

        with pytest.raises(ConflictError):
            provider_service.add_endpoint(test_db, provider.id, EndpointCreate(path="/posts"))

        assert test_db.query(ProviderEndpoint).count() == 2

    def test_endpoint_of_other_provider_not_found(self, test_db, provider_service):
        first = provider_service.create_provider(test_db, jsonplaceholder(name="First"))
        second = provider_service.create_provider(test_db, jsonplaceholder(name="Second"))

        with pytest.raises(NotFoundError, match="Endpoint not found"):
            provider_service.get_endpoint(test_db, second.id, first.endpoints[0].id)

    def test_delete_endpoint(self, test_db, provider_service):
        provider = provider_service.create_provider(test_db, jsonplaceholder())
        endpoint_id = provider.endpoints[0].id

        provider_service.delete_endpoint(test_db, provider.id, endpoint_id)

        assert test_db.query(ProviderEndpoint).filter(ProviderEndpoint.id == endpoint_id).first() is None
