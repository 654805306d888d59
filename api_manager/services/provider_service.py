"""Provider service for managing third-party API providers and their endpoints."""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from api_manager.config import settings
from api_manager.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from api_manager.models.endpoint import ProviderEndpoint
from api_manager.models.provider import Provider
from api_manager.schemas.auth import (
    descriptor_from_legacy,
    dump_descriptor_list,
    parse_descriptor_list,
)
from api_manager.schemas.provider import EndpointCreate, ProviderCreate, ProviderUpdate
from api_manager.services.encryption_service import EncryptionService

logger = logging.getLogger(__name__)

# Nullable columns an explicit null in an update clears
CLEARABLE_FIELDS = {"documentation"}


def endpoint_to_dict(endpoint: ProviderEndpoint) -> Dict[str, Any]:
    return {
        "id": endpoint.id,
        "provider_id": endpoint.provider_id,
        "path": endpoint.path,
        "method": endpoint.method,
        "description": endpoint.description,
        "is_active": endpoint.is_active,
        "created_at": endpoint.created_at.isoformat() if endpoint.created_at else None,
        "updated_at": endpoint.updated_at.isoformat() if endpoint.updated_at else None,
    }


class ProviderService:
    """Service for managing API providers."""

    def __init__(self, encryption_service: EncryptionService):
        """Initialize provider service.

        Args:
            encryption_service: Service for encrypting/decrypting auth configs.
        """
        self.encryption_service = encryption_service

    # ------------------------------------------------------------------
    # Auth descriptors
    # ------------------------------------------------------------------

    def load_auth_configs(self, provider: Provider) -> list:
        """Read a provider's auth descriptors.

        The encrypted descriptor list is authoritative when present. Otherwise
        the legacy ``auth_type`` / ``auth_config`` pair is lifted into a
        one-element list (or an empty list when it holds no credentials).
        """
        if provider.auth_configs_encrypted:
            raw = self.encryption_service.decrypt(provider.auth_configs_encrypted)
            return parse_descriptor_list(json.loads(raw))

        legacy = descriptor_from_legacy(provider.auth_type, provider.auth_config)
        return [legacy] if legacy is not None else []

    def store_auth_configs(self, provider: Provider, descriptors: list) -> None:
        """Encrypt descriptors onto the provider and clear the legacy columns."""
        if descriptors:
            provider.auth_configs_encrypted = self.encryption_service.encrypt(
                dump_descriptor_list(descriptors)
            )
        else:
            provider.auth_configs_encrypted = None
        provider.auth_type = None
        provider.auth_config = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def provider_to_dict(self, provider: Provider, include_inactive: bool = False) -> Dict[str, Any]:
        """Serialize a provider with masked credentials.

        Args:
            provider: Provider instance.
            include_inactive: Include disabled endpoints.
        """
        try:
            auth_configs = [d.masked() for d in self.load_auth_configs(provider)]
        except Exception as e:
            logger.error(f"Failed to decrypt auth configs for provider {provider.id}: {e}")
            auth_configs = []

        endpoints = [
            endpoint_to_dict(e)
            for e in provider.endpoints
            if include_inactive or e.is_active
        ]

        return {
            "id": provider.id,
            "name": provider.name,
            "description": provider.description,
            "base_url": provider.base_url,
            "documentation": provider.documentation,
            "requires_auth": provider.requires_auth,
            "auth_configs": auth_configs,
            "rate_limit": provider.rate_limit,
            "timeout": provider.timeout,
            "is_active": provider.is_active,
            "last_tested": provider.last_tested.isoformat() if provider.last_tested else None,
            "test_status": provider.test_status,
            "created_at": provider.created_at.isoformat() if provider.created_at else None,
            "updated_at": provider.updated_at.isoformat() if provider.updated_at else None,
            "endpoints": endpoints,
        }

    def list_providers(self, db: Session, include_inactive: bool = False) -> List[dict]:
        """List all providers, newest first.

        Args:
            db: Database session.
            include_inactive: Include disabled endpoints in each provider.

        Returns:
            List of provider dictionaries with masked credentials.
        """
        providers = db.query(Provider).order_by(Provider.created_at.desc(), Provider.id.desc()).all()
        return [self.provider_to_dict(p, include_inactive) for p in providers]

    def get_provider(self, db: Session, provider_id: int) -> Optional[Provider]:
        """Get a provider by ID.

        Args:
            db: Database session.
            provider_id: Provider ID.

        Returns:
            Provider instance or None if not found.
        """
        return db.query(Provider).filter(Provider.id == provider_id).first()

    def require_provider(self, db: Session, provider_id: int) -> Provider:
        """Get a provider by ID or raise NotFoundError."""
        provider = self.get_provider(db, provider_id)
        if not provider:
            raise NotFoundError("API Provider not found")
        return provider

    def get_provider_by_name(self, db: Session, name: str) -> Optional[Provider]:
        return db.query(Provider).filter(Provider.name == name).first()

    def get_endpoint(self, db: Session, provider_id: int, endpoint_id: int) -> ProviderEndpoint:
        """Get one endpoint of a provider or raise NotFoundError."""
        endpoint = db.query(ProviderEndpoint).filter(
            ProviderEndpoint.id == endpoint_id,
            ProviderEndpoint.provider_id == provider_id,
        ).first()
        if not endpoint:
            raise NotFoundError("Endpoint not found")
        return endpoint

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _commit(self, db: Session, action: str) -> None:
        try:
            db.commit()
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise PersistenceError(f"Failed to {action}")

    def create_provider(self, db: Session, data: ProviderCreate) -> Provider:
        """Create a provider together with its endpoints.

        Args:
            db: Database session.
            data: Validated creation request.

        Returns:
            The created Provider instance.

        Raises:
            ConflictError: If a provider with the same name exists.
        """
        if self.get_provider_by_name(db, data.name):
            raise ConflictError("Provider name already exists")

        provider = Provider(
            name=data.name,
            description=data.description,
            base_url=data.base_url,
            documentation=data.documentation,
            requires_auth=data.requires_auth,
            rate_limit=data.rate_limit or settings.default_rate_limit,
            timeout=data.timeout or settings.default_timeout_ms,
            is_active=data.is_active,
        )
        self.store_auth_configs(provider, data.auth_configs)
        provider.endpoints = [
            ProviderEndpoint(
                path=e.path,
                method=e.method,
                description=e.description,
                is_active=e.is_active,
            )
            for e in data.endpoints
        ]

        try:
            db.add(provider)
            self._commit(db, f"create provider '{data.name}'")
        except IntegrityError as e:
            db.rollback()
            logger.error(f"Failed to add provider '{data.name}': {e}")
            raise ConflictError("Provider name already exists")

        db.refresh(provider)
        logger.info(f"Provider '{provider.name}' created with {len(data.endpoints)} endpoints")
        return provider

    def update_provider(self, db: Session, provider_id: int, data: ProviderUpdate) -> Provider:
        """Update provider fields. Endpoints are left untouched.

        Raises:
            NotFoundError: If the provider does not exist.
            ConflictError: If the new name is taken.
            ValidationError: If auth is required but no credentials remain.
        """
        provider = self.require_provider(db, provider_id)
        changes = data.model_dump(exclude_unset=True)

        new_name = changes.get("name")
        if new_name and new_name != provider.name and self.get_provider_by_name(db, new_name):
            raise ConflictError("Provider name already exists")

        if "auth_configs" in changes:
            descriptors = data.auth_configs or []
        else:
            descriptors = self.load_auth_configs(provider)
        requires_auth = changes.get("requires_auth", provider.requires_auth)
        if requires_auth and not any(d.enabled and d.type != "none" for d in descriptors):
            raise ValidationError("At least one enabled auth config is required when requires_auth is true")

        for key, value in changes.items():
            if key == "auth_configs" or (value is None and key not in CLEARABLE_FIELDS):
                continue
            setattr(provider, key, value)
        if "auth_configs" in changes:
            self.store_auth_configs(provider, descriptors)

        provider.updated_at = datetime.utcnow()

        try:
            self._commit(db, f"update provider {provider_id}")
        except IntegrityError as e:
            db.rollback()
            logger.error(f"Failed to update provider {provider_id}: {e}")
            raise ConflictError("Provider name already exists")

        db.refresh(provider)
        logger.info(f"Provider {provider_id} updated successfully")
        return provider

    def set_status(self, db: Session, provider_id: int, is_active: bool) -> Provider:
        """Enable or disable a provider."""
        provider = self.require_provider(db, provider_id)
        provider.is_active = is_active
        provider.updated_at = datetime.utcnow()
        self._commit(db, f"update status of provider {provider_id}")
        db.refresh(provider)
        logger.info(f"Provider {provider_id} {'activated' if is_active else 'deactivated'}")
        return provider

    def delete_provider(self, db: Session, provider_id: int) -> None:
        """Delete a provider with cascade deletion of its endpoints.

        Call logs referring to the provider are kept.
        """
        provider = self.require_provider(db, provider_id)

        # Count associated endpoints for logging
        endpoint_count = db.query(ProviderEndpoint).filter(ProviderEndpoint.provider_id == provider_id).count()

        db.delete(provider)
        self._commit(db, f"delete provider {provider_id}")
        logger.info(f"Provider {provider_id} deleted successfully (cascade deleted {endpoint_count} endpoints)")

    def add_endpoint(self, db: Session, provider_id: int, data: EndpointCreate) -> ProviderEndpoint:
        """Add an endpoint to a provider.

        Raises:
            ConflictError: If the provider already has the same path and method.
        """
        provider = self.require_provider(db, provider_id)
        existing = db.query(ProviderEndpoint).filter(
            ProviderEndpoint.provider_id == provider.id,
            ProviderEndpoint.path == data.path,
            ProviderEndpoint.method == data.method,
        ).first()
        if existing:
            raise ConflictError(f"Endpoint {data.method} {data.path} already exists")

        endpoint = ProviderEndpoint(
            provider_id=provider.id,
            path=data.path,
            method=data.method,
            description=data.description,
            is_active=data.is_active,
        )
        try:
            db.add(endpoint)
            self._commit(db, f"add endpoint to provider {provider_id}")
        except IntegrityError:
            db.rollback()
            raise ConflictError(f"Endpoint {data.method} {data.path} already exists")

        db.refresh(endpoint)
        logger.info(f"Endpoint {endpoint.method} {endpoint.path} added to provider {provider_id}")
        return endpoint

    def set_endpoint_status(
        self, db: Session, provider_id: int, endpoint_id: int, is_active: bool
    ) -> ProviderEndpoint:
        endpoint = self.get_endpoint(db, provider_id, endpoint_id)
        endpoint.is_active = is_active
        endpoint.updated_at = datetime.utcnow()
        self._commit(db, f"update status of endpoint {endpoint_id}")
        db.refresh(endpoint)
        return endpoint

    def delete_endpoint(self, db: Session, provider_id: int, endpoint_id: int) -> None:
        endpoint = self.get_endpoint(db, provider_id, endpoint_id)
        db.delete(endpoint)
        self._commit(db, f"delete endpoint {endpoint_id}")
        logger.info(f"Endpoint {endpoint_id} deleted from provider {provider_id}")
