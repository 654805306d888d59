"""Service for legacy single-endpoint external APIs."""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api_manager.config import settings
from api_manager.errors import NotFoundError, PersistenceError, ValidationError
from api_manager.models.external_api import ExternalAPI
from api_manager.schemas.auth import parse_descriptor
from api_manager.schemas.external_api import ExternalAPICreate, ExternalAPIUpdate
from api_manager.services.encryption_service import EncryptionService

logger = logging.getLogger(__name__)


class ExternalAPIService:
    """CRUD for external APIs, each holding exactly one endpoint."""

    def __init__(self, encryption_service: EncryptionService):
        self.encryption_service = encryption_service

    def load_auth(self, external_api: ExternalAPI):
        """Decrypt the stored auth descriptor, or None when there is none."""
        if not external_api.auth_config_encrypted:
            return None
        raw = self.encryption_service.decrypt(external_api.auth_config_encrypted)
        return parse_descriptor(json.loads(raw))

    def load_auth_configs(self, external_api: ExternalAPI) -> list:
        """Descriptor list view, so the resolver treats both models alike."""
        descriptor = self.load_auth(external_api)
        return [descriptor] if descriptor is not None else []

    def _store_auth(self, external_api: ExternalAPI, descriptor) -> None:
        if descriptor is None or descriptor.type == "none":
            external_api.auth_type = "none"
            external_api.auth_config_encrypted = None
            return
        external_api.auth_type = descriptor.type
        external_api.auth_config_encrypted = self.encryption_service.encrypt(
            json.dumps(descriptor.model_dump())
        )

    def to_dict(self, external_api: ExternalAPI) -> Dict[str, Any]:
        try:
            descriptor = self.load_auth(external_api)
            auth = descriptor.masked() if descriptor is not None else None
        except Exception as e:
            logger.error(f"Failed to decrypt auth config for external API {external_api.id}: {e}")
            auth = None

        return {
            "id": external_api.id,
            "name": external_api.name,
            "description": external_api.description,
            "base_url": external_api.base_url,
            "endpoint": external_api.endpoint,
            "method": external_api.method,
            "requires_auth": external_api.requires_auth,
            "auth_type": external_api.auth_type,
            "auth": auth,
            "rate_limit": external_api.rate_limit,
            "timeout": external_api.timeout,
            "is_active": external_api.is_active,
            "last_tested": external_api.last_tested.isoformat() if external_api.last_tested else None,
            "test_status": external_api.test_status,
            "created_at": external_api.created_at.isoformat() if external_api.created_at else None,
            "updated_at": external_api.updated_at.isoformat() if external_api.updated_at else None,
        }

    def _commit(self, db: Session, action: str) -> None:
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise PersistenceError(f"Failed to {action}")

    def list_external_apis(self, db: Session) -> List[dict]:
        """List external APIs, newest first."""
        apis = db.query(ExternalAPI).order_by(ExternalAPI.created_at.desc(), ExternalAPI.id.desc()).all()
        return [self.to_dict(a) for a in apis]

    def get_external_api(self, db: Session, external_api_id: int) -> Optional[ExternalAPI]:
        return db.query(ExternalAPI).filter(ExternalAPI.id == external_api_id).first()

    def require_external_api(self, db: Session, external_api_id: int) -> ExternalAPI:
        external_api = self.get_external_api(db, external_api_id)
        if not external_api:
            raise NotFoundError("External API not found")
        return external_api

    def create_external_api(self, db: Session, data: ExternalAPICreate) -> ExternalAPI:
        """Create an external API.

        Raises:
            ValidationError: If auth is required but no descriptor is given.
        """
        if data.requires_auth and (data.auth is None or data.auth.type == "none"):
            raise ValidationError("An auth config is required when requires_auth is true")

        external_api = ExternalAPI(
            name=data.name,
            description=data.description,
            base_url=data.base_url,
            endpoint=data.endpoint,
            method=data.method,
            requires_auth=data.requires_auth,
            rate_limit=data.rate_limit or settings.default_rate_limit,
            timeout=data.timeout or settings.default_timeout_ms,
            is_active=data.is_active,
        )
        self._store_auth(external_api, data.auth)

        db.add(external_api)
        self._commit(db, f"create external API '{data.name}'")
        db.refresh(external_api)
        logger.info(f"External API '{external_api.name}' created")
        return external_api

    def update_external_api(self, db: Session, external_api_id: int, data: ExternalAPIUpdate) -> ExternalAPI:
        external_api = self.require_external_api(db, external_api_id)
        changes = data.model_dump(exclude_unset=True)

        descriptor = data.auth if "auth" in changes else self.load_auth(external_api)
        requires_auth = changes.get("requires_auth", external_api.requires_auth)
        if requires_auth and (descriptor is None or descriptor.type == "none"):
            raise ValidationError("An auth config is required when requires_auth is true")

        for key, value in changes.items():
            if key == "auth" or value is None:
                continue
            setattr(external_api, key, value)
        if "auth" in changes:
            self._store_auth(external_api, descriptor)

        external_api.updated_at = datetime.utcnow()
        self._commit(db, f"update external API {external_api_id}")
        db.refresh(external_api)
        logger.info(f"External API {external_api_id} updated successfully")
        return external_api

    def set_status(self, db: Session, external_api_id: int, is_active: bool) -> ExternalAPI:
        external_api = self.require_external_api(db, external_api_id)
        external_api.is_active = is_active
        external_api.updated_at = datetime.utcnow()
        self._commit(db, f"update status of external API {external_api_id}")
        db.refresh(external_api)
        return external_api

    def delete_external_api(self, db: Session, external_api_id: int) -> None:
        """Delete an external API. Its call logs are kept."""
        external_api = self.require_external_api(db, external_api_id)
        db.delete(external_api)
        self._commit(db, f"delete external API {external_api_id}")
        logger.info(f"External API {external_api_id} deleted successfully")
