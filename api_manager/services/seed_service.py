"""Bootstrap the provider registry from a YAML seed file."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import yaml
from sqlalchemy.orm import Session

from api_manager.errors import ConflictError, ValidationError
from api_manager.models.endpoint import ProviderEndpoint
from api_manager.schemas.provider import ProviderCreate
from api_manager.services.provider_service import ProviderService

logger = logging.getLogger(__name__)


@dataclass
class SeedReport:
    """What a seed run changed."""

    providers_created: List[str] = field(default_factory=list)
    providers_skipped: List[str] = field(default_factory=list)
    endpoints_created: int = 0
    endpoints_skipped: int = 0


class SeedService:
    """Create providers and endpoints, skipping the ones that already exist.

    Unlike the public create API, seeding is idempotent: an existing provider
    name or an existing (provider, path, method) triple is a no-op.
    """

    def __init__(self, provider_service: ProviderService):
        self.provider_service = provider_service

    def load_file(self, path: str) -> List[Dict[str, Any]]:
        """Read provider definitions from a YAML file.

        The file holds either a list of providers or a mapping with a
        ``providers`` key.
        """
        with open(path, "r", encoding="utf-8") as f:
            try:
                document = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValidationError(f"Invalid seed file {path}: {e}")

        if isinstance(document, dict):
            document = document.get("providers", [])
        if not isinstance(document, list):
            raise ValidationError(f"Seed file {path} must contain a list of providers")
        return document

    def seed(self, db: Session, definitions: List[Dict[str, Any]]) -> SeedReport:
        """Apply provider definitions.

        Args:
            db: Database session.
            definitions: Raw provider dictionaries (validated here).

        Returns:
            SeedReport describing created and skipped records.
        """
        report = SeedReport()

        for raw in definitions:
            try:
                data = ProviderCreate.model_validate(raw)
            except ValueError as e:
                name = raw.get("name") if isinstance(raw, dict) else raw
                raise ValidationError(f"Invalid provider definition '{name}': {e}")

            provider = self.provider_service.get_provider_by_name(db, data.name)
            if provider is None:
                try:
                    self.provider_service.create_provider(db, data)
                except ConflictError:
                    # Created concurrently since the lookup above
                    report.providers_skipped.append(data.name)
                    continue
                report.providers_created.append(data.name)
                report.endpoints_created += len(data.endpoints)
                logger.info(f"Seeded provider '{data.name}'")
                continue

            report.providers_skipped.append(data.name)
            for endpoint in data.endpoints:
                exists = db.query(ProviderEndpoint).filter(
                    ProviderEndpoint.provider_id == provider.id,
                    ProviderEndpoint.path == endpoint.path,
                    ProviderEndpoint.method == endpoint.method,
                ).first()
                if exists:
                    report.endpoints_skipped += 1
                    continue
                self.provider_service.add_endpoint(db, provider.id, endpoint)
                report.endpoints_created += 1

        logger.info(
            f"Seed complete: {len(report.providers_created)} providers created, "
            f"{len(report.providers_skipped)} skipped, "
            f"{report.endpoints_created} endpoints created, {report.endpoints_skipped} skipped"
        )
        return report

    def seed_file(self, db: Session, path: str) -> SeedReport:
        return self.seed(db, self.load_file(path))
