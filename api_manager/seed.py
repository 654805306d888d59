"""Seed the provider registry from a YAML file.

Usage:
    api-manager-seed [--file seeds/providers.yaml] [--database-url URL]
"""

import argparse
import logging
import sys
from typing import List, Optional

from api_manager.config import settings
from api_manager.database.database import Database
from api_manager.errors import APIManagerError, ConfigurationError
from api_manager.services.encryption_service import EncryptionService
from api_manager.services.provider_service import ProviderService
from api_manager.services.seed_service import SeedService

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed API providers from a YAML file")
    parser.add_argument(
        "--file",
        default=settings.seed_file,
        help=f"Seed file to load (default: {settings.seed_file})",
    )
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="Database URL (default: DATABASE_URL from the environment)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        encryption_service = EncryptionService()
    except ConfigurationError as e:
        logger.error(e.message)
        return 1

    database = Database(args.database_url)
    database.init_db(encryption_service)

    seed_service = SeedService(ProviderService(encryption_service))
    db = database.session()
    try:
        report = seed_service.seed_file(db, args.file)
    except FileNotFoundError:
        logger.error(f"Seed file not found: {args.file}")
        return 1
    except APIManagerError as e:
        logger.error(f"Seeding failed: {e.message}")
        return 1
    finally:
        db.close()
        database.dispose()

    print(f"Providers created: {', '.join(report.providers_created) or 'none'}")
    print(f"Providers skipped: {', '.join(report.providers_skipped) or 'none'}")
    print(f"Endpoints created: {report.endpoints_created}, skipped: {report.endpoints_skipped}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
