"""Provider database model."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, CheckConstraint
from api_manager.database.database import Base


class Provider(Base):
    """Provider model for storing third-party API provider information."""

    __tablename__ = "api_providers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=False)
    base_url = Column(String, nullable=False)
    documentation = Column(String, nullable=True)
    requires_auth = Column(Boolean, default=False, nullable=False)
    # Encrypted JSON list of auth descriptors; authoritative when set
    auth_configs_encrypted = Column(Text, nullable=True)
    # Legacy single descriptor, read only when auth_configs_encrypted is empty
    auth_type = Column(String, nullable=True)
    auth_config = Column(JSON, nullable=True)
    rate_limit = Column(Integer, default=1000, nullable=False)
    timeout = Column(Integer, default=10000, nullable=False)  # milliseconds
    is_active = Column(Boolean, default=True, nullable=False)
    last_tested = Column(DateTime, nullable=True)
    test_status = Column(String, default="pending", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("test_status IN ('success', 'error', 'pending')", name='ck_provider_test_status'),
    )
