"""Legacy single-endpoint external API model."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, CheckConstraint
from api_manager.database.database import Base


class ExternalAPI(Base):
    """An external API definition holding exactly one endpoint."""

    __tablename__ = "external_apis"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    base_url = Column(String, nullable=False)
    endpoint = Column(String, nullable=False)
    method = Column(String, nullable=False, default="GET")
    requires_auth = Column(Boolean, default=False, nullable=False)
    auth_type = Column(String, nullable=False, default="none")
    auth_config_encrypted = Column(Text, nullable=True)
    rate_limit = Column(Integer, default=1000, nullable=False)
    timeout = Column(Integer, default=10000, nullable=False)  # milliseconds
    is_active = Column(Boolean, default=True, nullable=False)
    last_tested = Column(DateTime, nullable=True)
    test_status = Column(String, default="pending", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("test_status IN ('success', 'error', 'pending')", name='ck_external_api_test_status'),
        CheckConstraint("method IN ('GET', 'POST', 'PUT', 'PATCH', 'DELETE')", name='ck_external_api_method'),
    )
