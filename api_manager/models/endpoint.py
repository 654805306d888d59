"""Provider endpoint database model."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, UniqueConstraint, Index, CheckConstraint
from sqlalchemy.orm import relationship, backref
from api_manager.database.database import Base


class ProviderEndpoint(Base):
    """One path template and HTTP method exposed by a provider."""

    __tablename__ = "api_provider_endpoints"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("api_providers.id", ondelete="CASCADE"), nullable=False)
    path = Column(String, nullable=False)
    method = Column(String, nullable=False, default="GET")
    description = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationship
    provider = relationship(
        "Provider",
        backref=backref(
            "endpoints",
            cascade="all, delete-orphan",
            passive_deletes=True,
            order_by="ProviderEndpoint.id",
        ),
    )

    # Constraints
    __table_args__ = (
        UniqueConstraint('provider_id', 'path', 'method', name='uq_provider_path_method'),
        CheckConstraint("method IN ('GET', 'POST', 'PUT', 'PATCH', 'DELETE')", name='ck_endpoint_method'),
        Index('ix_api_provider_endpoints_provider_id', 'provider_id'),
    )
