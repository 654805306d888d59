"""Call log database model."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, Index, CheckConstraint
from api_manager.database.database import Base

TARGET_PROVIDER = "provider"
TARGET_EXTERNAL_API = "external_api"


class CallLog(Base):
    """Append-only record of one outbound dispatch attempt.

    ``target_id`` is not a foreign key: rows outlive the provider or external
    API they refer to and are only removed by an explicit purge.
    """

    __tablename__ = "api_call_logs"

    id = Column(Integer, primary_key=True, index=True)
    target_type = Column(String, nullable=False)  # provider or external_api
    target_id = Column(Integer, nullable=False)
    endpoint_id = Column(Integer, nullable=True)
    method = Column(String, nullable=False)
    url = Column(Text, nullable=False, default="")
    status = Column(Integer, nullable=False, default=0)
    duration = Column(Integer, nullable=False, default=0)  # milliseconds
    response_size = Column(Integer, nullable=False, default=0)  # bytes
    success = Column(Boolean, nullable=False, default=False)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Constraints
    __table_args__ = (
        CheckConstraint("target_type IN ('provider', 'external_api')", name='ck_call_log_target_type'),
        Index('ix_api_call_logs_target', 'target_type', 'target_id'),
        Index('ix_api_call_logs_created_at', 'created_at'),
    )
