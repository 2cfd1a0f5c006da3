"""SQLAlchemy model for per-user notification preferences."""

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String
from sqlalchemy.sql import expression

from marketplace_messaging.infrastructure.database import Base
from marketplace_messaging.utils import utc_now_naive


class NotificationPreferenceModel(Base):
    """One row per user; created lazily on first access."""

    __tablename__ = "notification_preference"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, unique=True, index=True)
    email_enabled = Column(
        Boolean, nullable=False, default=True, server_default=expression.true()
    )
    push_enabled = Column(
        Boolean, nullable=False, default=True, server_default=expression.true()
    )
    in_app_enabled = Column(
        Boolean, nullable=False, default=True, server_default=expression.true()
    )
    email_frequency = Column(String(16), nullable=False, default="immediate")
    muted_until = Column(DateTime(), nullable=True)
    preferences = Column(JSON, nullable=False, default=dict)
    email_address = Column(String(254), nullable=True)
    last_digest_sent_at = Column(DateTime(), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=utc_now_naive)
    updated_at = Column(DateTime(), nullable=True, onupdate=utc_now_naive)


__all__ = ["NotificationPreferenceModel"]
