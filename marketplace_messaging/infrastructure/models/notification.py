"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.sql import expression

from marketplace_messaging.infrastructure.database import Base
from marketplace_messaging.utils import utc_now_naive


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"
    __table_args__ = (
        Index("ix_notification_user_read_created", "user_id", "is_read", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    is_read = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    action_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=utc_now_naive)
    read_at = Column(DateTime(), nullable=True)
    expires_at = Column(DateTime(), nullable=True)


__all__ = ["NotificationModel"]
