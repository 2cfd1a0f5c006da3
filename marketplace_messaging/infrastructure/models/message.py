"""SQLAlchemy model for chat messages."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import expression

from marketplace_messaging.infrastructure.database import Base
from marketplace_messaging.utils import utc_now_naive


class MessageModel(Base):
    """Database representation of a message appended to a thread."""

    __tablename__ = "chat_message"
    __table_args__ = (
        UniqueConstraint(
            "thread_id", "sender_id", "client_token", name="uq_chat_message_client_token"
        ),
        Index("ix_chat_message_thread_order", "thread_id", "created_at", "id"),
        Index("ix_chat_message_unread", "thread_id", "read", "sender_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    thread_id = Column(
        Integer, ForeignKey("chat_thread.id", ondelete="CASCADE"), nullable=False
    )
    sender_id = Column(String(64), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(), nullable=False, default=utc_now_naive)
    read = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    read_at = Column(DateTime(), nullable=True)
    client_token = Column(String(64), nullable=True)


__all__ = ["MessageModel"]
