"""SQLAlchemy model for conversation threads."""

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, UniqueConstraint

from marketplace_messaging.infrastructure.database import Base
from marketplace_messaging.utils import utc_now_naive


class ChatThreadModel(Base):
    """Database representation of a thread between two parties about a listing."""

    __tablename__ = "chat_thread"
    __table_args__ = (
        UniqueConstraint(
            "listing_id", "party_a_id", "party_b_id", name="uq_chat_thread_listing_pair"
        ),
        CheckConstraint("party_a_id <> party_b_id", name="ck_chat_thread_distinct_parties"),
    )

    id = Column(Integer, primary_key=True, index=True)
    listing_id = Column(String(64), nullable=False, index=True)
    party_a_id = Column(String(64), nullable=False, index=True)
    party_b_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime(), nullable=False, default=utc_now_naive)
    last_message_at = Column(DateTime(), nullable=True)


__all__ = ["ChatThreadModel"]
