"""Read-only mapping of the marketplace ``listings`` table."""

from sqlalchemy import Column, String

from marketplace_messaging.infrastructure.database import Base


class ListingModel(Base):
    """Columns of the listings table this service relies on.

    The table belongs to the listings service; it is only created here when
    missing (local development and tests).
    """

    __tablename__ = "listings"

    id = Column(String(64), primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    title = Column(String(200), nullable=False)


__all__ = ["ListingModel"]
