"""Read access to listings owned by the listings service."""

from __future__ import annotations

from sqlalchemy.orm import Session

from marketplace_messaging.domain.entities import Listing
from marketplace_messaging.infrastructure.models import ListingModel


class ListingRepository:
    """Resolve listing ids to their owner and title."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, listing_id: str) -> Listing | None:
        model = self.session.get(ListingModel, listing_id)
        if model is None:
            return None
        return Listing(id=model.id, owner_id=model.owner_id, title=model.title)


__all__ = ["ListingRepository"]
