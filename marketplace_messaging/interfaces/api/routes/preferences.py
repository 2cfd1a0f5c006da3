"""Endpoints for reading and changing notification preferences."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace_messaging.application.use_cases.preferences import (
    get_preferences,
    update_preferences,
)
from marketplace_messaging.domain.entities import Identity
from marketplace_messaging.infrastructure.database import get_db
from marketplace_messaging.interfaces.api.dependencies import get_current_identity
from marketplace_messaging.interfaces.api.schemas import PreferenceRead, PreferenceUpdate

router = APIRouter(prefix="/notification-preferences", tags=["notification-preferences"])


@router.get("", response_model=PreferenceRead)
def read_preferences(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> PreferenceRead:
    """Return the caller's preferences, creating the defaults on first access."""

    preference = get_preferences(db, identity.user_id, email_address=identity.email)
    return PreferenceRead.model_validate(preference)


@router.patch("", response_model=PreferenceRead)
def patch_preferences(
    payload: PreferenceUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> PreferenceRead:
    get_preferences(db, identity.user_id, email_address=identity.email)
    preference = update_preferences(db, identity.user_id, payload.partial_updates())
    return PreferenceRead.model_validate(preference)
