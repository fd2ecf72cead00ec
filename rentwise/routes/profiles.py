# Profile settings for the signed-in user.
# Listing and review snapshots (landlord_name, reviewer_name, ...) are intentionally left untouched on edit.
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..access import Principal
from ..db import get_db
from .. import models, schemas
from ..notifications import backend_failure, notify_success
from ..rate_limit import rate_limit
from .auth import get_current_principal

router = APIRouter()
logger = logging.getLogger("rentwise.profiles")


def _own_profile(db: Session, principal: Principal) -> models.Profile:
    profile = db.get(models.Profile, principal.id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


@router.get("/profile", response_model=schemas.ProfileRead)
def get_profile(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> models.Profile:
    return _own_profile(db, principal)


@router.patch(
    "/profile",
    response_model=schemas.ProfileMutationResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def update_profile(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> schemas.ProfileMutationResponse:
    profile = _own_profile(db, principal)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for name, value in changes.items():
        setattr(profile, name, value)

    try:
        db.add(profile)
        db.commit()
    except SQLAlchemyError as exc:
        backend_failure(db, exc, "Failed to update profile", event="profiles.update")

    db.refresh(profile)
    logger.info("profiles.updated", extra={"user_id": principal.id, "fields": sorted(changes)})
    return schemas.ProfileMutationResponse(
        profile=schemas.ProfileRead.model_validate(profile),
        notification=notify_success("Profile updated successfully!"),
    )
