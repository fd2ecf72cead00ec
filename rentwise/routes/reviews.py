# Review endpoints for a listing: read the review panel, write or rewrite the caller's review, delete it.
# Each user has at most one review per property; the stored row, not client state, decides insert vs. update.
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..access import Action, Principal, can, can_view_property, decide_review_write, review_state
from ..db import get_db
from .. import models, schemas
from ..locks import redis_try_lock, review_lock_key
from ..notifications import backend_failure, notify_error, notify_success
from ..rate_limit import rate_limit
from .auth import get_current_principal, get_current_principal_optional

router = APIRouter()
logger = logging.getLogger("rentwise.reviews")


def _get_property_or_404(db: Session, property_id: int) -> models.Property:
    prop = db.get(models.Property, property_id)
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return prop


def _visible_property_or_404(db: Session, property_id: int, principal: Optional[Principal]) -> models.Property:
    prop = db.get(models.Property, property_id)
    if not can_view_property(principal, prop):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return prop


def find_user_review(db: Session, property_id: int, user_id: int) -> Optional[models.Review]:
    return (
        db.query(models.Review)
        .filter(models.Review.property_id == property_id, models.Review.user_id == user_id)
        .first()
    )


def average_rating(reviews: List[models.Review]) -> Optional[float]:
    if not reviews:
        return None
    # Half-up to one decimal: 2.25 shows as 2.3
    avg = Decimal(str(sum(r.rating for r in reviews) / len(reviews)))
    return float(avg.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def build_review_section(
    db: Session,
    prop: models.Property,
    principal: Optional[Principal],
    editing: bool = False,
) -> schemas.ReviewSection:
    """Read the panel state for `principal`: every review newest first, their own review, and its sub-state."""
    rows = (
        db.query(models.Review)
        .filter(models.Review.property_id == prop.id)
        .order_by(models.Review.created_at.desc(), models.Review.id.desc())
        .all()
    )
    mine = None
    state = None
    if principal is not None:
        mine = next((r for r in rows if r.user_id == principal.id), None)
        state = review_state(mine, editing=editing).value

    return schemas.ReviewSection(
        property_id=prop.id,
        reviews=[schemas.ReviewRead.model_validate(r) for r in rows],
        count=len(rows),
        average_rating=average_rating(rows),
        my_review=schemas.ReviewRead.model_validate(mine) if mine is not None else None,
        review_state=state,
        can_review=can(principal, Action.SUBMIT_REVIEW, prop),
    )


@router.get("/properties/{property_id}/reviews", response_model=schemas.ReviewSection)
def get_review_section(
    property_id: int,
    editing: bool = Query(False),
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal_optional),
) -> schemas.ReviewSection:
    """
    Review panel for a listing.

    `editing=true` asks for the edit form of the caller's existing review; it
    is ignored when the caller has not reviewed the listing yet.
    """
    prop = _visible_property_or_404(db, property_id, principal)
    return build_review_section(db, prop, principal, editing=editing)


@router.put(
    "/properties/{property_id}/reviews/me",
    response_model=schemas.ReviewMutationResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def submit_review(
    property_id: int,
    payload: schemas.ReviewSubmit,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> schemas.ReviewMutationResponse:
    """
    Write the caller's review for a listing.

    Looks up the caller's existing review first: none -> insert a new row,
    otherwise update that row in place. A second submission never creates a
    duplicate. Listings that are rented or under maintenance take no new
    reviews, but an author may still rewrite the review they already left.
    """
    prop = _get_property_or_404(db, property_id)
    if not can_view_property(principal, prop) and find_user_review(db, property_id, principal.id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    if not can(principal, Action.SUBMIT_REVIEW, prop):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to review this property")

    with redis_try_lock(review_lock_key(property_id, principal.id)) as locked:
        if not locked:
            # Same user is already submitting a review for this listing
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"error": "busy", "retry_after": 1},
            )

        existing = find_user_review(db, property_id, principal.id)
        write = decide_review_write(existing)
        try:
            if write == "insert":
                profile = db.get(models.Profile, principal.id)
                db.add(
                    models.Review(
                        property_id=property_id,
                        user_id=principal.id,
                        rating=payload.rating,
                        comment=payload.comment,
                        reviewer_name=profile.full_name,
                    )
                )
                db.query(models.Property).filter(models.Property.id == property_id).update(
                    {models.Property.reviews_count: models.Property.reviews_count + 1},
                    synchronize_session=False,
                )
            else:
                existing.rating = payload.rating
                existing.comment = payload.comment
                db.add(existing)
            db.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent insert for the same (property, user)
            db.rollback()
            logger.warning(
                "reviews.duplicate",
                extra={"property_id": property_id, "user_id": principal.id},
            )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=notify_error("You have already reviewed this property").model_dump(),
            ) from exc
        except SQLAlchemyError as exc:
            backend_failure(db, exc, "Failed to submit review", event="reviews.submit")

    logger.info(
        "reviews.submitted",
        extra={"property_id": property_id, "user_id": principal.id, "write": write, "rating": payload.rating},
    )
    db.refresh(prop)
    if write == "insert":
        mode, text = "created", "Review submitted successfully!"
    else:
        mode, text = "updated", "Review updated successfully!"
    return schemas.ReviewMutationResponse(
        mode=mode,
        notification=notify_success(text),
        section=build_review_section(db, prop, principal),
    )


@router.delete(
    "/properties/{property_id}/reviews/me",
    response_model=schemas.ReviewMutationResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def delete_review(
    property_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> schemas.ReviewMutationResponse:
    """
    Delete the caller's review, returning the panel to the no-review state.

    Works whatever the listing status is: authors can always withdraw their review.
    """
    prop = _get_property_or_404(db, property_id)
    existing = find_user_review(db, property_id, principal.id)
    if existing is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")

    try:
        db.delete(existing)
        db.query(models.Property).filter(models.Property.id == property_id).update(
            {models.Property.reviews_count: models.Property.reviews_count - 1},
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError as exc:
        backend_failure(db, exc, "Failed to delete review", event="reviews.delete")

    logger.info("reviews.deleted", extra={"property_id": property_id, "user_id": principal.id})
    db.refresh(prop)
    return schemas.ReviewMutationResponse(
        mode="deleted",
        notification=notify_success("Review deleted successfully!"),
        section=build_review_section(db, prop, principal),
    )
