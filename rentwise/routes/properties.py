# Property listing endpoints.
# Anyone can browse available listings; landlords create listings and manage only their own.
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..access import (
    OwnershipError,
    Principal,
    can_create_property,
    can_view_property,
    edit_route_guard,
    ensure_owner,
    permitted_actions,
    viewer_state,
)
from ..db import get_db
from .. import filters, models, schemas
from ..notifications import backend_failure, notify_success
from ..rate_limit import rate_limit
from .auth import get_current_principal, get_current_principal_optional, require_landlord

router = APIRouter()
logger = logging.getLogger("rentwise.properties")

EMPTY_FILTERED_MESSAGE = "Try adjusting your search terms or filters"
EMPTY_MESSAGE = "Check back later for new listings"


def _newest_first(q):
    return q.order_by(models.Property.created_at.desc(), models.Property.id.desc())


def _get_property_or_404(db: Session, property_id: int) -> models.Property:
    prop = db.get(models.Property, property_id)
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return prop


def _load_owned_property(db: Session, property_id: int, principal: Principal) -> models.Property:
    """Fetch a listing and re-check ownership at submit time (403 if not the owner)."""
    prop = _get_property_or_404(db, property_id)
    try:
        ensure_owner(principal, prop)
    except OwnershipError as exc:
        logger.info(
            "properties.ownership_denied",
            extra={"property_id": property_id, "user_id": principal.id, "role": principal.role},
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return prop


@router.get("/properties", response_model=schemas.PropertyListResponse)
def list_properties(
    search: str = Query("", max_length=200),
    min_price: Optional[str] = Query(None),
    max_price: Optional[str] = Query(None),
    bedrooms: Optional[str] = Query(None),
    furnished: bool = Query(False),
    amenities: Optional[List[str]] = Query(None),
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal_optional),
) -> schemas.PropertyListResponse:
    """
    Public listing page.

    Reads available properties newest first, then applies the search box and
    filter panel in memory. Numeric filters that do not parse are ignored.
    """
    rows = _newest_first(
        db.query(models.Property).filter(models.Property.status == "available")
    ).all()

    query = filters.PropertyQuery(
        search_term=search,
        min_price=min_price,
        max_price=max_price,
        bedrooms=bedrooms,
        furnished=furnished,
        amenities=tuple(amenities or ()),
    )
    items = filters.filter_properties(rows, query)
    active = filters.query_is_active(query)

    empty_message = None
    if not items:
        empty_message = EMPTY_FILTERED_MESSAGE if active else EMPTY_MESSAGE

    logger.info(
        "properties.list",
        extra={"total": len(rows), "count": len(items), "filtered": active},
    )
    return schemas.PropertyListResponse(
        items=[schemas.PropertyRead.model_validate(p) for p in items],
        total=len(rows),
        filtered=active,
        can_create_property=can_create_property(principal),
        empty_message=empty_message,
        amenity_options=list(filters.COMMON_AMENITIES),
    )


@router.get("/properties/mine", response_model=List[schemas.PropertyRead])
def list_my_properties(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_landlord),
) -> List[models.Property]:
    """Landlord dashboard: every listing the caller owns, in any status, newest first."""
    return _newest_first(
        db.query(models.Property).filter(models.Property.landlord_id == principal.id)
    ).all()


@router.get("/properties/{property_id}", response_model=schemas.PropertyDetailResponse)
def get_property(
    property_id: int,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal_optional),
) -> schemas.PropertyDetailResponse:
    """
    Property detail page with the caller's viewer state and permitted actions.

    Listings that are rented or under maintenance are only visible to their landlord.
    """
    prop = _get_property_or_404(db, property_id)
    if not can_view_property(principal, prop):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

    state = viewer_state(principal, prop)
    return schemas.PropertyDetailResponse(
        property=schemas.PropertyRead.model_validate(prop),
        viewer_state=state.value,
        permitted_actions=sorted(a.value for a in permitted_actions(state)),
    )


@router.get(
    "/properties/{property_id}/edit",
    response_model=schemas.PropertyRead,
    responses={303: {"description": "Redirect when the caller may not edit this listing"}},
)
def load_edit_form(
    property_id: int,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal_optional),
):
    """
    Guarded load of the edit form.

    The guard runs before any listing field is returned: anonymous callers and
    tenants are sent to "/", landlords who do not own the listing to "/profile".
    """
    prop = db.get(models.Property, property_id) if principal is not None and principal.is_landlord else None
    target = edit_route_guard(principal, prop)
    if target is not None:
        logger.info(
            "properties.edit_redirect",
            extra={
                "property_id": property_id,
                "user_id": principal.id if principal else None,
                "redirect": target,
            },
        )
        return RedirectResponse(url=target, status_code=status.HTTP_303_SEE_OTHER)
    return prop


@router.post(
    "/properties",
    response_model=schemas.PropertyMutationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("write"))],
)
def create_property(
    payload: schemas.PropertyCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_landlord),
) -> schemas.PropertyMutationResponse:
    """
    Create a listing owned by the authenticated landlord.

    The landlord's current name, email and phone are copied onto the listing;
    later profile edits do not change them.
    """
    profile = db.get(models.Profile, principal.id)
    obj = models.Property(
        **payload.model_dump(),
        landlord_id=principal.id,
        landlord_name=profile.full_name,
        landlord_email=principal.email,
        landlord_phone=profile.phone or "",
        status="available",
        reviews_count=0,
    )
    try:
        db.add(obj)
        db.commit()
        db.refresh(obj)
    except SQLAlchemyError as exc:
        backend_failure(db, exc, "Failed to create property listing", event="properties.create")

    logger.info("properties.created", extra={"property_id": obj.id, "user_id": principal.id})
    return schemas.PropertyMutationResponse(
        property=schemas.PropertyRead.model_validate(obj),
        notification=notify_success("Property listed successfully!"),
    )


@router.patch(
    "/properties/{property_id}",
    response_model=schemas.PropertyMutationResponse,
    dependencies=[Depends(rate_limit("write"))],
)
def update_property(
    property_id: int,
    payload: schemas.PropertyUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> schemas.PropertyMutationResponse:
    """Apply the edit form (including status changes); ownership is re-checked here."""
    prop = _load_owned_property(db, property_id, principal)

    changes = payload.model_dump(exclude_unset=True)
    for name, value in changes.items():
        if value is None:
            # Explicit nulls would violate NOT NULL columns; treat them as "unchanged"
            continue
        setattr(prop, name, value)

    try:
        db.add(prop)
        db.commit()
    except SQLAlchemyError as exc:
        backend_failure(db, exc, "Failed to update property listing", event="properties.update")

    # Re-read the committed row rather than echoing the payload
    db.refresh(prop)
    logger.info(
        "properties.updated",
        extra={"property_id": prop.id, "user_id": principal.id, "fields": sorted(changes)},
    )
    return schemas.PropertyMutationResponse(
        property=schemas.PropertyRead.model_validate(prop),
        notification=notify_success("Property updated successfully!"),
    )


@router.delete(
    "/properties/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limit("write"))],
)
def delete_property(
    property_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> Response:
    """Remove a listing and its reviews. Owner only."""
    prop = _load_owned_property(db, property_id, principal)
    try:
        db.delete(prop)
        db.commit()
    except SQLAlchemyError as exc:
        backend_failure(db, exc, "Failed to delete property listing", event="properties.delete")

    logger.info("properties.deleted", extra={"property_id": property_id, "user_id": principal.id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
