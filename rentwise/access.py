"""
Viewer state and permitted actions for listings and reviews.

The current principal is always passed in explicitly (from the request
dependency); nothing here reads a process-wide session.

Per-property viewer states:
- PUBLIC: anonymous visitor, read only
- TENANT_BROWSING: signed-in tenant, may also review
- LANDLORD_BROWSING: signed-in landlord on someone else's listing, may review and list new properties
- OWNER_MANAGING: landlord viewing their own listing, may also edit, change status, delete

Review sub-states per (property, principal):
    NO_REVIEW --submit--> VIEWING <--edit/cancel--> EDITING
    VIEWING/EDITING --delete--> NO_REVIEW
"""
from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, FrozenSet, Literal, Optional

# Redirect targets used when an edit route is opened without the right to edit
HOME_ROUTE = "/"
PROFILE_ROUTE = "/profile"


class OwnershipError(PermissionError):
    """Raised when a mutation is attempted on a listing the principal does not own."""


@dataclass(frozen=True)
class Principal:
    id: int
    email: str
    role: str
    full_name: str = ""

    @property
    def is_landlord(self) -> bool:
        return self.role == "landlord"

    @property
    def is_tenant(self) -> bool:
        return self.role == "tenant"


class ViewerState(str, enum.Enum):
    PUBLIC = "public"
    TENANT_BROWSING = "tenant_browsing"
    LANDLORD_BROWSING = "landlord_browsing"
    OWNER_MANAGING = "owner_managing"


class Action(str, enum.Enum):
    READ_PROPERTY = "read_property"
    CREATE_PROPERTY = "create_property"
    EDIT_PROPERTY = "edit_property"
    CHANGE_STATUS = "change_status"
    DELETE_PROPERTY = "delete_property"
    SUBMIT_REVIEW = "submit_review"


class ReviewState(str, enum.Enum):
    NO_REVIEW = "no_review"
    VIEWING = "viewing"
    EDITING = "editing"


_BROWSING = frozenset({Action.READ_PROPERTY, Action.SUBMIT_REVIEW})

PERMITTED_ACTIONS: dict[ViewerState, FrozenSet[Action]] = {
    ViewerState.PUBLIC: frozenset({Action.READ_PROPERTY}),
    ViewerState.TENANT_BROWSING: _BROWSING,
    ViewerState.LANDLORD_BROWSING: _BROWSING | {Action.CREATE_PROPERTY},
    ViewerState.OWNER_MANAGING: _BROWSING | {
        Action.CREATE_PROPERTY,
        Action.EDIT_PROPERTY,
        Action.CHANGE_STATUS,
        Action.DELETE_PROPERTY,
    },
}


def _landlord_id(prop: Any) -> Any:
    if isinstance(prop, Mapping):
        return prop.get("landlord_id")
    return getattr(prop, "landlord_id", None)


def is_owner(principal: Optional[Principal], prop: Any) -> bool:
    if principal is None or prop is None:
        return False
    return principal.is_landlord and _landlord_id(prop) == principal.id


def can_view_property(principal: Optional[Principal], prop: Any) -> bool:
    """Available listings are public; rented or maintenance listings are visible to their landlord only."""
    if prop is None:
        return False
    status = prop.get("status") if isinstance(prop, Mapping) else getattr(prop, "status", None)
    return status == "available" or is_owner(principal, prop)


def viewer_state(principal: Optional[Principal], prop: Any) -> ViewerState:
    if principal is None:
        return ViewerState.PUBLIC
    if principal.is_landlord:
        if is_owner(principal, prop):
            return ViewerState.OWNER_MANAGING
        return ViewerState.LANDLORD_BROWSING
    if principal.is_tenant:
        return ViewerState.TENANT_BROWSING
    # Unknown roles get the anonymous view
    return ViewerState.PUBLIC


def permitted_actions(state: ViewerState) -> FrozenSet[Action]:
    return PERMITTED_ACTIONS[state]


def can(principal: Optional[Principal], action: Action, prop: Any = None) -> bool:
    """Return True if `principal` may perform `action` on `prop` (or globally, when prop is None)."""
    if action is Action.CREATE_PROPERTY:
        return can_create_property(principal)
    return action in permitted_actions(viewer_state(principal, prop))


def can_create_property(principal: Optional[Principal]) -> bool:
    """Landlords may list new properties regardless of which listing they are viewing."""
    return principal is not None and principal.is_landlord


def edit_route_guard(principal: Optional[Principal], prop: Any) -> Optional[str]:
    """
    Decide whether the edit page for `prop` may be shown.

    Returns None when editing is allowed, otherwise the route to redirect to:
    - "/" when signed out or not a landlord
    - "/profile" when the listing is missing or owned by another landlord
    """
    if principal is None or not principal.is_landlord:
        return HOME_ROUTE
    if prop is None or not is_owner(principal, prop):
        return PROFILE_ROUTE
    return None


def ensure_owner(principal: Optional[Principal], prop: Any) -> None:
    """Submit-time ownership check; the session may have changed since the form was loaded."""
    if not is_owner(principal, prop):
        raise OwnershipError("Only the listing's landlord may modify it")


def review_state(existing_review: Any, editing: bool = False) -> ReviewState:
    if existing_review is None:
        return ReviewState.NO_REVIEW
    return ReviewState.EDITING if editing else ReviewState.VIEWING


def decide_review_write(existing_review: Any) -> Literal["insert", "update"]:
    """
    Pick insert vs. update for a review submission.

    `existing_review` must come from a fresh lookup of the principal's review for
    the property, never from state cached on the client.
    """
    return "insert" if existing_review is None else "update"
