# Viewer-state model: per-listing states, permitted actions, edit guard, and the review sub-states.
from __future__ import annotations

import pytest

from rentwise.access import (
    HOME_ROUTE,
    PROFILE_ROUTE,
    Action,
    OwnershipError,
    Principal,
    ReviewState,
    ViewerState,
    can,
    can_create_property,
    can_view_property,
    decide_review_write,
    edit_route_guard,
    ensure_owner,
    permitted_actions,
    review_state,
    viewer_state,
)

LANDLORD_1 = Principal(id=1, email="l1@example.com", role="landlord")
LANDLORD_2 = Principal(id=2, email="l2@example.com", role="landlord")
TENANT = Principal(id=3, email="t@example.com", role="tenant")

LISTING = {"id": 10, "landlord_id": 1, "status": "available"}


@pytest.mark.parametrize(
    "principal,expected",
    [
        (None, ViewerState.PUBLIC),
        (TENANT, ViewerState.TENANT_BROWSING),
        (LANDLORD_2, ViewerState.LANDLORD_BROWSING),
        (LANDLORD_1, ViewerState.OWNER_MANAGING),
    ],
)
def test_viewer_state(principal, expected):
    assert viewer_state(principal, LISTING) is expected


# A tenant whose id happens to equal landlord_id is still not an owner
def test_tenant_with_matching_id_is_not_owner():
    tenant = Principal(id=1, email="x@example.com", role="tenant")
    assert viewer_state(tenant, LISTING) is ViewerState.TENANT_BROWSING
    assert not can(tenant, Action.EDIT_PROPERTY, LISTING)


def test_public_is_read_only():
    actions = permitted_actions(ViewerState.PUBLIC)
    assert actions == {Action.READ_PROPERTY}


def test_only_owner_may_mutate_listing():
    for action in (Action.EDIT_PROPERTY, Action.CHANGE_STATUS, Action.DELETE_PROPERTY):
        assert can(LANDLORD_1, action, LISTING)
        assert not can(LANDLORD_2, action, LISTING)
        assert not can(TENANT, action, LISTING)
        assert not can(None, action, LISTING)


def test_signed_in_users_may_review():
    assert can(TENANT, Action.SUBMIT_REVIEW, LISTING)
    assert can(LANDLORD_2, Action.SUBMIT_REVIEW, LISTING)
    assert not can(None, Action.SUBMIT_REVIEW, LISTING)


# Creating listings is a global landlord capability, independent of the listing viewed
def test_create_property_capability():
    assert can_create_property(LANDLORD_2)
    assert can(LANDLORD_2, Action.CREATE_PROPERTY)
    assert Action.CREATE_PROPERTY in permitted_actions(ViewerState.LANDLORD_BROWSING)
    assert not can_create_property(TENANT)
    assert not can_create_property(None)
    assert Action.CREATE_PROPERTY not in permitted_actions(ViewerState.TENANT_BROWSING)


def test_edit_route_guard():
    assert edit_route_guard(None, LISTING) == HOME_ROUTE
    assert edit_route_guard(TENANT, LISTING) == HOME_ROUTE
    assert edit_route_guard(LANDLORD_2, LISTING) == PROFILE_ROUTE
    assert edit_route_guard(LANDLORD_1, None) == PROFILE_ROUTE
    assert edit_route_guard(LANDLORD_1, LISTING) is None


def test_ensure_owner():
    ensure_owner(LANDLORD_1, LISTING)
    with pytest.raises(OwnershipError):
        ensure_owner(LANDLORD_2, LISTING)
    with pytest.raises(OwnershipError):
        ensure_owner(None, LISTING)


def test_hidden_statuses_visible_to_owner_only():
    rented = dict(LISTING, status="rented")
    assert can_view_property(None, LISTING)
    assert can_view_property(LANDLORD_1, rented)
    assert not can_view_property(LANDLORD_2, rented)
    assert not can_view_property(TENANT, rented)
    assert not can_view_property(LANDLORD_1, None)


def test_review_sub_states():
    existing = {"id": 5, "rating": 4}
    assert review_state(None) is ReviewState.NO_REVIEW
    # Editing without an existing review stays in NO_REVIEW
    assert review_state(None, editing=True) is ReviewState.NO_REVIEW
    assert review_state(existing) is ReviewState.VIEWING
    assert review_state(existing, editing=True) is ReviewState.EDITING


def test_decide_review_write():
    assert decide_review_write(None) == "insert"
    assert decide_review_write({"id": 5}) == "update"
