# Review API test suite: one review per user and property, edit/delete flow, panel state, and failure handling.
from __future__ import annotations

from typing import Tuple

from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rentwise.db import SessionLocal
from rentwise import models


# Helper: create a user and return (access_token, signup JSON)
def signup(client: TestClient, email: str, role: str = "tenant", full_name: str = "Test User") -> Tuple[str, dict]:
    r = client.post(
        "/auth/signup",
        json={"email": email, "password": "changeme123", "role": role, "full_name": full_name},
    )
    assert r.status_code == 201, r.text
    data = r.json()
    return data["access_token"], data


# Convenience header for authenticated requests
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# Helper: create a property owned by the authenticated landlord
def create_property(client: TestClient, token: str, title: str = "Review Place") -> dict:
    r = client.post(
        "/api/v1/properties",
        headers=auth_headers(token),
        json={
            "title": title,
            "description": "Two bedroom flat",
            "address": "1 Test Way",
            "location": "Crystal City",
            "price": 2000,
        },
    )
    assert r.status_code == 201, r.text
    return r.json()["property"]


def submit_review(client: TestClient, token: str, property_id: int, rating: int, comment: str):
    return client.put(
        f"/api/v1/properties/{property_id}/reviews/me",
        headers=auth_headers(token),
        json={"rating": rating, "comment": comment},
    )


def count_reviews(property_id: int, user_id: int) -> int:
    db = SessionLocal()
    try:
        return (
            db.query(models.Review)
            .filter(models.Review.property_id == property_id, models.Review.user_id == user_id)
            .count()
        )
    finally:
        db.close()


# First submit inserts; a second submit for the same user and property updates that row
def test_submit_twice_updates_single_review(client: TestClient):
    landlord_token, _ = signup(client, "host@example.com", "landlord")
    prop = create_property(client, landlord_token)
    tenant_token, tenant = signup(client, "guest@example.com", "tenant", full_name="Terry Tenant")
    tenant_id = tenant["user"]["id"]

    r1 = submit_review(client, tenant_token, prop["id"], 4, "x")
    assert r1.status_code == 200, r1.text
    body1 = r1.json()
    assert body1["mode"] == "created"
    assert body1["notification"] == {"level": "success", "text": "Review submitted successfully!"}
    assert body1["section"]["review_state"] == "viewing"
    assert body1["section"]["my_review"]["rating"] == 4
    assert body1["section"]["my_review"]["reviewer_name"] == "Terry Tenant"
    assert count_reviews(prop["id"], tenant_id) == 1

    r2 = submit_review(client, tenant_token, prop["id"], 2, "changed my mind")
    assert r2.status_code == 200, r2.text
    body2 = r2.json()
    assert body2["mode"] == "updated"
    assert body2["notification"]["text"] == "Review updated successfully!"
    assert body2["section"]["my_review"]["id"] == body1["section"]["my_review"]["id"]
    assert body2["section"]["my_review"]["comment"] == "changed my mind"
    assert body2["section"]["count"] == 1
    assert count_reviews(prop["id"], tenant_id) == 1

    detail = client.get(f"/api/v1/properties/{prop['id']}").json()
    assert detail["property"]["reviews_count"] == 1


def test_review_section_state_and_average(client: TestClient):
    landlord_token, _ = signup(client, "host@example.com", "landlord")
    prop = create_property(client, landlord_token)
    t1, _ = signup(client, "a@example.com", "tenant")
    t2, _ = signup(client, "b@example.com", "tenant")
    t3, _ = signup(client, "c@example.com", "tenant")

    url = f"/api/v1/properties/{prop['id']}/reviews"
    empty = client.get(url).json()
    assert empty["count"] == 0
    assert empty["average_rating"] is None
    assert empty["review_state"] is None
    assert empty["can_review"] is False

    assert client.get(url, headers=auth_headers(t1)).json()["review_state"] == "no_review"

    submit_review(client, t1, prop["id"], 5, "great")
    submit_review(client, t2, prop["id"], 4, "good")
    submit_review(client, t3, prop["id"], 4, "fine")

    section = client.get(url, headers=auth_headers(t1)).json()
    assert section["count"] == 3
    assert section["average_rating"] == 4.3
    assert section["review_state"] == "viewing"
    assert section["can_review"] is True

    editing = client.get(url, params={"editing": "true"}, headers=auth_headers(t1)).json()
    assert editing["review_state"] == "editing"


def test_delete_review_returns_to_no_review(client: TestClient):
    landlord_token, _ = signup(client, "host@example.com", "landlord")
    prop = create_property(client, landlord_token)
    tenant_token, tenant = signup(client, "guest@example.com", "tenant")
    submit_review(client, tenant_token, prop["id"], 3, "ok")

    r = client.delete(f"/api/v1/properties/{prop['id']}/reviews/me", headers=auth_headers(tenant_token))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["mode"] == "deleted"
    assert body["notification"]["text"] == "Review deleted successfully!"
    assert body["section"]["review_state"] == "no_review"
    assert body["section"]["my_review"] is None
    assert count_reviews(prop["id"], tenant["user"]["id"]) == 0
    assert client.get(f"/api/v1/properties/{prop['id']}").json()["property"]["reviews_count"] == 0

    # Nothing left to delete
    r2 = client.delete(f"/api/v1/properties/{prop['id']}/reviews/me", headers=auth_headers(tenant_token))
    assert r2.status_code == 404

    # After deletion the next submit inserts again
    r3 = submit_review(client, tenant_token, prop["id"], 5, "back again")
    assert r3.json()["mode"] == "created"


def test_anonymous_cannot_review(client: TestClient):
    landlord_token, _ = signup(client, "host@example.com", "landlord")
    prop = create_property(client, landlord_token)
    r = client.put(f"/api/v1/properties/{prop['id']}/reviews/me", json={"rating": 5, "comment": "hi"})
    assert r.status_code == 401


def test_review_validation(client: TestClient):
    landlord_token, _ = signup(client, "host@example.com", "landlord")
    prop = create_property(client, landlord_token)
    tenant_token, _ = signup(client, "guest@example.com", "tenant")
    assert submit_review(client, tenant_token, prop["id"], 0, "bad").status_code == 422
    assert submit_review(client, tenant_token, prop["id"], 6, "bad").status_code == 422
    assert submit_review(client, tenant_token, prop["id"], 3, "   ").status_code == 422


def test_cannot_review_hidden_property(client: TestClient):
    landlord_token, _ = signup(client, "host@example.com", "landlord")
    prop = create_property(client, landlord_token)
    client.patch(f"/api/v1/properties/{prop['id']}", headers=auth_headers(landlord_token), json={"status": "rented"})
    tenant_token, _ = signup(client, "guest@example.com", "tenant")
    assert submit_review(client, tenant_token, prop["id"], 5, "hi").status_code == 404


# Reviewer name is a snapshot taken when the review is first written
def test_reviewer_name_snapshot_survives_profile_edit(client: TestClient):
    landlord_token, _ = signup(client, "host@example.com", "landlord")
    prop = create_property(client, landlord_token)
    tenant_token, _ = signup(client, "guest@example.com", "tenant", full_name="Old Name")
    submit_review(client, tenant_token, prop["id"], 5, "lovely")

    r = client.patch("/api/v1/profile", headers=auth_headers(tenant_token), json={"full_name": "New Name"})
    assert r.status_code == 200, r.text

    section = client.get(f"/api/v1/properties/{prop['id']}/reviews").json()
    assert section["reviews"][0]["reviewer_name"] == "Old Name"


# Backend failure: no review row is committed and the panel stays in its prior state
def test_failed_submit_leaves_no_review(client: TestClient, monkeypatch):
    landlord_token, _ = signup(client, "host@example.com", "landlord")
    prop = create_property(client, landlord_token)
    tenant_token, tenant = signup(client, "guest@example.com", "tenant")

    def boom(self):
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(Session, "commit", boom)
    r = submit_review(client, tenant_token, prop["id"], 4, "x")
    monkeypatch.undo()

    assert r.status_code == 500
    assert r.json()["detail"] == {"level": "error", "text": "Failed to submit review"}
    assert count_reviews(prop["id"], tenant["user"]["id"]) == 0
    section = client.get(f"/api/v1/properties/{prop['id']}/reviews", headers=auth_headers(tenant_token)).json()
    assert section["review_state"] == "no_review"
    assert client.get(f"/api/v1/properties/{prop['id']}").json()["property"]["reviews_count"] == 0


# Averages are rounded half-up to one decimal
def test_average_rating_rounds_half_up(client: TestClient):
    landlord_token, _ = signup(client, "host@example.com", "landlord")
    prop = create_property(client, landlord_token)
    for i, rating in enumerate([1, 2, 3, 3]):
        token, _ = signup(client, f"t{i}@example.com", "tenant")
        assert submit_review(client, token, prop["id"], rating, "ok").status_code == 200

    section = client.get(f"/api/v1/properties/{prop['id']}/reviews").json()
    assert section["count"] == 4
    assert section["average_rating"] == 2.3


# Authors keep control of their review after the listing leaves the public catalogue
def test_author_manages_review_after_listing_is_rented(client: TestClient):
    landlord_token, _ = signup(client, "host@example.com", "landlord")
    prop = create_property(client, landlord_token)
    tenant_token, tenant = signup(client, "guest@example.com", "tenant")
    other_token, _ = signup(client, "other@example.com", "tenant")
    submit_review(client, tenant_token, prop["id"], 4, "nice")

    r = client.patch(f"/api/v1/properties/{prop['id']}", headers=auth_headers(landlord_token), json={"status": "rented"})
    assert r.status_code == 200, r.text

    # A new review on the hidden listing is refused
    assert submit_review(client, other_token, prop["id"], 5, "hi").status_code == 404

    updated = submit_review(client, tenant_token, prop["id"], 2, "went downhill")
    assert updated.status_code == 200, updated.text
    assert updated.json()["mode"] == "updated"

    deleted = client.delete(f"/api/v1/properties/{prop['id']}/reviews/me", headers=auth_headers(tenant_token))
    assert deleted.status_code == 200, deleted.text
    assert deleted.json()["mode"] == "deleted"
    assert deleted.json()["section"]["review_state"] == "no_review"
    assert count_reviews(prop["id"], tenant["user"]["id"]) == 0

    # Without a review there is nothing left to rewrite on the hidden listing
    assert submit_review(client, tenant_token, prop["id"], 5, "again").status_code == 404


def test_review_on_missing_property_is_404(client: TestClient):
    tenant_token, _ = signup(client, "guest@example.com", "tenant")
    assert submit_review(client, tenant_token, 999, 5, "hi").status_code == 404
    r = client.delete("/api/v1/properties/999/reviews/me", headers=auth_headers(tenant_token))
    assert r.status_code == 404


# Backend failure on delete: the review and the listing's count survive
def test_failed_delete_keeps_review(client: TestClient, monkeypatch):
    landlord_token, _ = signup(client, "host@example.com", "landlord")
    prop = create_property(client, landlord_token)
    tenant_token, tenant = signup(client, "guest@example.com", "tenant")
    submit_review(client, tenant_token, prop["id"], 4, "x")

    def boom(self):
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(Session, "commit", boom)
    r = client.delete(f"/api/v1/properties/{prop['id']}/reviews/me", headers=auth_headers(tenant_token))
    monkeypatch.undo()

    assert r.status_code == 500
    assert r.json()["detail"] == {"level": "error", "text": "Failed to delete review"}
    assert count_reviews(prop["id"], tenant["user"]["id"]) == 1
    section = client.get(f"/api/v1/properties/{prop['id']}/reviews", headers=auth_headers(tenant_token)).json()
    assert section["review_state"] == "viewing"
    assert client.get(f"/api/v1/properties/{prop['id']}").json()["property"]["reviews_count"] == 1
