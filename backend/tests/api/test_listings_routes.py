"""Tests for the /api/listings and /api/domains endpoints."""

import pytest

from tests.conftest import bearer


LISTING = {
    "domain_name": "example.com",
    "domain_type": "web2",
    "price_amount": "100",
    "duration_days": 30,
    "tags": ["Tech"],
}


@pytest.fixture
def listing(client):
    response = client.post("/api/listings", json=LISTING, headers=bearer("lessor-1"))
    assert response.status_code == 201
    return response.json()


class TestPublish:
    def test_publish(self, listing):
        assert listing["status"] == "active"
        assert listing["lessor_id"] == "lessor-1"
        assert listing["tags"] == ["tech"]

    def test_requires_auth(self, client):
        response = client.post("/api/listings", json=LISTING)
        assert response.status_code == 401

    def test_invalid_terms(self, client):
        response = client.post(
            "/api/listings", json={**LISTING, "price_amount": "0"}, headers=bearer("lessor-1")
        )
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_TERMS"

    def test_not_owner(self, client, listing):
        response = client.post(
            "/api/listings",
            json={**LISTING, "price_amount": "5"},
            headers=bearer("lessee-1"),
        )
        assert response.status_code == 403
        assert response.json()["error"] == "NOT_DOMAIN_OWNER"


class TestBrowse:
    def test_search_is_public(self, client, listing):
        response = client.get("/api/listings", params={"tags": ["tech"], "max_price": "150"})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["listings"][0]["id"] == listing["id"]
        assert data["total_pages"] == 1

    def test_invalid_price_range(self, client):
        response = client.get("/api/listings", params={"min_price": "10", "max_price": "1"})
        assert response.status_code == 400

    def test_get_listing(self, client, listing):
        response = client.get(f"/api/listings/{listing['id']}")
        assert response.status_code == 200
        data = response.json()
        assert data["domain"]["name"] == "example.com"
        assert data["listing"]["views_count"] == 1

    def test_get_unknown(self, client):
        response = client.get("/api/listings/missing")
        assert response.status_code == 404
        assert response.json()["error"] == "LISTING_NOT_FOUND"


class TestChange:
    def test_update_terms(self, client, listing):
        response = client.patch(
            f"/api/listings/{listing['id']}",
            json={"price_amount": "120"},
            headers=bearer("lessor-1"),
        )
        assert response.status_code == 200
        assert response.json()["version"] == listing["version"] + 1

    def test_cancel(self, client, listing):
        response = client.post(f"/api/listings/{listing['id']}/cancel", headers=bearer("lessor-1"))
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        again = client.delete(f"/api/listings/{listing['id']}", headers=bearer("lessor-1"))
        assert again.status_code == 409
        assert again.json()["retryable"] is False

    def test_cancel_by_stranger(self, client, listing):
        response = client.post(f"/api/listings/{listing['id']}/cancel", headers=bearer("lessee-1"))
        assert response.status_code == 403


class TestDomains:
    def test_admin_verifies_domain(self, client, listing):
        response = client.post(
            f"/api/domains/{listing['domain_id']}/verification",
            json={"status": "verified", "method": "dns_txt"},
            headers=bearer("admin-1", role="admin"),
        )
        assert response.status_code == 200
        assert response.json()["verification_status"] == "verified"

    def test_transfer_requires_admin(self, client, listing):
        response = client.post(
            f"/api/domains/{listing['domain_id']}/transfer",
            json={"new_owner_id": "lessee-1"},
            headers=bearer("lessor-1"),
        )
        assert response.status_code == 403

    def test_admin_transfers_domain(self, client, listing):
        response = client.post(
            f"/api/domains/{listing['domain_id']}/transfer",
            json={"new_owner_id": "lessee-1"},
            headers=bearer("admin-1", role="admin"),
        )
        assert response.status_code == 200
        assert response.json()["owner_id"] == "lessee-1"
