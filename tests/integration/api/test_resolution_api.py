from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from dealmatch.database.db import get_db
from dealmatch.main import create_app


@pytest.fixture
def client(session_factory):
    app = create_app()

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_resolve_deal_endpoint(client, make_deal):
    deal = make_deal(company="Acme Inc", contact_name="Jane Doe", contact_email="jane@acme.com")

    response = client.post(f"/api/v1/deals/{deal.id}/resolve")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["company_id"] is not None
    assert body["contact_id"] is not None
    assert body["reason"] is None


def test_resolve_unknown_deal_is_404(client):
    response = client.post("/api/v1/deals/999/resolve")
    assert response.status_code == 404
    assert response.json()["error_code"] == "not_found"


def test_review_lifecycle(client, make_deal, make_company, make_contact):
    deal = make_deal(company="Acme Inc", contact_name="Jane Doe")
    company = make_company("Acme Inc", domain="acme.com")
    contact = make_contact("Jane", "jane@acme.com", company)

    flagged = client.post("/api/v1/reviews", json={"deal_id": deal.id, "reason": "no_email", "company": "Acme Inc"})
    assert flagged.status_code == 201
    review_id = flagged.json()["review_id"]

    again = client.post("/api/v1/reviews", json={"deal_id": deal.id, "reason": "no_email"})
    assert again.json()["review_id"] == review_id

    pending = client.get("/api/v1/reviews/pending").json()
    assert [item["id"] for item in pending] == [review_id]
    assert pending[0]["reason"] == "no_email"

    resolved = client.post(
        f"/api/v1/reviews/{review_id}/resolve",
        json={"company_id": company.id, "contact_id": contact.id, "resolver_id": "admin-1", "notes": "ok"},
    )
    assert resolved.status_code == 200
    assert resolved.json() == {"resolved": True}

    repeat = client.post(
        f"/api/v1/reviews/{review_id}/resolve",
        json={"company_id": company.id, "contact_id": contact.id, "resolver_id": "admin-1"},
    )
    assert repeat.json() == {"resolved": False}

    assert client.get("/api/v1/reviews/pending").json() == []
    listed = client.get("/api/v1/reviews", params={"status": "resolved"}).json()
    assert listed[0]["resolved_by"] == "admin-1"


def test_flagging_resolved_deal_conflicts(client, make_deal, make_company, make_contact):
    company = make_company("Acme Inc", domain="acme.com")
    contact = make_contact("Jane", "jane@acme.com", company)
    deal = make_deal(company="Acme Inc", company_id=company.id, primary_contact_id=contact.id)

    response = client.post("/api/v1/reviews", json={"deal_id": deal.id, "reason": "no_email"})

    assert response.status_code == 409


def test_flag_with_unknown_reason_is_rejected(client, make_deal):
    deal = make_deal(company="Acme Inc")
    response = client.post("/api/v1/reviews", json={"deal_id": deal.id, "reason": "gut_feeling"})
    assert response.status_code == 422


def test_archive_review(client, make_deal):
    deal = make_deal(company="Acme Inc")
    review_id = client.post("/api/v1/reviews", json={"deal_id": deal.id, "reason": "no_email"}).json()["review_id"]

    response = client.post(f"/api/v1/reviews/{review_id}/archive", json={"resolver_id": "admin-1"})

    assert response.json() == {"archived": True}
    assert client.get("/api/v1/reviews", params={"status": "archived"}).json()[0]["id"] == review_id


def test_batch_and_data_quality_endpoints(client, make_deal):
    make_deal(company="Acme Inc", contact_name="Jane Doe", contact_email="jane@acme.com")
    make_deal(company="Acme Inc", contact_name="No Mail")

    before = client.get("/api/v1/resolution/data-quality").json()
    response = client.post("/api/v1/resolution/batch", json={"limit": 50})
    after = client.get("/api/v1/resolution/data-quality").json()

    assert response.status_code == 200
    summary = response.json()
    assert (summary["processed"], summary["succeeded"], summary["flagged"], summary["errors"]) == (2, 1, 1, 0)
    assert before["deals_without_company"] == 2
    assert after["deals_without_company"] == 1
    assert after["pending_reviews"] == 1
