"""
Closure API Tests

Tests verify:
1. Admin-only closure endpoints (JWT role claim)
2. Domain errors map to HTTP status codes
3. Document job is kicked after a successful closure
4. Public audit and download endpoints
5. Internal document-job endpoint requires the internal key
"""
import pytest
from fastapi.testclient import TestClient

from app.auth import create_access_token
from app.database import get_db
from app.main import app
from app.models.db_models import CampaignStatus
from app.routers import scheduler as scheduler_module
from app.services.closure import ClosureRepository


@pytest.fixture
def kicked_jobs(monkeypatch):
    """Capture background document jobs instead of running them."""
    calls = []
    monkeypatch.setattr("app.routers.closure.run_document_job", lambda job_id: calls.append(job_id))
    return calls


@pytest.fixture
def client(session_factory, kicked_jobs):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_access_token("admin_001", "admin@donatutti.org", role="admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers():
    token = create_access_token("user_001", "user@example.com", role="user")
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# CLOSE
# =============================================================================

class TestCloseEndpoint:

    def test_admin_closes_campaign(self, client, admin_headers, seed_campaign, kicked_jobs):
        campaign_id = seed_campaign()

        response = client.post(
            f"/campaigns/{campaign_id}/close",
            json={"closure_type": "manual", "reason": "Organizer requested early closure"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        report = response.json()["report"]
        assert report["campaign_id"] == campaign_id
        assert report["closed_by"] == "admin_001"
        assert report["report_pdf_url"] is None
        assert kicked_jobs == [report["id"]]

    def test_requires_admin(self, client, user_headers, seed_campaign):
        response = client.post(
            f"/campaigns/{seed_campaign()}/close",
            json={"closure_type": "end_date"},
            headers=user_headers,
        )
        assert response.status_code == 403

    def test_requires_token(self, client, seed_campaign):
        response = client.post(f"/campaigns/{seed_campaign()}/close", json={"closure_type": "end_date"})
        assert response.status_code in (401, 403)

    def test_rejects_garbage_token(self, client, seed_campaign):
        response = client.post(
            f"/campaigns/{seed_campaign()}/close",
            json={"closure_type": "end_date"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    def test_short_manual_reason_is_400(self, client, admin_headers, seed_campaign, kicked_jobs):
        response = client.post(
            f"/campaigns/{seed_campaign()}/close",
            json={"closure_type": "manual", "reason": "short"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert kicked_jobs == []

    def test_unknown_closure_type_is_422(self, client, admin_headers, seed_campaign):
        response = client.post(
            f"/campaigns/{seed_campaign()}/close",
            json={"closure_type": "cancelled"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_unknown_campaign_is_404(self, client, admin_headers):
        response = client.post("/campaigns/missing/close", json={"closure_type": "end_date"}, headers=admin_headers)
        assert response.status_code == 404

    def test_draft_campaign_is_409(self, client, admin_headers, seed_campaign):
        response = client.post(
            f"/campaigns/{seed_campaign(status=CampaignStatus.DRAFT)}/close",
            json={"closure_type": "end_date"},
            headers=admin_headers,
        )
        assert response.status_code == 409

    def test_second_closure_is_409(self, client, admin_headers, seed_campaign):
        campaign_id = seed_campaign()
        client.post(f"/campaigns/{campaign_id}/close", json={"closure_type": "end_date"}, headers=admin_headers)

        response = client.post(
            f"/campaigns/{campaign_id}/close", json={"closure_type": "end_date"}, headers=admin_headers,
        )

        assert response.status_code == 409
        assert "already closed" in response.json()["detail"]


# =============================================================================
# READ
# =============================================================================

class TestReadEndpoints:

    def test_closure_report_admin_only(self, client, admin_headers, user_headers, seed_campaign):
        campaign_id = seed_campaign()
        client.post(f"/campaigns/{campaign_id}/close", json={"closure_type": "end_date"}, headers=admin_headers)

        assert client.get(f"/campaigns/{campaign_id}/closure-report", headers=user_headers).status_code == 403

        response = client.get(f"/campaigns/{campaign_id}/closure-report", headers=admin_headers)
        assert response.status_code == 200
        assert set(response.json()["transparency_breakdown"]) == {
            "documentation_score", "activity_score", "goal_progress_score",
            "timeliness_score", "alerts_deduction_score", "bonus_score",
        }

    def test_closure_report_not_found(self, client, admin_headers, seed_campaign):
        response = client.get(f"/campaigns/{seed_campaign()}/closure-report", headers=admin_headers)
        assert response.status_code == 404

    def test_closure_status(self, client, admin_headers, seed_campaign):
        campaign_id = seed_campaign()
        assert client.get(f"/campaigns/{campaign_id}/closure-status").json() == {
            "campaign_id": campaign_id, "closed": False,
        }

        client.post(f"/campaigns/{campaign_id}/close", json={"closure_type": "end_date"}, headers=admin_headers)

        assert client.get(f"/campaigns/{campaign_id}/closure-status").json()["closed"] is True

    def test_public_audit(self, client, admin_headers, seed_campaign):
        campaign_id = seed_campaign(organizer_name="Fundacion Sonrisas")
        client.post(
            f"/campaigns/{campaign_id}/close",
            json={"closure_type": "manual", "reason": "Se cumplio el objetivo social"},
            headers=admin_headers,
        )

        response = client.get(f"/campaigns/{campaign_id}/audit")

        assert response.status_code == 200
        body = response.json()
        assert body["organizer_name"] == "Fundacion Sonrisas"
        assert "closure_reason" not in body
        assert "closed_by" not in body

    def test_download_pending_then_redirect(self, db, client, admin_headers, seed_campaign):
        campaign_id = seed_campaign()
        client.post(f"/campaigns/{campaign_id}/close", json={"closure_type": "end_date"}, headers=admin_headers)

        pending = client.get(f"/campaigns/{campaign_id}/audit/download", follow_redirects=False)
        assert pending.status_code == 404
        assert "still being generated" in pending.json()["detail"]

        url = f"https://dona-tutti-files.s3.amazonaws.com/audits/{campaign_id}/audit-report-1.txt"
        ClosureRepository(db).update_report_document(campaign_id, url, "d" * 64)
        db.commit()

        ready = client.get(f"/campaigns/{campaign_id}/audit/download", follow_redirects=False)
        assert ready.status_code == 302
        assert ready.headers["location"] == url


# =============================================================================
# INTERNAL
# =============================================================================

class TestInternalEndpoints:

    def test_requires_internal_key(self, client):
        response = client.post("/internal/document-jobs/run", headers={"x-internal-key": "wrong"})
        assert response.status_code == 403

    def test_runs_due_jobs(self, client, monkeypatch):
        class StubRunner:
            def __init__(self, db):
                pass

            def run_due_jobs(self, limit=50):
                return {"task": "closure_document_jobs", "due": 0, "succeeded": 0, "failed": 0, "skipped": 0}

        monkeypatch.setattr(scheduler_module, "DocumentJobRunner", StubRunner)

        response = client.post(
            "/internal/document-jobs/run",
            headers={"x-internal-key": scheduler_module.INTERNAL_API_KEY},
        )

        assert response.status_code == 200
        assert response.json()["task"] == "closure_document_jobs"


class TestHealth:

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"
