"""Integration tests for the seller onboarding API

Tests the complete workflow over HTTP:
- Application submission (multipart, documents to storage)
- Applicant status/profile views
- Admin listing, verification decisions and document downloads
- Error responses (401/403/404/409/400)
"""

import pytest
from fastapi.testclient import TestClient

from models.seller import Seller
from models.user import User

APPLY_URL = "/api/v1/sellers/apply"

FORM = {
    "businessName": "Acme Supplies",
    "businessType": "retail",
    "contactName": "Sam Lee",
    "email": "owner@acme-supplies.com",
    "city": "Springfield",
    "zip": "12345",
    "categories": '["electronics"]',
}


def pdf(name: str = "permit.pdf"):
    return ("documents", (name, b"%PDF-1.4\ntest content\n", "application/pdf"))


class TestApply:

    def test_requires_authentication(self, client: TestClient, db_session):
        response = client.post(APPLY_URL, data=FORM)

        assert response.status_code == 401
        assert response.json()["success"] is False
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, client: TestClient, db_session):
        response = client.post(APPLY_URL, data=FORM, headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == 401

    def test_submit_application(self, client: TestClient, applicant_headers, applicant_user, db_session):
        response = client.post(APPLY_URL, data=FORM, files=[pdf()], headers=applicant_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "pending"
        assert body["failed_uploads"] == []
        data = body["data"]
        assert data["business_name"] == "Acme Supplies"
        assert data["categories"] == ["electronics"]
        assert data["location"]["zip"] == "12345"
        assert len(data["documents"]) == 1
        assert data["documents_info"][0]["storage"] == "Cloud Storage"
        assert data["documents_info"][0]["filename"] == "permit.pdf"

        db_session.expire_all()
        user = db_session.query(User).filter_by(clerk_id="user_applicant").one()
        assert user.role == "seller_pending"

    def test_missing_required_fields(self, client: TestClient, applicant_headers, db_session):
        form = dict(FORM, businessName="")
        response = client.post(APPLY_URL, data=form, headers=applicant_headers)

        assert response.status_code == 400
        assert response.json()["errors"] == ["businessName is required"]

    def test_invalid_document_type(self, client: TestClient, applicant_headers, db_session):
        files = [("documents", ("prices.csv", b"sku,qty", "text/csv"))]
        response = client.post(APPLY_URL, data=FORM, files=files, headers=applicant_headers)

        assert response.status_code == 400
        assert db_session.query(Seller).count() == 0

    def test_pending_application_conflict(self, client: TestClient, applicant_headers, make_seller):
        make_seller(email="owner@acme-supplies.com", status="pending")

        response = client.post(APPLY_URL, data=FORM, headers=applicant_headers)

        assert response.status_code == 409
        assert response.json()["status"] == "pending"

    def test_reapply_after_rejection(self, client: TestClient, applicant_headers, make_seller):
        rejected = make_seller(email="owner@acme-supplies.com", status="rejected", rejection_reason="missing tax id")

        response = client.post(APPLY_URL, data=FORM, files=[pdf("tax-id.pdf")], headers=applicant_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == str(rejected.id)
        assert data["status"] == "pending"
        assert data["rejection_reason"] is None


class TestApplicantViews:

    def test_status_without_application(self, client: TestClient, applicant_headers):
        response = client.get("/api/v1/sellers/application/status", headers=applicant_headers)

        assert response.status_code == 404
        assert response.json()["has_applied"] is False

    def test_status_after_rejection(self, client: TestClient, applicant_headers, make_seller):
        make_seller(email="owner@acme-supplies.com", status="rejected", rejection_reason="blurry permit")

        response = client.get("/api/v1/sellers/application/status", headers=applicant_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["has_applied"] is True
        assert body["status"] == "rejected"
        assert body["rejection_reason"] == "blurry permit"

    def test_profile_forbidden_for_customer(self, client: TestClient, applicant_headers, make_seller):
        make_seller(email="owner@acme-supplies.com")
        response = client.get("/api/v1/sellers/profile", headers=applicant_headers)
        assert response.status_code == 403

    def test_profile_for_pending_seller(self, client: TestClient, make_user, make_seller, headers_for):
        make_user("user_pending", "pending@shop.com", role="seller_pending")
        make_seller(email="pending@shop.com")

        response = client.get("/api/v1/sellers/profile", headers=headers_for("user_pending", "pending@shop.com"))

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "pending@shop.com"


class TestAdminListing:

    def test_list_requires_admin(self, client: TestClient, applicant_headers):
        response = client.get("/api/v1/sellers", headers=applicant_headers)

        assert response.status_code == 403
        assert response.json()["message"] == "Access denied. Admin privileges required."

    def test_list_with_filters(self, client: TestClient, admin_headers, make_seller):
        make_seller(email="a@shop.com", business_name="Alpha Gear")
        make_seller(email="b@shop.com", business_name="Beta Books", status="approved")

        response = client.get("/api/v1/sellers", params={"status": "pending"}, headers=admin_headers)
        assert [s["email"] for s in response.json()["data"]] == ["a@shop.com"]

        response = client.get("/api/v1/sellers", params={"search": "beta"}, headers=admin_headers)
        assert [s["email"] for s in response.json()["data"]] == ["b@shop.com"]

    def test_invalid_status_filter(self, client: TestClient, admin_headers):
        response = client.get("/api/v1/sellers", params={"status": "verified"}, headers=admin_headers)
        assert response.status_code == 400

    def test_pending_verifications(self, client: TestClient, admin_headers, make_seller):
        make_seller(email="a@shop.com")
        make_seller(email="b@shop.com", status="rejected", rejection_reason="x")

        response = client.get("/api/v1/sellers/verification/pending", headers=admin_headers)

        assert response.status_code == 200
        assert [s["email"] for s in response.json()["data"]] == ["a@shop.com"]


class TestVerification:

    @pytest.fixture
    def pending(self, make_seller, make_user):
        make_user("user_applicant", "owner@acme-supplies.com", role="seller_pending")
        return make_seller(email="owner@acme-supplies.com", clerk_id="user_applicant")

    def test_approve(self, client: TestClient, admin_headers, pending, db_session):
        response = client.patch(
            f"/api/v1/sellers/{pending.id}/verification",
            json={"status": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "approved"
        assert data["verification_date"] is not None
        assert data["rejection_reason"] is None

        db_session.expire_all()
        assert db_session.query(User).filter_by(clerk_id="user_applicant").one().role == "seller"

    def test_reject(self, client: TestClient, admin_headers, pending, db_session):
        response = client.patch(
            f"/api/v1/sellers/{pending.id}/verification",
            json={"status": "rejected", "notes": "missing tax id"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["rejection_reason"] == "missing tax id"
        db_session.expire_all()
        assert db_session.query(User).filter_by(clerk_id="user_applicant").one().role == "customer"

    def test_non_admin_cannot_verify(self, client: TestClient, pending, headers_for, db_session):
        before = pending.to_dict()

        response = client.patch(
            f"/api/v1/sellers/{pending.id}/verification",
            json={"status": "approved"},
            headers=headers_for("user_applicant", "owner@acme-supplies.com"),
        )

        assert response.status_code == 403
        db_session.expire_all()
        assert db_session.get(Seller, pending.id).to_dict() == before

    def test_invalid_status(self, client: TestClient, admin_headers, pending):
        response = client.patch(
            f"/api/v1/sellers/{pending.id}/verification",
            json={"status": "verified"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_unknown_seller(self, client: TestClient, admin_headers):
        response = client.patch(
            "/api/v1/sellers/00000000-0000-0000-0000-000000000000/verification",
            json={"status": "approved"},
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_stale_version(self, client: TestClient, admin_headers, pending):
        response = client.patch(
            f"/api/v1/sellers/{pending.id}/verification",
            json={"status": "approved", "expected_version": pending.version + 5},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["status"] == "pending"


class TestDocumentDownload:

    @pytest.mark.asyncio
    async def test_stored_document_redirects(self, client: TestClient, admin_headers, storage, make_seller, db_session):
        seller = make_seller(email="a@shop.com")
        path = f"seller-documents/{seller.id}/1700000000000-permit.pdf"
        await storage.upload_bytes(path, b"%PDF", "application/pdf")
        seller.documents = [{
            "filename": "1700000000000-permit.pdf",
            "originalName": "permit.pdf",
            "path": path,
            "url": storage.get_public_url(path),
            "storage": "supabase",
        }]
        db_session.commit()

        response = client.get(
            f"/api/v1/sellers/{seller.id}/documents/1700000000000-permit.pdf",
            headers=admin_headers,
            follow_redirects=False,
        )

        assert response.status_code == 307
        assert "1700000000000-permit.pdf" in response.headers["location"]

    def test_legacy_document_streamed(self, client: TestClient, admin_headers, uploads_root, make_seller):
        (uploads_root / "seller_documents" / "169-permit.pdf").write_bytes(b"%PDF legacy")
        seller = make_seller(documents=[{
            "filename": "169-permit.pdf",
            "originalName": "permit.pdf",
            "mimetype": "application/pdf",
        }])

        response = client.get(f"/api/v1/sellers/{seller.id}/documents/169-permit.pdf", headers=admin_headers)

        assert response.status_code == 200
        assert response.content == b"%PDF legacy"
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"].startswith("attachment")
        assert "permit.pdf" in response.headers["content-disposition"]

    def test_missing_legacy_file(self, client: TestClient, admin_headers, make_seller):
        seller = make_seller(documents=[{"filename": "169-permit.pdf"}])
        response = client.get(f"/api/v1/sellers/{seller.id}/documents/169-permit.pdf", headers=admin_headers)
        assert response.status_code == 404

    def test_download_requires_admin(self, client: TestClient, applicant_headers, make_seller):
        seller = make_seller(documents=[{"filename": "169-permit.pdf"}])
        response = client.get(f"/api/v1/sellers/{seller.id}/documents/169-permit.pdf", headers=applicant_headers)
        assert response.status_code == 403


class TestObservability:

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["components"]["object_storage"]["status"] == "healthy"

    def test_request_id_echoed(self, client: TestClient):
        response = client.get("/ready", headers={"X-Request-ID": "trace-123"})

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "trace-123"

    def test_metrics(self, client: TestClient):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "seller_onboarding_http_requests_total" in response.text
