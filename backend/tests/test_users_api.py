from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from nyaya_mitra.core.config import settings
from nyaya_mitra.db.database import SessionLocal, get_db
from nyaya_mitra.db.models import (
    AlertType,
    CaseStatus,
    CivicFeedback,
    Document,
    LegalCase,
    Notification,
    SOSAlert,
    User,
    UserRole,
)
from nyaya_mitra.main import app
from nyaya_mitra.services.analysis_service import analysis_worker_pool


class TestProfile:

    def test_get_and_update(self, client, auth_headers):
        profile = client.get("/api/users/profile", headers=auth_headers).json()["user"]
        assert profile["username"] == "asha"
        assert profile["role"] == "citizen"
        assert "passwordHash" not in profile
        assert profile["createdAt"].endswith("Z")

        response = client.put(
            "/api/users/profile",
            headers=auth_headers,
            json={"fullName": "  Asha R. Rao ", "phone": "9876543210"},
        )
        assert response.status_code == 200
        updated = response.json()["user"]
        assert updated["fullName"] == "Asha R. Rao"
        assert updated["phone"] == "9876543210"
        assert updated["address"] is None

    def test_empty_update(self, client, auth_headers):
        response = client.put("/api/users/profile", headers=auth_headers, json={})
        assert response.status_code == 400
        assert response.json()["code"] == "NO_UPDATE_FIELDS"

    def test_invalid_phone(self, client, auth_headers):
        response = client.put("/api/users/profile", headers=auth_headers, json={"phone": "12345"})
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestAdminUsers:

    def test_list_search_and_role_filter(self, client, make_user):
        _, admin_headers = make_user("root", UserRole.admin)
        make_user("advocate", UserRole.lawyer)
        make_user("ravi")

        everyone = client.get("/api/users/all", headers=admin_headers).json()
        assert everyone["pagination"]["total"] == 3

        lawyers = client.get("/api/users/all?role=lawyer", headers=admin_headers).json()
        assert [u["username"] for u in lawyers["users"]] == ["advocate"]

        found = client.get("/api/users/all?search=RAV", headers=admin_headers).json()
        assert [u["username"] for u in found["users"]] == ["ravi"]

    def test_deactivation_blocks_requests_and_login(self, client, register_user, make_user):
        data = register_user()
        headers = {"Authorization": f"Bearer {data['tokens']['accessToken']}"}
        _, admin_headers = make_user("root", UserRole.admin)

        response = client.put(
            f"/api/users/{data['user']['id']}/status",
            headers=admin_headers,
            json={"isActive": False, "isVerified": True},
        )
        assert response.status_code == 200
        assert response.json()["user"]["isActive"] is False
        assert response.json()["user"]["isVerified"] is True

        me = client.get("/api/auth/me", headers=headers)
        assert me.json()["code"] == "ACCOUNT_DEACTIVATED"
        login = client.post("/api/auth/login", json={"email": "asha@test.com", "password": "Passw0rd!"})
        assert login.status_code == 401
        assert login.json()["code"] == "ACCOUNT_DEACTIVATED"

    def test_admin_cannot_modify_or_delete_self(self, client, make_user):
        admin_id, admin_headers = make_user("root", UserRole.admin)

        status = client.put(f"/api/users/{admin_id}/status", headers=admin_headers, json={"isActive": False})
        assert status.json()["code"] == "CANNOT_MODIFY_SELF"
        delete = client.delete(f"/api/users/{admin_id}", headers=admin_headers)
        assert delete.json()["code"] == "CANNOT_DELETE_SELF"

    def test_unknown_user(self, client, make_user):
        _, admin_headers = make_user("root", UserRole.admin)
        response = client.delete("/api/users/424242", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"

    def test_delete_cascades_and_keeps_civic_rows(self, client, register_user, make_user, db_session):
        data = register_user()
        user_id = data["user"]["id"]
        headers = {"Authorization": f"Bearer {data['tokens']['accessToken']}"}

        document_id = client.post(
            "/api/documents/upload",
            headers=headers,
            files={"document": ("will.pdf", b"%PDF-1.4 last will", "application/pdf")},
        ).json()["document"]["id"]
        analysis_worker_pool.wait(document_id, timeout=10)
        stored = settings.upload_path / db_session.get(Document, document_id).file_path

        feedback_id = client.post(
            "/api/feedback",
            headers=headers,
            json={
                "category": "Water",
                "subject": "No water supply",
                "description": "There has been no municipal water supply since Monday morning.",
            },
        ).json()["feedbackId"]

        _, admin_headers = make_user("root", UserRole.admin)
        response = client.delete(f"/api/users/{user_id}", headers=admin_headers)
        assert response.status_code == 200

        db_session.expire_all()
        assert db_session.get(User, user_id) is None
        assert db_session.get(Document, document_id) is None
        assert not stored.exists()
        assert db_session.get(CivicFeedback, feedback_id).user_id is None

    def test_failed_delete_keeps_user_files(self, register_user, make_user, db_session, client):
        data = register_user()
        headers = {"Authorization": f"Bearer {data['tokens']['accessToken']}"}
        document_id = client.post(
            "/api/documents/upload",
            headers=headers,
            files={"document": ("deed.pdf", b"%PDF-1.4 sale deed", "application/pdf")},
        ).json()["document"]["id"]
        analysis_worker_pool.wait(document_id, timeout=10)
        stored = settings.upload_path / db_session.get(Document, document_id).file_path
        _, admin_headers = make_user("root", UserRole.admin)

        def _locked_on_delete():
            db = SessionLocal()
            real_commit = db.commit

            def commit():
                if db.deleted:
                    raise OperationalError("DELETE", {}, Exception("database is locked"))
                real_commit()

            db.commit = commit
            try:
                yield db
            finally:
                db.rollback()
                db.close()

        app.dependency_overrides[get_db] = _locked_on_delete
        try:
            response = TestClient(app, raise_server_exceptions=False).delete(
                f"/api/users/{data['user']['id']}", headers=admin_headers,
            )
        finally:
            app.dependency_overrides.pop(get_db, None)

        assert response.status_code == 500
        assert stored.exists()
        db_session.expire_all()
        assert db_session.get(User, data["user"]["id"]) is not None


class TestDashboard:

    def test_latest_items_and_counts(self, client, register_user, make_user, db_session):
        data = register_user()
        user_id = data["user"]["id"]
        headers = {"Authorization": f"Bearer {data['tokens']['accessToken']}"}

        statuses = [CaseStatus.pending, CaseStatus.in_progress, CaseStatus.resolved, CaseStatus.closed,
                    CaseStatus.pending, CaseStatus.resolved]
        for i, case_status in enumerate(statuses):
            db_session.add(LegalCase(
                user_id=user_id, case_number=f"NYM-2025-{1000 + i}", title=f"Matter {i}", status=case_status,
            ))
        for _ in range(4):
            db_session.add(SOSAlert(
                user_id=user_id, alert_type=AlertType.medical, description="Chest pain, need an ambulance",
            ))
        other_id, _ = make_user("meera")
        db_session.add(LegalCase(user_id=other_id, case_number="NYM-2025-2000", title="Not mine"))
        db_session.commit()

        document_id = client.post(
            "/api/documents/upload",
            headers=headers,
            files={"document": ("fir.pdf", b"%PDF-1.4 first information report", "application/pdf")},
        ).json()["document"]["id"]
        analysis_worker_pool.wait(document_id, timeout=10)

        response = client.get("/api/users/dashboard", headers=headers)
        assert response.status_code == 200
        body = response.json()

        assert len(body["cases"]) == 5
        assert "Not mine" not in [c["title"] for c in body["cases"]]
        assert body["cases"][0]["caseNumber"] == "NYM-2025-1005"
        assert [d["id"] for d in body["documents"]] == [document_id]
        assert len(body["sosAlerts"]) == 3
        assert body["sosAlerts"][0]["alertType"] == "medical"
        assert all(n["isRead"] is False for n in body["notifications"])

        unread = db_session.query(Notification).filter_by(user_id=user_id, is_read=False).count()
        assert body["stats"] == {
            "totalCases": 6,
            "activeCases": 3,
            "totalDocuments": 1,
            "unreadNotifications": unread,
        }
        assert len(body["notifications"]) == unread

    def test_requires_authentication(self, client):
        response = client.get("/api/users/dashboard")
        assert response.status_code == 401
        assert response.json()["code"] == "NO_TOKEN"
