"""
Tests for the document intake and analysis pipeline.
"""
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from starlette.datastructures import UploadFile

from nyaya_mitra.core.config import settings
from nyaya_mitra.db.models import Document, DocumentStatus, LegalCase, Notification
from nyaya_mitra.services.analysis_service import analysis_worker_pool
from nyaya_mitra.services.document_service import document_service

PDF_BYTES = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


def _upload(client, headers, name="petition.pdf", content=PDF_BYTES, content_type="application/pdf", data=None):
    return client.post(
        "/api/documents/upload",
        headers=headers,
        files={"document": (name, content, content_type)},
        data=data or {},
    )


def _uploaded_id(client, headers, **kwargs):
    response = _upload(client, headers, **kwargs)
    assert response.status_code == 201, response.text
    return response.json()["document"]["id"]


@pytest.fixture
def case_for(db_session):
    def _make(user_id, number="NYM-2025-1001"):
        case = LegalCase(user_id=user_id, case_number=number, title="Property dispute")
        db_session.add(case)
        db_session.commit()
        return case.id
    return _make


class TestUpload:

    def test_upload_returns_processing_document(self, client, auth_headers, db_session):
        response = _upload(client, auth_headers)
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Document uploaded successfully. Analysis in progress."
        assert body["document"]["status"] == "processing"
        assert body["document"]["originalFilename"] == "petition.pdf"
        assert body["document"]["fileType"] == "application/pdf"
        assert body["document"]["fileSize"] == len(PDF_BYTES)

        document = db_session.get(Document, body["document"]["id"])
        stored = settings.upload_path / document.file_path
        assert stored.read_bytes() == PDF_BYTES

    def test_disallowed_type_creates_nothing(self, client, auth_headers, db_session):
        response = _upload(client, auth_headers, name="run.sh", content=b"#!/bin/sh", content_type="text/x-shellscript")
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FILE_TYPE"
        assert db_session.query(Document).count() == 0
        assert not list((settings.upload_path / "documents").glob("*"))

    def test_missing_file(self, client, auth_headers):
        response = client.post("/api/documents/upload", headers=auth_headers, data={"caseId": "1"})
        assert response.status_code == 400
        assert response.json()["code"] == "NO_FILE"

    def test_requires_authentication(self, client):
        response = _upload(client, {})
        assert response.status_code == 401
        assert response.json()["code"] == "NO_TOKEN"

    def test_oversized_file_rejected(self, client, auth_headers, monkeypatch, db_session):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 1024)
        response = _upload(client, auth_headers, content=b"x" * 2048)
        assert response.status_code == 413
        assert response.json()["code"] == "FILE_TOO_LARGE"
        assert db_session.query(Document).count() == 0

    def test_size_checked_before_body_is_read(self, client, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 1024)

        async def _read(self, size=-1):
            raise AssertionError("upload body read despite exceeding the size cap")

        monkeypatch.setattr(UploadFile, "read", _read)
        response = _upload(client, auth_headers, content=b"x" * 4096)
        assert response.status_code == 413
        assert response.json()["code"] == "FILE_TOO_LARGE"

    def test_content_length_guard(self, client, auth_headers):
        big = b"x" * (settings.MAX_UPLOAD_SIZE + 128 * 1024)
        response = _upload(client, auth_headers, content=big)
        assert response.status_code == 413
        assert response.json()["code"] == "FILE_TOO_LARGE"

    def test_foreign_case_is_not_found(self, client, auth_headers, make_user, case_for, db_session):
        other_id, _ = make_user("meera")
        case_id = case_for(other_id)
        response = _upload(client, auth_headers, data={"caseId": str(case_id)})
        assert response.status_code == 404
        assert response.json()["code"] == "CASE_NOT_FOUND"
        assert db_session.query(Document).count() == 0

    def test_own_case_is_linked(self, client, register_user, case_for):
        data = register_user()
        headers = {"Authorization": f"Bearer {data['tokens']['accessToken']}"}
        case_id = case_for(data["user"]["id"])

        document_id = _uploaded_id(client, headers, data={"caseId": str(case_id)})
        analysis_worker_pool.wait(document_id, timeout=10)

        body = client.get(f"/api/documents/{document_id}/analysis", headers=headers).json()
        assert body["document"]["caseId"] == case_id
        assert body["document"]["caseNumber"] == "NYM-2025-1001"


class TestAnalysis:

    def test_analysis_completes_with_payload(self, client, auth_headers, db_session):
        document_id = _uploaded_id(client, auth_headers)
        analysis_worker_pool.wait(document_id, timeout=10)

        response = client.get(f"/api/documents/{document_id}/analysis", headers=auth_headers)
        assert response.status_code == 200
        document = response.json()["document"]
        assert document["status"] == "completed"
        assert document["confidenceScore"] == 0.85
        assert document["analysis"]["summary"].startswith("AI-generated summary of petition.pdf")
        assert "Section 498A IPC" in document["analysis"]["legalReferences"]
        assert document["analysis"]["entities"]["locations"] == ["New Delhi", "Mumbai"]
        assert document["errorMessage"] is None

        titles = [n.title for n in db_session.query(Notification).all()]
        assert "Document Analysis Complete" in titles

    def test_missing_file_marks_failed(self, client, auth_headers, db_session):
        document_id = _uploaded_id(client, auth_headers)
        analysis_worker_pool.wait(document_id, timeout=10)

        document = db_session.get(Document, document_id)
        (settings.upload_path / document.file_path).unlink()

        assert client.post(f"/api/documents/{document_id}/re-analyze", headers=auth_headers).status_code == 200
        analysis_worker_pool.wait(document_id, timeout=10)

        body = client.get(f"/api/documents/{document_id}/analysis", headers=auth_headers).json()["document"]
        assert body["status"] == "failed"
        assert body["errorMessage"]

    def test_reanalyze_resets_and_completes(self, client, auth_headers, db_session):
        document_id = _uploaded_id(client, auth_headers)
        analysis_worker_pool.wait(document_id, timeout=10)

        response = client.post(f"/api/documents/{document_id}/re-analyze", headers=auth_headers)
        assert response.json() == {"message": "Document re-analysis started successfully"}
        analysis_worker_pool.wait(document_id, timeout=10)

        db_session.expire_all()
        assert db_session.get(Document, document_id).status == DocumentStatus.completed

    def test_other_users_cannot_see_document(self, client, auth_headers, make_user):
        document_id = _uploaded_id(client, auth_headers)
        _, other_headers = make_user("meera")

        for method, path in (
            ("get", f"/api/documents/{document_id}/analysis"),
            ("post", f"/api/documents/{document_id}/re-analyze"),
            ("delete", f"/api/documents/{document_id}"),
        ):
            response = getattr(client, method)(path, headers=other_headers)
            assert response.status_code == 404
            assert response.json()["code"] == "DOCUMENT_NOT_FOUND"


class TestListAndDelete:

    def test_list_paginates_and_filters(self, client, auth_headers):
        ids = [_uploaded_id(client, auth_headers, name=f"doc{i}.pdf") for i in range(3)]
        for document_id in ids:
            analysis_worker_pool.wait(document_id, timeout=10)

        page = client.get("/api/documents?page=1&limit=2", headers=auth_headers).json()
        assert len(page["documents"]) == 2
        assert page["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
        assert page["documents"][0]["id"] == ids[-1]

        completed = client.get("/api/documents?status=completed", headers=auth_headers).json()
        assert completed["pagination"]["total"] == 3
        failed = client.get("/api/documents?status=failed", headers=auth_headers).json()
        assert failed["pagination"]["total"] == 0

    def test_delete_removes_row_and_file(self, client, auth_headers, db_session):
        document_id = _uploaded_id(client, auth_headers)
        analysis_worker_pool.wait(document_id, timeout=10)
        stored = settings.upload_path / db_session.get(Document, document_id).file_path
        assert stored.exists()

        response = client.delete(f"/api/documents/{document_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Document deleted successfully"}
        assert not stored.exists()
        db_session.expire_all()
        assert db_session.get(Document, document_id) is None

        again = client.delete(f"/api/documents/{document_id}", headers=auth_headers)
        assert again.status_code == 404
        assert again.json()["code"] == "DOCUMENT_NOT_FOUND"

    def test_delete_tolerates_missing_file(self, client, auth_headers, db_session):
        document_id = _uploaded_id(client, auth_headers)
        analysis_worker_pool.wait(document_id, timeout=10)
        (settings.upload_path / db_session.get(Document, document_id).file_path).unlink()

        assert client.delete(f"/api/documents/{document_id}", headers=auth_headers).status_code == 200

    def test_failed_commit_keeps_stored_file(self, client, register_user, db_session):
        data = register_user()
        headers = {"Authorization": f"Bearer {data['tokens']['accessToken']}"}
        document_id = _uploaded_id(client, headers)
        analysis_worker_pool.wait(document_id, timeout=10)
        stored = settings.upload_path / db_session.get(Document, document_id).file_path

        locked = OperationalError("DELETE", {}, Exception("database is locked"))
        with patch.object(db_session, "commit", side_effect=locked):
            with pytest.raises(OperationalError):
                document_service.delete_document(db_session, document_id, data["user"]["id"])
        db_session.rollback()

        assert stored.exists()
        assert db_session.get(Document, document_id) is not None
