# nyaya_mitra/services/document_service.py

from pathlib import Path
from typing import List, Optional, Tuple
import secrets
import time

from sqlalchemy.orm import Session

from nyaya_mitra.core.config import settings
from nyaya_mitra.core.logger import logger
from nyaya_mitra.db import schemas
from nyaya_mitra.db.models import Document, DocumentStatus, LegalCase
from nyaya_mitra.utils.exceptions import (
    CaseNotFoundError,
    DocumentNotFoundError,
    FileTooLargeError,
    InvalidFileTypeError,
    NoFileError,
)
from nyaya_mitra.utils.helpers import Pagination, paginate, safe_filename, utcnow

ALLOWED_CONTENT_TYPES = frozenset(
    {
        "application/pdf",
        "image/jpeg",
        "image/jpg",
        "image/png",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)

DOCUMENTS_SUBDIR = "documents"


class DocumentService:
    """
    Service layer for document intake, storage and ownership checks.
    Files live under <upload_root>/documents; rows store the path relative
    to the upload root.
    """

    def __init__(self, upload_root: Optional[Path] = None):
        self._upload_root = upload_root

    @property
    def upload_root(self) -> Path:
        return self._upload_root or settings.upload_path

    # ------------------------------------------------------------------
    # storage
    # ------------------------------------------------------------------

    def resolve_path(self, document: Document) -> Path:
        return self.upload_root / document.file_path

    def _store_file(self, original_filename: str, contents: bytes) -> str:
        directory = self.upload_root / DOCUMENTS_SUBDIR
        directory.mkdir(parents=True, exist_ok=True)

        stored_name = f"{int(time.time() * 1000)}-{secrets.token_hex(4)}-{safe_filename(original_filename)}"
        (directory / stored_name).write_bytes(contents)
        return f"{DOCUMENTS_SUBDIR}/{stored_name}"

    def _remove_file(self, relative_path: str) -> None:
        path = self.upload_root / relative_path
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("Stored file already missing: %s", path)

    # ------------------------------------------------------------------
    # intake
    # ------------------------------------------------------------------

    @staticmethod
    def validate_content_type(content_type: Optional[str]) -> str:
        normalized = (content_type or "").split(";", 1)[0].strip().lower()
        if normalized not in ALLOWED_CONTENT_TYPES:
            raise InvalidFileTypeError(content_type)
        return normalized

    def create_document(
        self,
        db: Session,
        owner_id: int,
        original_filename: Optional[str],
        content_type: Optional[str],
        contents: Optional[bytes],
        case_id: Optional[int] = None,
    ) -> Document:
        """
        Validate and persist an upload. Nothing is written to disk or the
        database unless every check passes.
        """
        if contents is None or not original_filename:
            raise NoFileError()

        file_type = self.validate_content_type(content_type)

        if len(contents) > settings.MAX_UPLOAD_SIZE:
            raise FileTooLargeError(settings.MAX_UPLOAD_SIZE)

        if case_id is not None:
            owned_case = (
                db.query(LegalCase.id)
                .filter(LegalCase.id == case_id, LegalCase.user_id == owner_id)
                .first()
            )
            if not owned_case:
                raise CaseNotFoundError()

        relative_path = self._store_file(original_filename, contents)
        try:
            document = Document(
                user_id=owner_id,
                case_id=case_id,
                original_filename=original_filename,
                file_path=relative_path,
                file_type=file_type,
                file_size=len(contents),
                status=DocumentStatus.processing,
            )
            db.add(document)
            db.commit()
            db.refresh(document)
        except Exception:
            db.rollback()
            self._remove_file(relative_path)
            raise

        logger.info(
            "Document stored: id=%s user=%s size=%s path=%s",
            document.id, owner_id, document.file_size, relative_path,
        )
        return document

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_owned(db: Session, document_id: int, owner_id: int) -> Document:
        document = (
            db.query(Document)
            .filter(Document.id == document_id, Document.user_id == owner_id)
            .first()
        )
        if not document:
            raise DocumentNotFoundError()
        return document

    @staticmethod
    def list_documents(
        db: Session,
        owner_id: int,
        page: int = 1,
        limit: int = 20,
        status: Optional[DocumentStatus] = None,
        case_id: Optional[int] = None,
    ) -> Tuple[List[Document], Pagination]:
        query = db.query(Document).filter(Document.user_id == owner_id)
        if status is not None:
            query = query.filter(Document.status == status)
        if case_id is not None:
            query = query.filter(Document.case_id == case_id)
        query = query.order_by(Document.created_at.desc(), Document.id.desc())
        return paginate(query, page, limit)

    @staticmethod
    def to_out(document: Document, detailed: bool = False):
        """Row -> response schema, with the linked case number and title."""
        case = document.case
        data = {
            "id": document.id,
            "original_filename": document.original_filename,
            "file_type": document.file_type,
            "file_size": document.file_size,
            "status": document.status,
            "case_id": document.case_id,
            "case_number": case.case_number if case else None,
            "case_title": case.title if case else None,
            "summary": document.summary,
            "confidence_score": document.confidence_score,
            "error_message": document.error_message,
            "created_at": document.created_at,
            "updated_at": document.updated_at,
        }
        if not detailed:
            return schemas.DocumentOut(**data)

        data.update(
            analysis=document.analysis_result or None,
            processing_time=document.processing_time,
            analyzed_at=document.analyzed_at,
        )
        return schemas.DocumentAnalysisOut(**data)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    @staticmethod
    def reset_for_analysis(db: Session, document: Document) -> Document:
        document.status = DocumentStatus.processing
        document.error_message = None
        document.updated_at = utcnow()
        db.commit()
        db.refresh(document)
        return document

    def delete_document(self, db: Session, document_id: int, owner_id: int) -> None:
        document = self.get_owned(db, document_id, owner_id)
        relative_path = document.file_path
        db.delete(document)
        db.commit()
        self._remove_file(relative_path)
        logger.info("Document deleted: id=%s user=%s", document_id, owner_id)

    def stored_paths_for_user(self, db: Session, user_id: int) -> List[str]:
        return [p for (p,) in db.query(Document.file_path).filter(Document.user_id == user_id).all()]

    def remove_files(self, relative_paths: List[str]) -> None:
        """Unlink stored files once the rows pointing at them are gone."""
        for relative_path in relative_paths:
            self._remove_file(relative_path)


document_service = DocumentService()
