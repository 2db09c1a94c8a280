"""
Document upload, listing, analysis results and deletion.
All routes are scoped to the authenticated owner.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from nyaya_mitra.api.deps import AuthenticatedUser, get_current_user
from nyaya_mitra.core.config import settings
from nyaya_mitra.core.logger import logger
from nyaya_mitra.db import schemas
from nyaya_mitra.db.database import get_db
from nyaya_mitra.db.models import DocumentStatus
from nyaya_mitra.services.analysis_service import analysis_worker_pool
from nyaya_mitra.services.document_service import document_service
from nyaya_mitra.utils.exceptions import FileTooLargeError

router = APIRouter()


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_document(
    document: Optional[UploadFile] = File(None),
    case_id: Optional[int] = Form(None, alias="caseId", ge=1),
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Store an uploaded document and queue it for analysis.
    Returns immediately with status `processing`.
    """
    contents = None
    filename = None
    content_type = None
    if document is not None and document.filename:
        filename = document.filename
        content_type = document.content_type
        # reject bad types before reading the body into memory
        document_service.validate_content_type(content_type)
        # chunked bodies skip the Content-Length guard; the parser has spooled the part, so its size is known
        if document.size is not None and document.size > settings.MAX_UPLOAD_SIZE:
            raise FileTooLargeError(settings.MAX_UPLOAD_SIZE)
        contents = await document.read()

    row = document_service.create_document(
        db,
        owner_id=current_user.id,
        original_filename=filename,
        content_type=content_type,
        contents=contents,
        case_id=case_id,
    )
    payload = schemas.DocumentUploadOut.model_validate(row)

    analysis_worker_pool.submit(row.id)
    logger.info("Upload accepted: document=%s user=%s", row.id, current_user.id)

    return {
        "message": "Document uploaded successfully. Analysis in progress.",
        "document": payload,
    }


@router.get("")
def list_documents(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
    case_id: Optional[int] = Query(None, alias="caseId", ge=1),
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    documents, pagination = document_service.list_documents(
        db, current_user.id, page=page, limit=limit, status=status_filter, case_id=case_id,
    )
    return {
        "documents": [document_service.to_out(d) for d in documents],
        "pagination": pagination,
    }


@router.get("/{document_id}/analysis")
def get_document_analysis(
    document_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    document = document_service.get_owned(db, document_id, current_user.id)
    return {"document": document_service.to_out(document, detailed=True)}


@router.post("/{document_id}/re-analyze")
def reanalyze_document(
    document_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    document = document_service.get_owned(db, document_id, current_user.id)
    document_service.reset_for_analysis(db, document)
    analysis_worker_pool.submit(document.id)
    return {"message": "Document re-analysis started successfully"}


@router.delete("/{document_id}")
def delete_document(
    document_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    document_service.delete_document(db, document_id, current_user.id)
    return {"message": "Document deleted successfully"}
