# nyaya_mitra/services/analysis_service.py
"""
Background document analysis.

Uploads and re-analysis requests hand a document id to the
`AnalysisWorkerPool`, which runs the analyzer on a bounded thread pool with
its own database session. The outcome is written back to the document row
(`completed` with the payload, or `failed` with an error message) and the
owner gets a notification on success. Failures never leave the worker.
"""
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Callable, Dict, Optional
import threading
import time

from sqlalchemy.orm import Session

from nyaya_mitra.core.config import settings
from nyaya_mitra.core.logger import logger
from nyaya_mitra.db import schemas
from nyaya_mitra.db.database import SessionLocal
from nyaya_mitra.db.models import Document, DocumentStatus, NotificationType
from nyaya_mitra.services.document_service import DocumentService, document_service
from nyaya_mitra.services.notification_service import notification_service
from nyaya_mitra.utils.helpers import utcnow


class DocumentAnalyzer:
    """
    Stand-in analyzer. Waits `delay_seconds` to mimic model latency and
    returns a fixed payload built around the file name.
    """

    def __init__(self, delay_seconds: Optional[float] = None):
        self._delay_seconds = delay_seconds

    @property
    def delay_seconds(self) -> float:
        if self._delay_seconds is not None:
            return self._delay_seconds
        return settings.ANALYSIS_DELAY_SECONDS

    def analyze(self, file_path: Path, file_name: str) -> schemas.AnalysisPayload:
        started = time.monotonic()
        if not file_path.is_file():
            raise FileNotFoundError(f"Stored file not found for {file_name}")

        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)

        return schemas.AnalysisPayload(
            summary=(
                f"AI-generated summary of {file_name}. This document contains "
                "important legal information that requires attention."
            ),
            key_points=[
                "Document type: Legal Document",
                "Key parties mentioned",
                "Important dates identified",
                "Legal references found",
            ],
            entities=schemas.EntitySet(
                persons=["John Doe", "Jane Smith"],
                organizations=["ABC Company", "XYZ Legal Firm"],
                dates=["2025-01-15", "2025-02-20"],
                locations=["New Delhi", "Mumbai"],
            ),
            legal_references=["Section 498A IPC", "Article 21 Constitution of India"],
            confidence_score=0.85,
            processing_time=round(time.monotonic() - started, 2),
        )


class AnalysisWorkerPool:
    """
    Runs analysis jobs on a bounded ThreadPoolExecutor.

    The executor is created lazily, so the pool can be shut down with the
    application and transparently restarted if more work arrives.
    """

    def __init__(
        self,
        analyzer: Optional[DocumentAnalyzer] = None,
        session_factory: Callable[[], Session] = SessionLocal,
        documents: DocumentService = document_service,
        max_workers: Optional[int] = None,
    ):
        self.analyzer = analyzer or DocumentAnalyzer()
        self._session_factory = session_factory
        self._documents = documents
        self._max_workers = max_workers or settings.ANALYSIS_MAX_WORKERS
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: Dict[int, Future] = {}
        self._lock = threading.Lock()

    def _ensure_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="document-analysis",
            )
        return self._executor

    def submit(self, document_id: int) -> Future:
        with self._lock:
            future = self._ensure_executor().submit(self._run, document_id)
            self._futures[document_id] = future
        future.add_done_callback(lambda f, doc_id=document_id: self._forget(doc_id, f))
        logger.info("Analysis queued for document %s", document_id)
        return future

    def _forget(self, document_id: int, future: Future) -> None:
        with self._lock:
            if self._futures.get(document_id) is future:
                del self._futures[document_id]

    def wait(self, document_id: int, timeout: Optional[float] = None) -> Optional[DocumentStatus]:
        """
        Block until the latest job for `document_id` finishes. Returns its final
        status, or None when nothing is pending for that document.
        """
        with self._lock:
            future = self._futures.get(document_id)
        if future is None:
            return None
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            return None

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._futures)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            logger.info("Shutting down analysis worker pool")
            executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # job body
    # ------------------------------------------------------------------

    def _run(self, document_id: int) -> Optional[DocumentStatus]:
        db = self._session_factory()
        try:
            return self._analyze_document(db, document_id)
        except Exception:
            db.rollback()
            logger.exception("Analysis job crashed for document %s", document_id)
            return self._mark_failed_by_id(db, document_id, "Analysis job crashed")
        finally:
            db.close()

    def _analyze_document(self, db: Session, document_id: int) -> Optional[DocumentStatus]:
        document = db.get(Document, document_id)
        if document is None:
            logger.warning("Document %s vanished before analysis", document_id)
            return None

        try:
            payload = self.analyzer.analyze(
                self._documents.resolve_path(document),
                document.original_filename,
            )
        except Exception as exc:
            logger.exception("Document analysis failed for document %s", document_id)
            document.status = DocumentStatus.failed
            document.error_message = str(exc) or exc.__class__.__name__
            db.commit()
            return DocumentStatus.failed

        document.status = DocumentStatus.completed
        document.analysis_result = payload.model_dump(mode="json")
        document.summary = payload.summary
        document.confidence_score = payload.confidence_score
        document.processing_time = payload.processing_time
        document.error_message = None
        document.analyzed_at = utcnow()
        db.commit()
        logger.info("Document %s → status=%s", document_id, DocumentStatus.completed.value)

        notification_service.notify(
            db,
            document.user_id,
            "Document Analysis Complete",
            f'Analysis of "{document.original_filename}" has been completed successfully.',
            type=NotificationType.success,
            category="document",
        )
        return DocumentStatus.completed

    def _mark_failed_by_id(self, db: Session, document_id: int, message: str) -> Optional[DocumentStatus]:
        try:
            document = db.get(Document, document_id)
            if document is None:
                return None
            document.status = DocumentStatus.failed
            document.error_message = message
            db.commit()
            return DocumentStatus.failed
        except Exception:
            db.rollback()
            logger.exception("Could not record failure for document %s", document_id)
            return None


analysis_worker_pool = AnalysisWorkerPool()
