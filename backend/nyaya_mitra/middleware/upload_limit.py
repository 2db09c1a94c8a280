"""
Rejects oversized upload bodies by Content-Length before the multipart
body is parsed. The document handler re-checks the real file size.
"""
from __future__ import annotations

import logging
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from nyaya_mitra.core.error_handlers import error_response

logger = logging.getLogger(__name__)

# room for multipart boundaries, part headers and small form fields
MULTIPART_OVERHEAD_BYTES = 64 * 1024


class UploadSizeLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_file_size: int, paths: Iterable[str]):
        super().__init__(app)
        self.max_file_size = max_file_size
        self.max_body_size = max_file_size + MULTIPART_OVERHEAD_BYTES
        self.paths = frozenset(paths)

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "POST" and request.url.path in self.paths:
            content_length = request.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > self.max_body_size:
                logger.info(
                    "Rejected upload to %s: content-length %s exceeds %s",
                    request.url.path, content_length, self.max_body_size,
                )
                return error_response(
                    request,
                    413,
                    f"File too large. Maximum size is {self.max_file_size // (1024 * 1024)}MB.",
                    "FILE_TOO_LARGE",
                )
        return await call_next(request)
