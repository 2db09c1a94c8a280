"""
FastAPI application entry point
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from nyaya_mitra.api.api import api_router
from nyaya_mitra.core.config import settings
from nyaya_mitra.core.error_handlers import register_exception_handlers
from nyaya_mitra.core.logger import logger, setup_logging
from nyaya_mitra.core.rate_limit import limiter
from nyaya_mitra.db.database import init_db
from nyaya_mitra.middleware.correlation import CorrelationMiddleware
from nyaya_mitra.middleware.upload_limit import UploadSizeLimitMiddleware
from nyaya_mitra.services.analysis_service import analysis_worker_pool

setup_logging()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(api_router, prefix="/api")

# ── Errors & rate limiting ────────────────────────────────────────────────────
register_exception_handlers(app)
app.state.limiter = limiter

# ── Middleware (last added runs first) ────────────────────────────────────────
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    UploadSizeLimitMiddleware,
    max_file_size=settings.MAX_UPLOAD_SIZE,
    paths=["/api/documents/upload"],
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationMiddleware)


@app.on_event("startup")
def on_startup():
    init_db()
    settings.upload_path.mkdir(parents=True, exist_ok=True)
    logger.info(
        "%s %s started (env=%s, uploads=%s)",
        settings.APP_NAME, settings.VERSION, settings.ENVIRONMENT, settings.upload_path,
    )


@app.on_event("shutdown")
def on_shutdown():
    analysis_worker_pool.shutdown(wait=True)
    logger.info("%s stopped", settings.APP_NAME)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "nyaya_mitra.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
