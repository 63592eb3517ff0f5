"""
Main FastAPI application entry point
"""
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from catalog.api import router as catalog_router
from faq.api import router as faq_router
from loan_history.api import router as history_router
from loan_requests.api import router as loan_router
from loan_requests.sweeper import RejectedLoanSweeper
from shared.config import settings
from shared.database import DatabaseManager, cleanup_database, get_database, init_database
from shared.log_config import setup_logging
from shared.middleware import RequestLoggingMiddleware
from shared.responses import register_exception_handlers
from site_settings.api import router as settings_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_database()

    sweeper = None
    if settings.SWEEPER_ENABLED:
        sweeper = RejectedLoanSweeper(get_database())
        await sweeper.start()
    logger.info("Application started", project=settings.PROJECT_NAME, version=settings.VERSION)

    yield

    if sweeper:
        await sweeper.stop()
    cleanup_database()
    logger.info("Application stopped")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Equipment loan service: catalog, loan requests, approvals and loan history",
    version=settings.VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Include routers
app.include_router(loan_router, prefix=f"{settings.API_PREFIX}/peminjaman", tags=["peminjaman"])
app.include_router(history_router, prefix=f"{settings.API_PREFIX}/riwayat", tags=["riwayat"])
app.include_router(catalog_router, prefix=f"{settings.API_PREFIX}/katalog", tags=["katalog"])
app.include_router(faq_router, prefix=f"{settings.API_PREFIX}/faq", tags=["faq"])
app.include_router(settings_router, prefix=f"{settings.API_PREFIX}/settings", tags=["settings"])


@app.get("/")
async def root():
    return {"message": f"{settings.PROJECT_NAME} API", "version": settings.VERSION}


@app.get("/health")
async def health_check(db: DatabaseManager = Depends(get_database)):
    healthy = db.health_check()
    return {"status": "healthy" if healthy else "unhealthy", "database": healthy}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
