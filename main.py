# main.py
import os
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from testrail_sync.core.config import settings
from testrail_sync.core.exception_handlers import setup_exception_handlers
from testrail_sync.routers import sync, testrail
from testrail_sync.middleware.logging_middleware import RequestLoggingMiddleware

logger = logging.getLogger("uvicorn.error")

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Upload hierarchical test reports to TestRail runs",
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.debug,
)

setup_exception_handlers(app)

app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(testrail.router)
app.include_router(sync.router)


@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "testrail_configured": bool(settings.testrail_host),
    }


if not settings.testrail_host:
    logger.warning("[TestRail] TESTRAIL_HOST is not set; syncs will fail until it is configured")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level="debug" if settings.debug else "info",
    )
