"""
FORMCOACH Backend API
Real-time form coaching for rehabilitation exercises

FastAPI application entry point. Clients stream pose landmarks; the coach
service answers with reps, form faults, tempo and feedback.
"""

import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

# ============================================
# Configure Root Logger First
# ============================================
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)]
)

from coach_service.router import router as coach_router
from coach_service.models import get_session_handler
from coach_service.speech import shutdown_speech

from core.config import settings
from shared.utils import setup_logger

logger = setup_logger("formcoach.main", level=logging.DEBUG if settings.DEBUG else logging.INFO)
request_logger = setup_logger("formcoach.requests", level=logging.INFO)


# ============================================
# Request Logging Middleware
# ============================================

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log incoming requests with timing. Frame pushes are logged at DEBUG."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        is_frame = request.url.path.endswith("/frame")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = (time.time() - start_time) * 1000
            request_logger.error(
                f"💥 {request.method} {request.url.path} → ERROR: {type(e).__name__}: {e} ({process_time:.1f}ms)"
            )
            raise

        process_time = (time.time() - start_time) * 1000
        if response.status_code < 400:
            status_emoji = "✅"
        elif response.status_code < 500:
            status_emoji = "⚠️"
        else:
            status_emoji = "❌"

        log = request_logger.debug if is_frame else request_logger.info
        log(f"{status_emoji} {request.method} {request.url.path} → {response.status_code} ({process_time:.1f}ms)")
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown."""
    logger.info(f"🚀 {settings.APP_NAME} API starting up...")
    yield
    logger.info(f"👋 {settings.APP_NAME} API shutting down...")
    get_session_handler().cleanup()
    shutdown_speech()
    logger.info("✅ Shutdown complete")


app = FastAPI(
    title="FORMCOACH API",
    description="Real-time motion analysis for rehabilitation exercise coaching",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "formcoach-api",
        "active_sessions": len(get_session_handler().active_sessions),
    }


app.include_router(coach_router, prefix="/api/coach", tags=["Coach Service"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
