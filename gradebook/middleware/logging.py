import logging
import os
import sys
import time
import uuid
from pathlib import Path
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from gradebook.config import settings

# Configure logging
def setup_logging():
    """Configure application logging."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_FILE:
        os.makedirs(Path(settings.LOG_FILE).parent, exist_ok=True)
        handlers.append(logging.FileHandler(settings.LOG_FILE))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )

    # Set specific log levels for noisy libraries
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger = logging.getLogger("gradebook")
    logger.setLevel(log_level)
    return logger

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging request details."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.logger = logging.getLogger("gradebook.request")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.time()

        # Add request_id to the request state for use in route handlers
        request.state.request_id = request_id

        self.logger.info(
            f"Request started: {request.method} {request.url.path} "
            f"[client: {request.client.host if request.client else 'unknown'}] "
            f"[request_id: {request_id}]"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                f"Request failed: {request.method} {request.url.path} "
                f"[error: {str(e)}] [request_id: {request_id}]",
                exc_info=True
            )
            raise

        duration = time.time() - start_time
        self.logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"[status: {response.status_code}] [duration: {duration:.3f}s] "
            f"[request_id: {request_id}]"
        )

        response.headers["X-Request-ID"] = request_id
        return response

def request_id(request: Request) -> str:
    """Id assigned by RequestLoggingMiddleware, for correlating handler logs."""
    return getattr(request.state, "request_id", "unknown")

def add_logging_middleware(app: FastAPI):
    """Add request logging middleware to the FastAPI app."""
    app.add_middleware(RequestLoggingMiddleware)
