"""
API middleware for Hooshyar.

Provides:
- Rate limiting
- Search session resolution
- Request logging
- Error handling
"""

import time
from typing import Callable, Optional
from uuid import uuid4

from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from hooshyar.config import settings
from hooshyar.utils.logger import bind_request_context, clear_request_context, get_logger

logger = get_logger("middleware")


SESSION_HEADER = "X-Session-ID"

# Rate limiter using client IP
limiter = Limiter(key_func=get_remote_address)


def get_session_id(request: Request) -> Optional[str]:
    """Extract the search session ID from headers or cookies."""
    return (
        request.headers.get(SESSION_HEADER)
        or request.cookies.get(settings.session_cookie_name)
    )


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Middleware for per-browser search sessions.

    Stores the session ID in request state and binds it to the logging
    context. Requests without one get a fresh ID, returned to the browser
    as a cookie.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        if request.url.path in ["/health", "/docs", "/openapi.json", "/redoc"]:
            return await call_next(request)

        session_id = get_session_id(request)
        issued = session_id is None
        if issued:
            session_id = uuid4().hex

        request.state.session_id = session_id
        bind_request_context(session_id=session_id)

        try:
            response = await call_next(request)
        finally:
            clear_request_context()

        if issued:
            response.set_cookie(
                settings.session_cookie_name,
                session_id,
                httponly=True,
                samesite="lax"
            )
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging.

    Logs:
    - Request method, path, session
    - Response status code
    - Processing time
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        start_time = time.time()

        method = request.method
        path = request.url.path
        client_ip = get_remote_address(request)

        logger.info(
            "Request received",
            method=method,
            path=path,
            client_ip=client_ip
        )

        try:
            response = await call_next(request)

            process_time = time.time() - start_time

            logger.info(
                "Request completed",
                method=method,
                path=path,
                status_code=response.status_code,
                process_time_ms=int(process_time * 1000)
            )

            response.headers["X-Process-Time"] = f"{process_time:.4f}"

            return response

        except Exception as e:
            process_time = time.time() - start_time

            logger.error(
                "Request failed",
                method=method,
                path=path,
                error=str(e),
                process_time_ms=int(process_time * 1000)
            )
            raise


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns safe error responses.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        try:
            return await call_next(request)

        except HTTPException:
            raise

        except ValueError as e:
            logger.warning("Validation error", error=str(e))
            return JSONResponse(
                status_code=400,
                content={
                    "error": "Validation Error",
                    "message": str(e),
                    "error_code": "VALIDATION_ERROR"
                }
            )

        except Exception as e:
            logger.error("Unhandled exception", error=str(e), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal Server Error",
                    "message": "یک خطای غیرمنتظره رخ داد. لطفاً دوباره تلاش کنید.",
                    "error_code": "INTERNAL_ERROR"
                }
            )


def setup_rate_limiting(app) -> None:
    """Setup rate limiting on the application."""
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content={
                "error": "Rate Limit Exceeded",
                "message": "تعداد درخواست‌ها بیش از حد مجاز است. لطفاً کمی صبر کنید.",
                "error_code": "RATE_LIMIT_EXCEEDED"
            }
        )
