"""
Hooshyar - FastAPI Application

Health information assistant for the general public and clinical staff.
Explains health topics in Persian and exports them as Word documents.

IMPORTANT: This is NOT a diagnostic tool.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from hooshyar.config import settings
from hooshyar.api.routes import router
from hooshyar.api.middleware import (
    SessionMiddleware,
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
    setup_rate_limiting
)
from hooshyar.core.llm_engine import get_health_info_engine
from hooshyar.utils.logger import get_logger, configure_logging

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info(
        "Starting Hooshyar",
        version=settings.app_version,
        debug=settings.debug
    )

    configure_logging(
        log_level=settings.log_level,
        json_format=not settings.debug
    )

    # Read the API credential once at startup
    engine = get_health_info_engine()
    logger.info("Application ready", **engine.get_status())

    yield

    logger.info("Shutting down Hooshyar")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## Hooshyar - Health Information Assistant

Explains health topics in Persian, at two levels of detail:

- **General public**: plain language, household units
- **Clinical staff**: clinical terminology, dosing, differential diagnosis

### ⚠️ Important Disclaimer

**This is NOT a diagnostic tool** and does not replace professional medical advice.

### API Endpoints

| Endpoint | Method | Description |
|----------|--------|-------------|
| `/search` | POST | Explain a health topic |
| `/cancel` | POST | Cancel the current search |
| `/state` | GET | Current search state |
| `/export` | GET | Download the answer as .docx |
| `/health` | GET | Health check |
        """,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.debug else None,
    )

    # Setup middleware (order matters - last added is outermost)

    # Error handling
    app.add_middleware(ErrorHandlingMiddleware)

    # Request logging
    app.add_middleware(RequestLoggingMiddleware)

    # Search sessions (outermost)
    app.add_middleware(SessionMiddleware)

    setup_rate_limiting(app)

    app.include_router(router, tags=["API"])

    return app


# Create app instance
app = create_app()


# Run with: uvicorn hooshyar.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hooshyar.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
