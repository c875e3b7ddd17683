"""
API routes for Hooshyar.

Serves the search page and the JSON API that drives a session's
search controller.
"""

from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from hooshyar.api.middleware import limiter
from hooshyar.config import settings
from hooshyar.core.llm_engine import get_health_info_engine
from hooshyar.models.schemas import (
    Audience,
    ErrorResponse,
    HealthResponse,
    SearchRequest,
    SearchState,
)
from hooshyar.services.document_exporter import get_document_exporter
from hooshyar.services.page_renderer import render_page
from hooshyar.services.search_controller import SearchController, search_sessions
from hooshyar.utils.logger import get_logger

logger = get_logger("routes")

# Create router
router = APIRouter()


def get_controller(request: Request) -> SearchController:
    """Resolve the search controller of the request's session."""
    return search_sessions.get_or_create(request.state.session_id)


def content_disposition(filename: str) -> str:
    """Attachment header value, UTF-8 encoded for non-ASCII names."""
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


# =============================================================================
# Health Check
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint"
)
async def health_check():
    """
    Check if the service is healthy and running.

    Returns version information and whether the generation service
    credential is configured.
    """
    status = get_health_info_engine().get_status()
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        model=status["model"],
        generation_configured=status["configured"]
    )


# =============================================================================
# Search Page
# =============================================================================

@router.get("/", response_class=HTMLResponse, tags=["Page"], include_in_schema=False)
async def search_page(controller: SearchController = Depends(get_controller)):
    """Render the search page for the current session."""
    return HTMLResponse(render_page(controller.state))


@router.post("/", tags=["Page"], include_in_schema=False)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def submit_search_form(
    request: Request,
    background_tasks: BackgroundTasks,
    topic: str = Form(""),
    audience: Audience = Form(Audience.GENERAL),
    controller: SearchController = Depends(get_controller)
):
    """
    Submit the search form.

    The search runs after the response is sent; the browser is redirected
    to the page, which shows the loading state and reloads until the
    search settles.
    """
    token = controller.start(topic, audience)
    if token is not None:
        background_tasks.add_task(controller.complete, token, topic, controller.audience)
    return RedirectResponse("/", status_code=303)


@router.post("/stop", tags=["Page"], include_in_schema=False)
async def stop_search_form(controller: SearchController = Depends(get_controller)):
    """Cancel from the page and return to it."""
    controller.cancel()
    return RedirectResponse("/", status_code=303)


# =============================================================================
# Search API
# =============================================================================

@router.post(
    "/search",
    response_model=SearchState,
    tags=["Search"],
    summary="Explain a health topic",
    responses={
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"}
    }
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def search(
    request: Request,
    body: SearchRequest,
    controller: SearchController = Depends(get_controller)
):
    """
    Start a search and wait for its outcome.

    Failures are reported in ``errorMessage`` with ``phase = error``.
    If the search is cancelled or superseded while waiting, the returned
    state is the newer one and this search's outcome is discarded.
    """
    return await controller.submit(body.topic, body.audience)


@router.post(
    "/cancel",
    response_model=SearchState,
    tags=["Search"],
    summary="Cancel the current search"
)
async def cancel_search(controller: SearchController = Depends(get_controller)):
    """Cancel the in-flight search; its outcome will be ignored."""
    return controller.cancel()


@router.get(
    "/state",
    response_model=SearchState,
    tags=["Search"],
    summary="Current search state"
)
async def get_state(controller: SearchController = Depends(get_controller)):
    """Get the session's current search state."""
    return controller.state


# =============================================================================
# Document Export
# =============================================================================

@router.get(
    "/export",
    tags=["Export"],
    summary="Download the current answer as a Word document",
    responses={
        200: {"content": {"application/vnd.openxmlformats-officedocument.wordprocessingml.document": {}}},
        204: {"description": "No answer to export"}
    }
)
async def export_document(controller: SearchController = Depends(get_controller)):
    """
    Export the last successful answer as a right-to-left .docx file.

    Returns 204 when the session has no answer yet.
    """
    document = get_document_exporter().export(controller.result)
    if document is None:
        return Response(status_code=204)

    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": content_disposition(document.filename)}
    )
