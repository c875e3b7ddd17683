"""
Pydantic schemas for Hooshyar.

Defines the health-topic answer returned by the generation service,
the search state exposed to the presentation layer, and the request/response
models of the HTTP API.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr


# =============================================================================
# Enums
# =============================================================================

class Audience(str, Enum):
    """Reader profiles that select prompt phrasing and content depth."""
    GENERAL = "general"
    PROFESSIONAL = "professional"


class SearchPhase(str, Enum):
    """Lifecycle phases of a search."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


# =============================================================================
# Health Topic Answer
# =============================================================================

class Section(BaseModel):
    """A titled, ordered group of detail paragraphs or bullet points."""

    title: StrictStr = Field(description="Section heading")
    details: List[StrictStr] = Field(
        description="Paragraphs or list items, in display order"
    )

    model_config = ConfigDict(frozen=True)


class HealthTopicInfo(BaseModel):
    """
    Structured explanation of one health topic.

    Field aliases match the JSON schema declared to the generation service,
    so a validated response round-trips unchanged.
    """

    topic_name: StrictStr = Field(alias="topicName", description="Topic title")
    introduction: StrictStr = Field(description="General overview of the topic")
    sections: List[Section] = Field(description="Sections in display order")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


# =============================================================================
# Search State
# =============================================================================

class SearchState(BaseModel):
    """Snapshot of a search controller's state."""

    query_text: str = Field(default="", alias="queryText")
    audience: Audience = Field(default=Audience.GENERAL)
    phase: SearchPhase = Field(default=SearchPhase.IDLE)
    result: Optional[HealthTopicInfo] = Field(default=None)
    error_message: Optional[str] = Field(default=None, alias="errorMessage")
    search_token: int = Field(default=0, alias="searchToken")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def is_loading(self) -> bool:
        return self.phase == SearchPhase.LOADING


# =============================================================================
# API Requests
# =============================================================================

class SearchRequest(BaseModel):
    """Request to start a new search."""

    topic: str = Field(description="Health topic to explain")
    audience: Audience = Field(
        default=Audience.GENERAL,
        description="Target reader profile"
    )


# =============================================================================
# Health & Status
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(description="Application version")
    model: str = Field(description="Generation model identifier")
    generation_configured: bool = Field(
        description="Whether the generation service credential is set"
    )
    timestamp: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# Error Responses
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Error type")
    message: str = Field(description="Human-readable error message")
    error_code: str = Field(description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
