"""Pydantic schemas for AI assistance."""

from enum import Enum

from pydantic import BaseModel


class JourneyStatus(str, Enum):
    ON_TRACK = "On Track"
    NEEDS_ATTENTION = "Needs Attention"
    STALLED = "Stalled"


class FollowUpRequest(BaseModel):
    context: str | None = None


class FollowUpResponse(BaseModel):
    message: str


class JourneyAnalysis(BaseModel):
    status: JourneyStatus
    reasoning: str
    suggested_action: str
