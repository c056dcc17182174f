"""
Request and response models for the HTTP API.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

MAX_MESSAGE_LENGTH = 1000


class ChatRequest(BaseModel):
    message: str = Field(..., description="Visitor's question about the resume")

    @field_validator("message")
    @classmethod
    def message_has_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("message must not be empty")
        if len(v) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"message must be at most {MAX_MESSAGE_LENGTH} characters")
        return v


class ChatResponse(BaseModel):
    success: bool = True
    response: str
    timestamp: str = Field(..., description="ISO-8601 UTC time the answer was produced")
    note: str = Field(..., description="Which path produced the answer")


class LimitsReport(BaseModel):
    daily_request_limit: int
    monthly_request_limit: int
    max_tokens_per_request: int
    cost_per_1k_tokens: float
    monthly_cost_limit: float
    lifetime_cost_limit: float


class UsageReport(BaseModel):
    daily_requests: int
    monthly_requests: int
    monthly_cost: float
    lifetime_cost: float
    upstream_disabled: bool
    last_reset: str
    limits: LimitsReport


class HealthResponse(BaseModel):
    status: str = "OK"
    message: str
    model: str
    upstream_configured: bool
    usage: UsageReport


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[List[ErrorDetail]] = None
