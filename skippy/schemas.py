"""Pydantic request/response schemas for the Skippy API."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, EmailStr, Field, TypeAdapter, field_validator

from skippy.qualification import VALID_CATEGORIES


class _CategoryMixin(BaseModel):
    category: str = "general"

    @field_validator("category")
    @classmethod
    def category_must_be_known(cls, v: str) -> str:
        if v not in VALID_CATEGORIES:
            raise ValueError(f"category must be one of: {', '.join(VALID_CATEGORIES)}")
        return v


class EvaluateRequest(_CategoryMixin):
    response: str
    current_score: int = 0


class ScreenRequest(_CategoryMixin):
    response: str
    question: str = ""
    session_id: str | None = None
    email: EmailStr | None = None


class EvaluationOut(BaseModel):
    score_change: int
    new_score: int
    qualified: bool
    verdict: str
    recommendation: str
    rationale: str
    signals: list[str] = []


class ScreenOut(EvaluationOut):
    investor_id: str
    status: str


class InteractionCreate(BaseModel):
    interaction_type: str
    session_id: str | None = None
    message: str | None = None
    response: str | None = None
    score_change: int = 0
    qualification_data: dict[str, Any] | None = None
    email: EmailStr | None = None


class StatusUpdate(BaseModel):
    status: str = "screening"
    qualification_score: int = 0
    rejection_reason: str | None = None


class EmailUpdate(BaseModel):
    email: EmailStr


class InvestorOut(BaseModel):
    id: str
    email: str | None = None
    qualification_score: int
    status: str
    rejection_reason: str | None = None
    total_interactions: int
    qualified: bool
    created_at: str | None = None
    updated_at: str | None = None


class MemeRequest(BaseModel):
    situation: str
    stupidity_level: int = Field(ge=1, le=10)
    investor_response: str | None = None
    investor_id: str | None = None


class MemeOut(BaseModel):
    selected_meme: str
    meme_format: str
    deployment_strategy: str
    escalation_level: int
    cultural_references: list[str]
    meme_power: int


class DailyStatsOut(BaseModel):
    date: str
    total_interactions: int = 0
    rejections: int = 0
    qualifications: int = 0
    rejection_rate: float = 0.0
    memes_deployed: int = 0


class WeeklyStatsOut(BaseModel):
    total_interactions: int = 0
    rejections: int = 0
    qualifications: int = 0
    average_qualification_score: float = 0.0


class RejectionReason(BaseModel):
    reason: str
    count: int


class StatsOut(BaseModel):
    daily_stats: DailyStatsOut
    weekly_stats: WeeklyStatsOut
    top_rejection_reasons: list[RejectionReason]
    memes_deployed: dict[str, int]


_email_adapter = TypeAdapter(EmailStr)


def parse_email(value: str) -> str:
    """Validate and normalise an email address; raises ``ValueError``."""
    return _email_adapter.validate_python(value)
