"""Pydantic data models shared across the package.

The analysis client, the challenge grader, and the MCP tool surface all
exchange these models. Nothing in here performs I/O.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PrivacyLevel(str, Enum):
    """How much user data is stripped before it leaves the process."""

    BASIC = "basic"
    ENHANCED = "enhanced"
    MAXIMUM = "maximum"

    @property
    def rank(self) -> int:
        return _PRIVACY_RANK[self]


_PRIVACY_RANK = {
    PrivacyLevel.BASIC: 0,
    PrivacyLevel.ENHANCED: 1,
    PrivacyLevel.MAXIMUM: 2,
}


class Difficulty(str, Enum):
    """Challenge difficulty."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class HealthStatus(str, Enum):
    """Remote analysis service health."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


# ─── Service configuration ───────────────────────────────────────────────────


class ServiceConfig(BaseModel):
    """Connection and policy settings for the remote analysis service."""

    model_config = ConfigDict(frozen=True)

    api_endpoint: str = Field(min_length=1, description="Base URL of the analysis API")
    api_key: str = Field(min_length=1, repr=False, description="Bearer credential")
    rate_limit_per_hour: int = Field(100, ge=1, le=10000)
    timeout_seconds: float = Field(30, ge=5, le=300)
    retry_attempts: int = Field(3, ge=0, le=10)
    data_privacy_level: PrivacyLevel = PrivacyLevel.ENHANCED

    def updated(self, **changes: Any) -> ServiceConfig:
        """Return a re-validated copy with `changes` applied."""
        return ServiceConfig.model_validate({**self.model_dump(), **changes})


# ─── User data ───────────────────────────────────────────────────────────────


class ValidationRecord(BaseModel):
    """One validation of a skill. Histories of these are append-only."""

    date: datetime = Field(default_factory=utcnow)
    method: str = "challenge"
    score: float = Field(ge=0.0, le=100.0)
    feedback: Optional[str] = None


class UserSkill(BaseModel):
    """A manually entered skill with its self-assessment."""

    id: str
    name: str
    category: str = "programming"
    self_assessed_level: float = Field(description="0-100; range is checked by the analysis client")
    confidence_score: float = 0.3
    last_updated: datetime = Field(default_factory=utcnow)
    validation_history: list[ValidationRecord] = Field(default_factory=list)


class RepositoryAnalysis(BaseModel):
    """Third-party repository activity summary (e.g. from GitHub)."""

    model_config = ConfigDict(extra="allow")

    username: Optional[str] = None
    email: Optional[str] = None
    languages: dict[str, float] = Field(default_factory=dict)
    total_repositories: int = 0
    total_commits: int = 0
    top_topics: list[str] = Field(default_factory=list)


class LearningPlatformRecord(BaseModel):
    """Activity on a learning platform (courses, certificates)."""

    model_config = ConfigDict(extra="allow")

    platform: str
    user_id: str
    completed_courses: list[str] = Field(default_factory=list)
    certificates: list[str] = Field(default_factory=list)
    hours_spent: float = 0.0


class CareerGoals(BaseModel):
    target_role: str = ""
    timeframe: str = "6 months"
    priority_skills: list[str] = Field(default_factory=list)
    industry: Optional[str] = None


class AssessmentRecord(BaseModel):
    skill_id: str
    score: float
    completed_at: datetime = Field(default_factory=utcnow)


class UserSkillData(BaseModel):
    """Everything known about a user's skills. Owned by the caller."""

    manual_skills: list[UserSkill] = Field(default_factory=list)
    repository_analysis: Optional[RepositoryAnalysis] = None
    learning_platform_data: list[LearningPlatformRecord] = Field(default_factory=list)
    career_goals: Optional[CareerGoals] = None
    assessment_history: list[AssessmentRecord] = Field(default_factory=list)


# ─── Remote analysis results ─────────────────────────────────────────────────


class AnalysisResult(BaseModel):
    """Skill analysis returned by the remote service."""

    strengths: list[dict[str, Any]] = Field(default_factory=list)
    weaknesses: list[dict[str, Any]] = Field(default_factory=list)
    market_insights: dict[str, Any] = Field(default_factory=dict)
    career_recommendations: list[Any] = Field(default_factory=list)
    confidence_level: float = 0.0
    analysis_date: datetime = Field(default_factory=utcnow)
    data_sources_used: list[str] = Field(default_factory=lambda: ["manual_input"])


class PersonalizedPlan(BaseModel):
    """Improvement plan generated from an analysis and career goals."""

    id: str
    generated_date: datetime = Field(default_factory=utcnow)
    recommendations: list[Any] = Field(default_factory=list)
    estimated_timeframe: str = "6 months"
    priority_level: str = "medium"
    customizations: list[Any] = Field(default_factory=list)
    target_skills: list[Any] = Field(default_factory=list)
    success_metrics: list[Any] = Field(default_factory=list)


class ProgressReport(BaseModel):
    progress_insights: list[str] = Field(default_factory=list)
    trend_analysis: list[dict[str, Any]] = Field(default_factory=list)
    next_milestones: list[str] = Field(default_factory=list)


class ServiceHealth(BaseModel):
    status: HealthStatus
    response_time_ms: float
    rate_limit_remaining: int
    rate_limit_reset_at: datetime


# ─── Challenges ──────────────────────────────────────────────────────────────


class TestCase(BaseModel):
    __test__ = False

    input: str
    expected_output: str
    is_hidden: bool = False
    weight: float = Field(1.0, gt=0)


class ChallengeTemplate(BaseModel):
    """Static blueprint a concrete challenge is materialized from."""

    model_config = ConfigDict(frozen=True)

    category: str
    difficulty: Difficulty
    language: str
    title: str = Field(description="Title pattern; '{skill}' is replaced by the skill name")
    prompt: str
    expected_output: str
    time_limit: int = Field(gt=0, description="Minutes")
    test_cases: tuple[TestCase, ...]
    hints: tuple[str, ...] = ()


class Challenge(BaseModel):
    id: str
    skill_id: str
    title: str
    difficulty: Difficulty
    prompt: str
    expected_output: str
    time_limit: int = Field(description="Minutes")
    language: str
    test_cases: list[TestCase]
    hints: list[str] = Field(default_factory=list)


class TestCaseResult(BaseModel):
    __test__ = False

    input: str
    expected: str
    actual: str
    passed: bool
    weight: float


class ChallengeResult(BaseModel):
    """Outcome of grading one submission."""

    model_config = ConfigDict(frozen=True)

    challenge_id: str
    skill_id: str
    score: float = Field(ge=0.0, le=100.0)
    completion_time: float = Field(description="Seconds")
    passed_tests: int
    total_tests: int
    feedback: str
    confidence_adjustment: float
    test_results: tuple[TestCaseResult, ...] = ()


class ValidationResult(BaseModel):
    """Skill level and confidence after folding in a challenge result."""

    original_level: float
    adjusted_level: float
    confidence_score: float
    validation_record: ValidationRecord
    validation_history: list[ValidationRecord] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
