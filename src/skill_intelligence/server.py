"""Skill Intelligence MCP Server.

FastMCP server exposing skill analysis, coding challenges, and skill
confidence to the UI layer. Everything crosses this boundary as plain
JSON-compatible dicts.
Run: skill-intelligence-mcp
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from . import config as service_config
from .core.clients.analysis import AnalysisClient
from .core.grader import ChallengeGrader
from .core.models import (
    AnalysisResult,
    CareerGoals,
    Challenge,
    ServiceConfig,
    UserSkill,
    UserSkillData,
)
from .core.rate_limit import RateLimiter
from .db import close_db, init_db
from .history import get_validation_history, record_validation

logger = logging.getLogger(__name__)

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=True)
LOCAL_WRITE = ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=False, openWorldHint=False)

grader = ChallengeGrader()
_client: Optional[AnalysisClient] = None
# One hourly quota per process; it outlives clients rebuilt after a config change
_rate_limiter: Optional[RateLimiter] = None
_client_lock = asyncio.Lock()


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Initialize the local database."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    await init_db()
    try:
        yield
    finally:
        await close_db()


mcp = FastMCP(
    "Skill Intelligence",
    instructions="Analyze skill gaps against the job market, plan improvements, and validate self-assessed skills with coding challenges.",
    lifespan=lifespan,
)


def _shared_rate_limiter(max_requests: int) -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(max_requests)
    return _rate_limiter


async def _get_client() -> AnalysisClient:
    global _client
    async with _client_lock:
        if _client is None:
            config = await service_config.resolve_config()
            limiter = _shared_rate_limiter(config.rate_limit_per_hour)
            limiter.update_capacity(config.rate_limit_per_hour)
            _client = AnalysisClient(config, rate_limiter=limiter)
    return _client



def _public_challenge(challenge: Challenge) -> dict:
    """Challenge as shown to the user: hidden test cases are counted, not revealed."""
    data = challenge.model_dump(mode="json", exclude={"test_cases"})
    data["test_cases"] = [
        tc.model_dump(mode="json") for tc in challenge.test_cases if not tc.is_hidden
    ]
    data["hidden_test_count"] = sum(1 for tc in challenge.test_cases if tc.is_hidden)
    return data


# ─── Tool 1: Skill Analysis ──────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def skills_analyze(user_data: dict) -> dict:
    """Analyze skills against market demand: strengths, weaknesses, career recommendations.

    User data is anonymized at the configured privacy level before it is sent.

    Args:
        user_data: Manual skills, career goals, and optional repository/learning-platform data.
    """
    client = await _get_client()
    analysis = await client.analyze_skills(UserSkillData.model_validate(user_data))
    return analysis.model_dump(mode="json")


# ─── Tool 2: Improvement Plan ────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def skills_improvement_plan(analysis: dict, goals: dict) -> dict:
    """Personalized improvement plan from a previous analysis and career goals.

    Args:
        analysis: Result of skills_analyze.
        goals: Target role, timeframe, and priority skills.
    """
    client = await _get_client()
    plan = await client.generate_improvement_plan(
        AnalysisResult.model_validate(analysis),
        CareerGoals.model_validate(goals),
    )
    return plan.model_dump(mode="json")


# ─── Tool 3: Progress ────────────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def skills_track_progress(current_data: dict, history: list[dict]) -> dict:
    """Progress insights, skill trends, and next milestones compared with earlier analyses.

    Args:
        current_data: Current user skill data.
        history: Earlier skills_analyze results, any order.
    """
    client = await _get_client()
    report = await client.track_progress(
        UserSkillData.model_validate(current_data),
        [AnalysisResult.model_validate(h) for h in history],
    )
    return report.model_dump(mode="json")


# ─── Tool 4: Service Health ──────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def service_health() -> dict:
    """Analysis service status, response time, and remaining hourly quota."""
    client = await _get_client()
    health = await client.get_service_health()
    return health.model_dump(mode="json")


# ─── Tool 5: Generate Challenge ──────────────────────────────────────────────


@mcp.tool(annotations=LOCAL_WRITE)
async def challenge_generate(
    skill_id: str,
    skill_name: str,
    category: str = "programming",
    difficulty: str = "beginner",
    language: str = "javascript",
) -> dict:
    """Generate a coding challenge to validate a skill.

    Args:
        skill_id: Skill the challenge validates.
        skill_name: Display name used in the challenge title.
        category: 'programming', 'frontend', 'data-structures', ...
        difficulty: 'beginner', 'intermediate', or 'advanced'.
        language: Solution language. Default 'javascript'.
    """
    challenge = grader.generate_challenge(skill_id, skill_name, category, difficulty, language)
    return _public_challenge(challenge)


# ─── Tool 6: List Challenges ─────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def challenge_list(skill_id: str) -> dict:
    """Challenges generated so far for a skill.

    Args:
        skill_id: Skill to list challenges for.
    """
    challenges = grader.get_available_challenges(skill_id)
    return {
        "skill_id": skill_id,
        "challenges": [_public_challenge(c) for c in challenges],
        "count": len(challenges),
    }


# ─── Tool 7: Submit Challenge ────────────────────────────────────────────────


@mcp.tool(annotations=LOCAL_WRITE)
async def challenge_submit(
    challenge_id: str,
    code: str,
    completion_time_seconds: float,
    skill: Optional[dict] = None,
) -> dict:
    """Grade a challenge submission and, if the skill is given, fold the result into it.

    Args:
        challenge_id: Id from challenge_generate.
        code: Submitted solution.
        completion_time_seconds: Time taken.
        skill: Optional user skill (id, name, self_assessed_level, confidence_score).
               When provided, the validation is recorded in the local history.
    """
    result = grader.validate_challenge(challenge_id, code, completion_time_seconds)
    response = {
        "result": result.model_dump(mode="json", exclude={"test_results"}),
        "summary": result.feedback,
    }

    if skill is not None:
        user_skill = UserSkill.model_validate(skill)
        validation = grader.process_validation_result(user_skill, result)
        await record_validation(user_skill.id, validation.validation_record)
        response["validation"] = validation.model_dump(mode="json", exclude={"validation_history"})

    return response


# ─── Tool 8: Skill Confidence ────────────────────────────────────────────────


@mcp.tool(annotations=READ_ONLY)
async def skill_confidence(skill_id: str) -> dict:
    """Confidence in a skill level from its recorded validation history.

    Args:
        skill_id: Skill to score.
    """
    history = await get_validation_history(skill_id)
    confidence = grader.calculate_skill_confidence(history)
    return {
        "skill_id": skill_id,
        "confidence": round(confidence, 4),
        "validation_count": len(history),
        "history": [r.model_dump(mode="json") for r in history[-10:]],
        "summary": f"Confidence {confidence:.0%} from {len(history)} recorded validation(s).",
    }


# ─── Tool 9-11: Configuration ────────────────────────────────────────────────


@mcp.tool(annotations=LOCAL_WRITE)
async def service_config_save(config: dict) -> dict:
    """Save an analysis service configuration locally (used when AI_SERVICE_* env vars are unset).

    Args:
        config: api_endpoint, api_key, and optional rate_limit_per_hour, timeout_seconds,
                retry_attempts, data_privacy_level.
    """
    global _client
    values = {**service_config.default_config(), **config}
    errors = service_config.validate_config(values)
    if errors:
        return {"saved": False, "errors": errors}

    await service_config.save_config(ServiceConfig.model_validate(values))
    async with _client_lock:
        _client = None
    return {"saved": True, "errors": []}


@mcp.tool(annotations=LOCAL_WRITE)
async def service_config_clear() -> dict:
    """Remove the locally saved analysis service configuration."""
    global _client
    await service_config.clear_config()
    async with _client_lock:
        _client = None
    return {"cleared": True}


@mcp.tool(annotations=READ_ONLY)
async def service_config_test(config: dict) -> dict:
    """Test an analysis service configuration by checking the health endpoint.

    Args:
        config: Configuration to test; same fields as service_config_save.
    """
    values = {**service_config.default_config(), **config}
    errors = service_config.validate_config(values)
    if errors:
        return {"success": False, "error": "; ".join(errors), "response_time_ms": None}
    candidate = ServiceConfig.model_validate(values)
    return await service_config.test_config(
        candidate, rate_limiter=_shared_rate_limiter(candidate.rate_limit_per_hour)
    )


def main():
    """Entry point for the CLI command."""
    mcp.run()


if __name__ == "__main__":
    main()
