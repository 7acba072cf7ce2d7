"""Remote skill-analysis service client.

Endpoints: GET /health, POST /analyze/skills, POST /generate/plan,
POST /track/progress. JSON bodies, bearer credential.

Every call goes through the same dispatch: local rate-limit admission,
a hard per-attempt deadline, and retries with exponential backoff for
transient failures. User data is anonymized at the configured privacy
level before it is sent.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

import httpx

from ... import __version__
from ..anonymizer import anonymize
from ..errors import (
    AuthenticationError,
    ErrorKind,
    HttpError,
    MaxRetriesExceededError,
    NetworkError,
    RateLimitError,
    ServerError,
    ServiceTimeoutError,
    SkillServiceError,
    ValidationError,
)
from ..models import (
    AnalysisResult,
    CareerGoals,
    HealthStatus,
    PersonalizedPlan,
    ProgressReport,
    ServiceConfig,
    ServiceHealth,
    UserSkillData,
)
from ..rate_limit import RateLimiter
from ..retry import RetryPolicy

logger = logging.getLogger(__name__)

USER_AGENT = f"skill-intelligence/{__version__}"
DEFAULT_RETRY_AFTER_SECONDS = 60
DEFAULT_RATE_LIMIT_RETRIES = 5
HEALTHY_RESPONSE_MS = 2000
CONFIDENCE_THRESHOLD = 0.7

SleepFunc = Callable[[float], Awaitable[Any]]


class AnalysisClient:
    """Policy layer over httpx for the remote analysis service.

    A single RateLimiter can be passed to several clients so they share
    one hourly quota.
    """

    def __init__(
        self,
        config: ServiceConfig,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFunc = asyncio.sleep,
        max_rate_limit_retries: int = DEFAULT_RATE_LIMIT_RETRIES,
    ):
        self._config = config
        self._rate_limiter = rate_limiter or RateLimiter(config.rate_limit_per_hour)
        self._retry = RetryPolicy.from_config(config)
        self._transport = transport
        self._sleep = sleep
        self._max_rate_limit_retries = max_rate_limit_retries

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def update_config(self, **changes: Any) -> ServiceConfig:
        """Apply and re-validate config changes; refreshes rate-limit capacity."""
        self._config = self._config.updated(**changes)
        self._retry = RetryPolicy.from_config(self._config)
        if "rate_limit_per_hour" in changes:
            self._rate_limiter.update_capacity(self._config.rate_limit_per_hour)
        return self._config

    # ─── Public operations ───────────────────────────────────────────────────

    async def validate_connection(self) -> bool:
        """Check the health endpoint. Authentication failures are raised, anything else is False."""
        try:
            body = await self._request("GET", "/health")
        except SkillServiceError as exc:
            if exc.kind is ErrorKind.AUTHENTICATION:
                raise
            logger.warning("Analysis service connection check failed: %s", exc)
            return False
        return body.get("status") == "ok"

    async def analyze_skills(self, user_data: Optional[UserSkillData]) -> AnalysisResult:
        """Analyze a user's skills and return strengths, gaps, and market insights."""
        _validate_user_data(user_data)

        anonymized = anonymize(user_data, self._config.data_privacy_level)
        body = await self._request("POST", "/analyze/skills", {
            "user_data": anonymized.model_dump(mode="json"),
            "analysis_options": {
                "include_market_insights": True,
                "include_career_recommendations": True,
                "confidence_threshold": CONFIDENCE_THRESHOLD,
            },
        })
        return _parse_analysis(body)

    async def generate_improvement_plan(
        self,
        analysis: AnalysisResult,
        goals: CareerGoals,
    ) -> PersonalizedPlan:
        """Generate a plan from derived analysis fields only; raw user data is never re-sent."""
        if analysis is None:
            raise ValidationError("Analysis result is required")
        if goals is None:
            raise ValidationError("Career goals are required")

        body = await self._request("POST", "/generate/plan", {
            "analysis": {
                "strengths": analysis.strengths,
                "weaknesses": analysis.weaknesses,
                "market_insights": analysis.market_insights,
            },
            "career_goals": goals.model_dump(mode="json"),
            "plan_options": {
                "timeframe": goals.timeframe,
                "focus_areas": goals.priority_skills,
                "learning_style": "mixed",
            },
        })
        return _parse_plan(body)

    async def track_progress(
        self,
        current_data: UserSkillData,
        history: list[AnalysisResult],
    ) -> ProgressReport:
        """Compare current data against earlier analyses."""
        if current_data is None:
            raise ValidationError("Current user data is required")

        anonymized = anonymize(current_data, self._config.data_privacy_level)
        body = await self._request("POST", "/track/progress", {
            "current_data": anonymized.model_dump(mode="json"),
            "historical_analyses": [
                {
                    "date": a.analysis_date.isoformat(),
                    "strengths": a.strengths,
                    "weaknesses": a.weaknesses,
                    "confidence_level": a.confidence_level,
                }
                for a in history or []
            ],
        })
        return ProgressReport(
            progress_insights=body.get("progress_insights") or [],
            trend_analysis=body.get("trend_analysis") or [],
            next_milestones=body.get("next_milestones") or [],
        )

    async def get_service_health(self) -> ServiceHealth:
        """Report service status and local quota. Never raises."""
        start = time.perf_counter()
        try:
            ok = await self.validate_connection()
        except Exception as exc:
            logger.warning("Health check failed: %s", exc, exc_info=True)
            ok = False
        elapsed_ms = (time.perf_counter() - start) * 1000

        if not ok:
            status = HealthStatus.UNHEALTHY
        elif elapsed_ms < HEALTHY_RESPONSE_MS:
            status = HealthStatus.HEALTHY
        else:
            status = HealthStatus.DEGRADED

        return ServiceHealth(
            status=status,
            response_time_ms=round(elapsed_ms, 1),
            rate_limit_remaining=self._rate_limiter.remaining,
            rate_limit_reset_at=self._rate_limiter.reset_at,
        )

    # ─── Dispatch ────────────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> dict:
        """Admit, dispatch with retries, then record usage exactly once."""
        self._rate_limiter.admit()
        try:
            body = await self._dispatch(method, path, payload)
        except BaseException:
            # Includes cancellation: a call that never succeeded does not use quota
            self._rate_limiter.release()
            raise
        self._rate_limiter.record()
        return body

    async def _dispatch(self, method: str, path: str, payload: Optional[dict]) -> dict:
        attempt = 1
        tries = 0
        rate_limit_retries = 0
        last_error: Optional[SkillServiceError] = None

        while attempt <= self._retry.max_attempts:
            tries += 1
            try:
                return await self._execute(method, path, payload)
            except SkillServiceError as exc:
                last_error = exc

                if exc.kind is ErrorKind.RATE_LIMIT:
                    if rate_limit_retries >= self._max_rate_limit_retries:
                        break
                    rate_limit_retries += 1
                    logger.warning(
                        "Analysis service rate limited %s %s; retrying in %ss",
                        method, path, exc.retry_after,
                    )
                    await self._sleep(exc.retry_after)
                    continue

                if not exc.retryable:
                    raise

                if attempt >= self._retry.max_attempts:
                    break

                delay = self._retry.delay(attempt)
                logger.warning(
                    "%s %s failed (%s, attempt %d/%d); retrying in %.1fs",
                    method, path, exc.kind.value, attempt, self._retry.max_attempts, delay,
                )
                await self._sleep(delay)
                attempt += 1

        raise MaxRetriesExceededError(tries, last_error) from last_error

    async def _execute(self, method: str, path: str, payload: Optional[dict]) -> dict:
        url = f"{self._config.api_endpoint.rstrip('/')}{path}"
        headers = {
            "Authorization": f"Bearer {self._config.api_key}",
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }
        timeout = self._config.timeout_seconds

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(timeout, connect=min(10.0, timeout)),
                transport=self._transport,
            ) as client:
                response = await asyncio.wait_for(
                    client.request(method, url, json=payload, headers=headers),
                    timeout=timeout,
                )
        except asyncio.TimeoutError as exc:
            raise ServiceTimeoutError() from exc
        except httpx.TimeoutException as exc:
            raise ServiceTimeoutError(f"Request timeout: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Network error: {exc}") from exc

        if response.is_error:
            raise _error_from_response(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise HttpError("Analysis service returned invalid JSON", response.status_code) from exc
        return data if isinstance(data, dict) else {"data": data}


def _error_from_response(response: httpx.Response) -> SkillServiceError:
    """Map an HTTP error status to the error taxonomy."""
    message = f"HTTP {response.status_code}: {response.reason_phrase}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        message = str(body["message"])

    status = response.status_code
    if status == 401:
        return AuthenticationError(message)
    if status == 429:
        return RateLimitError(message, _parse_retry_after(response.headers.get("Retry-After")))
    if status == 400:
        return ValidationError(message)
    if 500 <= status < 600:
        return ServerError(message, status)
    return HttpError(message, status)


def _parse_retry_after(value: Optional[str]) -> float:
    if not value:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        return max(0.0, float(value))
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS


def _validate_user_data(user_data: Optional[UserSkillData]) -> None:
    if user_data is None:
        raise ValidationError("User data is required")
    if not user_data.manual_skills:
        raise ValidationError("At least one skill is required")
    if user_data.career_goals is None:
        raise ValidationError("Career goals are required")
    for skill in user_data.manual_skills:
        if not 0 <= skill.self_assessed_level <= 100:
            raise ValidationError(
                f"Invalid skill level for {skill.name}: must be between 0 and 100"
            )


def _parse_analysis(body: dict) -> AnalysisResult:
    return AnalysisResult(
        strengths=body.get("strengths") or [],
        weaknesses=body.get("weaknesses") or [],
        market_insights=body.get("market_insights") or {},
        career_recommendations=body.get("career_recommendations") or [],
        confidence_level=body.get("confidence_level") or 0.0,
        data_sources_used=body.get("data_sources_used") or ["manual_input"],
    )


def _parse_plan(body: dict) -> PersonalizedPlan:
    return PersonalizedPlan(
        id=body.get("id") or f"plan_{int(time.time() * 1000)}",
        recommendations=body.get("recommendations") or [],
        estimated_timeframe=body.get("estimated_timeframe") or "6 months",
        priority_level=body.get("priority_level") or "medium",
        target_skills=body.get("target_skills") or [],
        success_metrics=body.get("success_metrics") or [],
    )
