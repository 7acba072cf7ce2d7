"""Analysis service configuration.

Two sources, read once at startup:

1. Environment variables (AI_SERVICE_*), used whenever both the endpoint
   and the API key are set.
2. A configuration saved in the local SQLite store. This is a lower-trust
   fallback; its API key is obfuscated, not encrypted.

Core code only ever sees the resolved ServiceConfig.
"""

from __future__ import annotations

import base64
import json
import logging
import os
import time
from typing import Any, Mapping, Optional

import httpx
import pydantic
from sqlalchemy import delete, select

from .core.clients.analysis import AnalysisClient
from .core.errors import ServiceNotConfiguredError, ValidationError
from .core.models import PrivacyLevel, ServiceConfig, utcnow
from .core.rate_limit import RateLimiter
from .db import session_scope
from .sqlmodels import StoredConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "AI_SERVICE_"
ENV_VARS = {
    "api_endpoint": f"{ENV_PREFIX}API_ENDPOINT",
    "api_key": f"{ENV_PREFIX}API_KEY",
    "rate_limit_per_hour": f"{ENV_PREFIX}RATE_LIMIT",
    "timeout_seconds": f"{ENV_PREFIX}TIMEOUT",
    "retry_attempts": f"{ENV_PREFIX}RETRY_ATTEMPTS",
    "data_privacy_level": f"{ENV_PREFIX}PRIVACY_LEVEL",
}

STORE_KEY = "analysis_service"
MIN_API_KEY_LENGTH = 10

# field -> (type, low, high, label, unit)
NUMERIC_LIMITS = {
    "rate_limit_per_hour": (int, 1, 10000, "Rate limit", " requests per hour"),
    "timeout_seconds": (float, 5, 300, "Timeout", " seconds"),
    "retry_attempts": (int, 0, 10, "Retry attempts", ""),
}


def default_config() -> dict[str, Any]:
    """Template for a new configuration; endpoint and key still need filling in."""
    return {
        "api_endpoint": "https://api.example.com/v1",
        "rate_limit_per_hour": 100,
        "timeout_seconds": 30,
        "retry_attempts": 3,
        "data_privacy_level": PrivacyLevel.ENHANCED.value,
    }


def load_from_environment(environ: Optional[Mapping[str, str]] = None) -> Optional[ServiceConfig]:
    """Build a config from AI_SERVICE_* variables, or None if endpoint/key are missing."""
    env = os.environ if environ is None else environ

    endpoint = env.get(ENV_VARS["api_endpoint"])
    api_key = env.get(ENV_VARS["api_key"])
    if not endpoint or not api_key:
        return None

    values = {"api_endpoint": endpoint, "api_key": api_key}
    for field, var in ENV_VARS.items():
        if field not in values and env.get(var):
            values[field] = env[var]
    return _build(values)


async def load_from_store() -> Optional[ServiceConfig]:
    """Read the locally saved configuration, if any."""
    async with session_scope() as session:
        result = await session.execute(select(StoredConfig).where(StoredConfig.key == STORE_KEY))
        row = result.scalar_one_or_none()

    if row is None:
        return None

    values = json.loads(row.value)
    if values.get("api_key"):
        values["api_key"] = _reveal(values["api_key"])
    return _build(values)


async def resolve_config(environ: Optional[Mapping[str, str]] = None) -> ServiceConfig:
    """Environment first, then the local store.

    Raises:
        ServiceNotConfiguredError: if neither source provides a configuration.
    """
    config = load_from_environment(environ)
    if config is not None:
        logger.info("Using analysis service configuration from environment")
        return config

    config = await load_from_store()
    if config is not None:
        logger.info("Using locally stored analysis service configuration")
        return config

    raise ServiceNotConfiguredError(
        f"Analysis service is not configured. Set {ENV_VARS['api_endpoint']} and "
        f"{ENV_VARS['api_key']}, or save a configuration locally."
    )


async def save_config(config: ServiceConfig) -> None:
    """Persist a configuration to the local store, replacing any previous one."""
    values = config.model_dump(mode="json")
    values["api_key"] = _obscure(config.api_key)

    async with session_scope() as session:
        result = await session.execute(select(StoredConfig).where(StoredConfig.key == STORE_KEY))
        row = result.scalar_one_or_none()
        if row:
            row.value = json.dumps(values)
            row.updated_at = utcnow()
        else:
            session.add(StoredConfig(key=STORE_KEY, value=json.dumps(values), updated_at=utcnow()))
    logger.info("Saved analysis service configuration for %s", config.api_endpoint)


async def clear_config() -> None:
    """Remove the locally saved configuration."""
    async with session_scope() as session:
        await session.execute(delete(StoredConfig).where(StoredConfig.key == STORE_KEY))


def validate_config(values: Mapping[str, Any]) -> list[str]:
    """Check a (possibly partial) configuration and return human-readable problems."""
    errors: list[str] = []

    endpoint = values.get("api_endpoint")
    if not endpoint:
        errors.append("API endpoint is required")
    elif not _is_valid_url(endpoint):
        errors.append("API endpoint must be a valid URL")

    api_key = values.get("api_key")
    if not api_key:
        errors.append("API key is required")
    elif not isinstance(api_key, str):
        errors.append("API key must be a string")
    elif len(api_key) < MIN_API_KEY_LENGTH:
        errors.append("API key appears to be too short")

    # Numbers are coerced the same way ServiceConfig coerces them, so "30" is fine and 5.5 retries is not
    for field, (kind, low, high, label, unit) in NUMERIC_LIMITS.items():
        raw = values.get(field)
        if raw is None:
            continue
        try:
            number = pydantic.TypeAdapter(kind).validate_python(raw)
        except pydantic.ValidationError:
            errors.append(f"{label} must be {'a whole number' if kind is int else 'a number'}")
            continue
        if not low <= number <= high:
            errors.append(f"{label} must be between {low} and {high}{unit}")

    level = values.get("data_privacy_level")
    if level is not None and level not in tuple(p.value for p in PrivacyLevel):
        errors.append("Data privacy level must be one of: basic, enhanced, maximum")

    return errors


async def test_config(
    config: ServiceConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> dict[str, Any]:
    """Try a connection with a throwaway client.

    Pass the live `rate_limiter` so the check counts against the same hourly quota.
    Returns a dict with `success`, `response_time_ms`, and `error` (None on success).
    """
    start = time.perf_counter()
    client = AnalysisClient(config, rate_limiter=rate_limiter, transport=transport)
    try:
        success = await client.validate_connection()
    except Exception as exc:
        logger.warning("Configuration test failed: %s", exc)
        return {"success": False, "response_time_ms": None, "error": str(exc)}

    return {
        "success": success,
        "response_time_ms": round((time.perf_counter() - start) * 1000, 1),
        "error": None,
    }


def _build(values: Mapping[str, Any]) -> ServiceConfig:
    try:
        return ServiceConfig.model_validate(values)
    except pydantic.ValidationError as exc:
        problems = "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors())
        raise ValidationError(f"Invalid analysis service configuration: {problems}") from exc


def _is_valid_url(url: str) -> bool:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return False
    return bool(parsed.scheme and parsed.host)


def _obscure(api_key: str) -> str:
    return base64.b64encode(api_key[::-1].encode("utf-8")).decode("ascii")


def _reveal(stored: str) -> str:
    return base64.b64decode(stored.encode("ascii")).decode("utf-8")[::-1]
