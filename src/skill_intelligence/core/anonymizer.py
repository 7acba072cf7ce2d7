"""Privacy reduction for user skill data before it leaves the process.

Each privacy level builds on the one below it:

- basic: strip direct identifiers, hash learning-platform user IDs
- enhanced: + blank timestamps and validation history, generalize target role
- maximum: + drop platform data and repository analysis, pseudonymize skills

Hashed values have the shape `anon_<16 hex digits>` and are never
re-hashed, which keeps the transform idempotent and lets the levels
layer cleanly.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any, Union

from .models import EPOCH, PrivacyLevel, UserSkillData

HASH_PREFIX = "anon_"
HASH_PATTERN = re.compile(rf"{HASH_PREFIX}[0-9a-f]{{16}}")

SENSITIVE_FIELDS = frozenset({
    "username",
    "email",
    "phone",
    "address",
    "ssn",
    "personal_id",
    "full_name",
})

ROLE_CATEGORIES: dict[str, str] = {
    "senior software engineer": "software_engineer",
    "software engineer": "software_engineer",
    "frontend developer": "frontend_developer",
    "backend developer": "backend_developer",
    "full stack developer": "fullstack_developer",
    "data scientist": "data_scientist",
    "product manager": "product_manager",
    "devops engineer": "devops_engineer",
}
FALLBACK_ROLE = "other_technical_role"
_GENERALIZED_ROLES = frozenset(ROLE_CATEGORIES.values()) | {FALLBACK_ROLE}


def anonymize(data: UserSkillData, level: Union[PrivacyLevel, str]) -> UserSkillData:
    """Return a privacy-reduced deep copy of `data`. The input is never mutated."""
    level = PrivacyLevel(level)
    raw = data.model_dump()

    if level is PrivacyLevel.MAXIMUM:
        _maximum(raw)
    elif level is PrivacyLevel.ENHANCED:
        _enhanced(raw)
    else:
        _basic(raw)

    return UserSkillData.model_validate(raw)


def hash_identifier(value: str) -> str:
    """Stable one-way pseudonym for an identifier. Already-hashed values pass through."""
    if HASH_PATTERN.fullmatch(value):
        return value
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]
    return f"{HASH_PREFIX}{digest}"


def generalize_role(role: str) -> str:
    if role in _GENERALIZED_ROLES:
        return role
    return ROLE_CATEGORIES.get(role.strip().lower(), FALLBACK_ROLE)


def _basic(raw: dict) -> None:
    if raw.get("repository_analysis") is not None:
        _strip_sensitive(raw["repository_analysis"])

    for platform in raw.get("learning_platform_data", []):
        _strip_sensitive(platform)
        platform["user_id"] = hash_identifier(str(platform["user_id"]))


def _enhanced(raw: dict) -> None:
    _basic(raw)

    for skill in raw.get("manual_skills", []):
        skill["last_updated"] = EPOCH
        skill["validation_history"] = []

    for assessment in raw.get("assessment_history", []):
        assessment["completed_at"] = EPOCH

    goals = raw.get("career_goals")
    if goals and goals.get("target_role"):
        goals["target_role"] = generalize_role(goals["target_role"])


def _maximum(raw: dict) -> None:
    _enhanced(raw)

    raw["learning_platform_data"] = []
    raw["repository_analysis"] = None

    for skill in raw.get("manual_skills", []):
        skill["name"] = f"skill_{skill['category']}_{skill['self_assessed_level']:g}"
        skill["id"] = hash_identifier(str(skill["id"]))


def _strip_sensitive(node: Any) -> None:
    if isinstance(node, dict):
        for key in [k for k in node if k in SENSITIVE_FIELDS]:
            del node[key]
        for value in node.values():
            _strip_sensitive(value)
    elif isinstance(node, list):
        for item in node:
            _strip_sensitive(item)
