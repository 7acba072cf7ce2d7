import pytest

from skill_intelligence.core.anonymizer import (
    FALLBACK_ROLE,
    HASH_PREFIX,
    anonymize,
    generalize_role,
    hash_identifier,
)
from skill_intelligence.core.models import EPOCH, CareerGoals, PrivacyLevel


def test_basic_strips_identifiers_and_hashes_platform_ids(user_data):
    result = anonymize(user_data, PrivacyLevel.BASIC)
    dumped = result.model_dump_json()

    assert "octocat" not in dumped
    assert "octo@example.com" not in dumped
    assert "Octo Cat" not in dumped
    assert result.repository_analysis.username is None
    assert result.repository_analysis.languages == {"JavaScript": 0.7, "Python": 0.3}

    platform = result.learning_platform_data[0]
    assert platform.user_id == hash_identifier("user-42")
    assert platform.user_id.startswith(HASH_PREFIX)
    assert platform.completed_courses == ["Algorithms"]

    # Basic keeps timestamps and history
    assert result.manual_skills[0].validation_history


def test_enhanced_blanks_timestamps_and_generalizes_role(user_data):
    result = anonymize(user_data, "enhanced")

    for skill in result.manual_skills:
        assert skill.validation_history == []
        assert skill.last_updated == EPOCH
    assert result.assessment_history[0].completed_at == EPOCH
    assert result.career_goals.target_role == "software_engineer"
    assert "octocat" not in result.model_dump_json()


def test_maximum_drops_external_sources_and_pseudonymizes_skills(user_data):
    result = anonymize(user_data, PrivacyLevel.MAXIMUM)

    assert result.learning_platform_data == []
    assert result.repository_analysis is None
    assert [s.name for s in result.manual_skills] == [
        "skill_programming_70",
        "skill_frontend_55.5",
    ]
    assert all(s.id.startswith(HASH_PREFIX) for s in result.manual_skills)
    assert result.manual_skills[0].self_assessed_level == 70


@pytest.mark.parametrize("level", list(PrivacyLevel))
def test_anonymize_is_idempotent(user_data, level):
    once = anonymize(user_data, level)
    twice = anonymize(once, level)
    assert twice.model_dump() == once.model_dump()


def test_maximum_layers_over_lower_levels(user_data):
    direct = anonymize(user_data, PrivacyLevel.MAXIMUM)
    layered = anonymize(
        anonymize(anonymize(user_data, PrivacyLevel.BASIC), PrivacyLevel.ENHANCED),
        PrivacyLevel.MAXIMUM,
    )
    assert layered.model_dump() == direct.model_dump()


def test_input_is_not_mutated(user_data):
    before = user_data.model_dump()
    result = anonymize(user_data, PrivacyLevel.MAXIMUM)

    assert user_data.model_dump() == before
    result.manual_skills[0].name = "changed"
    assert user_data.manual_skills[0].name == "JavaScript"


def test_unmapped_role_uses_fallback():
    assert generalize_role("Chief Wizard") == FALLBACK_ROLE
    assert generalize_role("  Data Scientist ") == "data_scientist"
    assert generalize_role("data_scientist") == "data_scientist"


def test_missing_career_goals_are_tolerated(user_data):
    data = user_data.model_copy(update={"career_goals": CareerGoals()})
    result = anonymize(data, PrivacyLevel.ENHANCED)
    assert result.career_goals.target_role == ""


def test_hash_identifier_is_stable_and_not_rehashed():
    first = hash_identifier("user-42")
    assert first == hash_identifier("user-42")
    assert hash_identifier(first) == first
    assert first != hash_identifier("user-43")


def test_values_that_only_look_like_hashes_are_hashed():
    hashed = hash_identifier("anon_bob")

    assert hashed != "anon_bob"
    assert hashed.startswith("anon_")
    assert len(hashed) == len("anon_") + 16
    assert hash_identifier(hashed) == hashed
