import threading

import pytest

from skill_intelligence.core.challenges import (
    CHALLENGE_TEMPLATES,
    ChallengeCatalog,
    find_template,
)
from skill_intelligence.core.errors import (
    ChallengeLookupError,
    ChallengeNotFoundError,
    TemplateNotFoundError,
)
from skill_intelligence.core.models import Difficulty


def test_exact_template_match():
    template = find_template("frontend", "beginner", "javascript")
    assert template.category == "frontend"
    assert template.time_limit == 20


def test_falls_back_to_any_language():
    template = find_template("programming", Difficulty.INTERMEDIATE, "python")
    assert template.category == "programming"
    assert template.difficulty is Difficulty.INTERMEDIATE


def test_falls_back_to_programming_category():
    template = find_template("data-structures", "beginner", "javascript")
    assert template.category == "programming"
    assert template.difficulty is Difficulty.BEGINNER

    template = find_template("devops", "advanced", "javascript")
    assert template.category == "programming"
    assert template.time_limit == 45


def test_no_template_at_any_tier():
    frontend_only = [t for t in CHALLENGE_TEMPLATES if t.category == "frontend"]
    assert find_template("frontend", "advanced", "javascript", frontend_only) is None

    catalog = ChallengeCatalog(frontend_only)
    with pytest.raises(TemplateNotFoundError) as exc_info:
        catalog.generate_challenge("skill-1", "React", "frontend", "advanced")
    assert "frontend at advanced level" in str(exc_info.value)


def test_unknown_difficulty_rejected():
    with pytest.raises(ValueError):
        ChallengeCatalog().generate_challenge("skill-1", "JS", "programming", "expert")


def test_generated_challenge_fields():
    catalog = ChallengeCatalog()
    challenge = catalog.generate_challenge("skill-js", "JavaScript", "programming", "beginner", "python")

    assert challenge.id.startswith("challenge_")
    assert challenge.skill_id == "skill-js"
    assert challenge.title == "Basic JavaScript Challenge"
    assert challenge.language == "python"
    assert challenge.time_limit == 15
    assert len(challenge.test_cases) == 4
    assert sum(tc.is_hidden for tc in challenge.test_cases) == 2
    assert challenge.hints


def test_challenges_are_retained_per_skill():
    catalog = ChallengeCatalog()
    first = catalog.generate_challenge("skill-js", "JavaScript", "programming", "beginner")
    second = catalog.generate_challenge("skill-js", "JavaScript", "programming", "advanced")
    catalog.generate_challenge("skill-css", "CSS", "frontend", "beginner")

    assert [c.id for c in catalog.get_available_challenges("skill-js")] == [first.id, second.id]
    assert catalog.get_available_challenges("unknown") == []
    assert catalog.get_challenge(second.id) is second
    assert first.id != second.id


def test_unknown_challenge_id():
    with pytest.raises(ChallengeNotFoundError, match="Challenge nope not found"):
        ChallengeCatalog().get_challenge("nope")


def test_lookup_errors_share_a_base():
    assert issubclass(ChallengeNotFoundError, LookupError)
    assert issubclass(TemplateNotFoundError, ChallengeLookupError)


def test_challenge_test_cases_are_independent_of_template():
    catalog = ChallengeCatalog()
    challenge = catalog.generate_challenge("skill-js", "JavaScript", "programming", "beginner")
    challenge.test_cases[0].expected_output = "tampered"

    again = catalog.generate_challenge("skill-js", "JavaScript", "programming", "beginner")
    assert again.test_cases[0].expected_output == "12"


def test_concurrent_generation_for_one_skill_keeps_every_challenge():
    catalog = ChallengeCatalog()
    barrier = threading.Barrier(20)
    created = []

    def worker():
        barrier.wait()
        created.append(catalog.generate_challenge("skill-js", "JS", "programming", "beginner").id)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stored = [c.id for c in catalog.get_available_challenges("skill-js")]
    assert sorted(stored) == sorted(created)
    assert len(set(stored)) == 20
