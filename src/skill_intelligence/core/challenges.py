"""Challenge templates and the per-skill challenge store.

Templates are static and keyed by (category, difficulty, language).
Lookup falls back from an exact match, to any language, to the generic
"programming" category at the same difficulty.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Iterable, Optional, Union

from .errors import ChallengeNotFoundError, TemplateNotFoundError
from .models import Challenge, ChallengeTemplate, Difficulty, TestCase

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "programming"

CHALLENGE_TEMPLATES: tuple[ChallengeTemplate, ...] = (
    # Programming logic
    ChallengeTemplate(
        category="programming",
        difficulty=Difficulty.BEGINNER,
        language="javascript",
        title="Basic {skill} Challenge",
        prompt="Write a function that takes an array of numbers and returns the sum of all even numbers.",
        expected_output="Function should return correct sum of even numbers",
        time_limit=15,
        test_cases=(
            TestCase(input="[1, 2, 3, 4, 5, 6]", expected_output="12"),
            TestCase(input="[2, 4, 6, 8]", expected_output="20"),
            TestCase(input="[1, 3, 5]", expected_output="0", is_hidden=True),
            TestCase(input="[]", expected_output="0", is_hidden=True),
        ),
        hints=("Consider using filter() and reduce()", "Remember to check if number % 2 === 0"),
    ),
    ChallengeTemplate(
        category="programming",
        difficulty=Difficulty.INTERMEDIATE,
        language="javascript",
        title="Intermediate {skill} Challenge",
        prompt="Implement a function that finds the longest common subsequence between two strings.",
        expected_output="Function should return the length of the longest common subsequence",
        time_limit=30,
        test_cases=(
            TestCase(input='"ABCDGH", "AEDFHR"', expected_output="3"),
            TestCase(input='"AGGTAB", "GXTXAYB"', expected_output="4"),
            TestCase(input='"", "ABC"', expected_output="0", is_hidden=True),
            TestCase(input='"ABC", "ABC"', expected_output="3", is_hidden=True),
        ),
        hints=("This is a dynamic programming problem", "Consider using a 2D array to store intermediate results"),
    ),
    ChallengeTemplate(
        category="programming",
        difficulty=Difficulty.ADVANCED,
        language="javascript",
        title="Advanced {skill} Challenge",
        prompt="Implement a function that solves the N-Queens problem and returns all possible solutions.",
        expected_output="Function should return array of all valid N-Queens solutions",
        time_limit=45,
        test_cases=(
            TestCase(input="4", expected_output="2"),
            TestCase(input="1", expected_output="1"),
            TestCase(input="8", expected_output="92", is_hidden=True, weight=2),
        ),
        hints=("Use backtracking algorithm", "Check for conflicts in rows, columns, and diagonals"),
    ),
    # Frontend
    ChallengeTemplate(
        category="frontend",
        difficulty=Difficulty.BEGINNER,
        language="javascript",
        title="Basic React {skill} Challenge",
        prompt="Create a React component that displays a counter with increment and decrement buttons.",
        expected_output="Component should manage state and update counter correctly",
        time_limit=20,
        test_cases=(
            TestCase(input="Initial render", expected_output="Counter shows 0"),
            TestCase(input="Click increment", expected_output="Counter shows 1"),
            TestCase(input="Click decrement", expected_output="Counter shows -1", is_hidden=True),
        ),
        hints=("Use useState hook", "Handle button click events"),
    ),
    # Data structures
    ChallengeTemplate(
        category="data-structures",
        difficulty=Difficulty.INTERMEDIATE,
        language="javascript",
        title="{skill} Implementation Challenge",
        prompt="Implement a binary search tree with insert, search, and delete operations.",
        expected_output="BST should maintain proper ordering and support all operations",
        time_limit=40,
        test_cases=(
            TestCase(input="Insert 5, 3, 7, 1, 9", expected_output="Tree structure correct"),
            TestCase(input="Search for 7", expected_output="Returns true"),
            TestCase(input="Delete 3", expected_output="Tree maintains BST property", is_hidden=True, weight=2),
        ),
        hints=("Remember BST property: left < root < right", "Handle deletion cases carefully"),
    ),
)


def find_template(
    category: str,
    difficulty: Union[Difficulty, str],
    language: str,
    templates: Iterable[ChallengeTemplate] = CHALLENGE_TEMPLATES,
) -> Optional[ChallengeTemplate]:
    """Best template for the request, or None if even the fallback tier is empty."""
    difficulty = Difficulty(difficulty)
    templates = tuple(templates)

    tiers = (
        lambda t: t.category == category and t.difficulty is difficulty and t.language == language,
        lambda t: t.category == category and t.difficulty is difficulty,
        lambda t: t.category == FALLBACK_CATEGORY and t.difficulty is difficulty,
    )
    for matches in tiers:
        template = next((t for t in templates if matches(t)), None)
        if template is not None:
            return template
    return None


class ChallengeCatalog:
    """Materializes challenges from templates and keeps them for later grading.

    Each skill id owns an append-only list of challenges. Appends for the
    same skill are serialized; different skills do not contend.
    """

    def __init__(self, templates: Iterable[ChallengeTemplate] = CHALLENGE_TEMPLATES):
        self._templates = tuple(templates)
        self._by_skill: dict[str, list[Challenge]] = {}
        self._by_id: dict[str, Challenge] = {}
        self._skill_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @property
    def templates(self) -> tuple[ChallengeTemplate, ...]:
        return self._templates

    def generate_challenge(
        self,
        skill_id: str,
        skill_name: str,
        category: str,
        difficulty: Union[Difficulty, str],
        language: str = "javascript",
    ) -> Challenge:
        """Create a challenge for a skill from the best matching template."""
        difficulty = Difficulty(difficulty)
        template = find_template(category, difficulty, language, self._templates)
        if template is None:
            raise TemplateNotFoundError(category, difficulty.value)

        if template.category != category or template.language != language:
            logger.info(
                "No exact template for %s/%s/%s; using %s/%s",
                category, difficulty.value, language, template.category, template.language,
            )

        challenge = Challenge(
            id=f"challenge_{uuid.uuid4().hex}",
            skill_id=skill_id,
            title=template.title.replace("{skill}", skill_name),
            difficulty=difficulty,
            prompt=template.prompt,
            expected_output=template.expected_output,
            time_limit=template.time_limit,
            language=language,
            test_cases=[tc.model_copy() for tc in template.test_cases],
            hints=list(template.hints),
        )

        with self._lock_for(skill_id):
            self._by_skill.setdefault(skill_id, []).append(challenge)
            self._by_id[challenge.id] = challenge
        return challenge

    def get_challenge(self, challenge_id: str) -> Challenge:
        challenge = self._by_id.get(challenge_id)
        if challenge is None:
            raise ChallengeNotFoundError(challenge_id)
        return challenge

    def get_available_challenges(self, skill_id: str) -> list[Challenge]:
        with self._lock_for(skill_id):
            return list(self._by_skill.get(skill_id, []))

    def _lock_for(self, skill_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._skill_locks.get(skill_id)
            if lock is None:
                lock = self._skill_locks[skill_id] = threading.Lock()
            return lock
