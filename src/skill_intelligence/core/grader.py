"""Challenge grading and skill-level feedback.

Grading is synchronous and in-memory: look the challenge up, run each test
case through the injected executor, then score. Folding a result into a
skill never rewrites past validations; it appends a new record.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, Optional, Union

from . import scoring
from .challenges import ChallengeCatalog
from .errors import ExecutionError
from .execution import CodeExecutor, SimulatedExecutor
from .models import (
    Challenge,
    ChallengeResult,
    Difficulty,
    TestCaseResult,
    UserSkill,
    ValidationRecord,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class ChallengeGrader:
    """Scores submissions against catalog challenges."""

    def __init__(
        self,
        catalog: Optional[ChallengeCatalog] = None,
        executor: Optional[CodeExecutor] = None,
    ):
        self.catalog = catalog or ChallengeCatalog()
        self.executor = executor or SimulatedExecutor()

    def generate_challenge(
        self,
        skill_id: str,
        skill_name: str,
        category: str,
        difficulty: Union[Difficulty, str],
        language: str = "javascript",
    ) -> Challenge:
        """Create and retain a challenge for a skill from the best matching template."""
        return self.catalog.generate_challenge(skill_id, skill_name, category, difficulty, language)

    def validate_challenge(
        self,
        challenge_id: str,
        submitted_code: str,
        completion_time: float,
    ) -> ChallengeResult:
        """Grade a submission.

        Args:
            challenge_id: Id returned by generate_challenge.
            submitted_code: Source code as submitted.
            completion_time: Seconds the user took.

        Raises:
            ChallengeNotFoundError: if the id is unknown.
            ValueError: if completion_time is negative or not finite.
        """
        if not math.isfinite(completion_time) or completion_time < 0:
            raise ValueError(f"completion_time must be a non-negative number of seconds, got {completion_time!r}")

        challenge = self.catalog.get_challenge(challenge_id)
        results = self.run_test_cases(challenge, submitted_code)
        passed = sum(1 for r in results if r.passed)

        score = scoring.calculate_score(results, completion_time, challenge.time_limit)
        feedback = scoring.generate_feedback(passed, len(results), score, challenge.difficulty)

        logger.info(
            "Graded %s for skill %s: %d/%d passed, score %.1f",
            challenge_id, challenge.skill_id, passed, len(results), score,
        )
        return ChallengeResult(
            challenge_id=challenge_id,
            skill_id=challenge.skill_id,
            score=score,
            completion_time=completion_time,
            passed_tests=passed,
            total_tests=len(results),
            feedback=feedback,
            confidence_adjustment=scoring.confidence_adjustment(score, challenge.difficulty),
            test_results=tuple(results),
        )

    def run_test_cases(self, challenge: Challenge, code: str) -> list[TestCaseResult]:
        results = []
        for case in challenge.test_cases:
            try:
                actual = self.executor.execute(code, case.input, challenge.language)
            except ExecutionError as exc:
                logger.debug("Execution failed on input %r: %s", case.input, exc)
                actual = f"Error: {exc}"
                passed = False
            else:
                passed = actual.strip() == case.expected_output.strip()

            results.append(TestCaseResult(
                input=case.input,
                expected=case.expected_output,
                actual=actual,
                passed=passed,
                weight=case.weight,
            ))
        return results

    def process_validation_result(
        self,
        user_skill: UserSkill,
        challenge_result: ChallengeResult,
    ) -> ValidationResult:
        """Adjust a skill's level and confidence from a graded challenge."""
        original_level = user_skill.self_assessed_level
        new_level = scoring.adjusted_level(
            original_level,
            challenge_result.score,
            challenge_result.confidence_adjustment,
        )
        confidence = scoring.updated_confidence(user_skill.confidence_score, challenge_result.score)

        record = ValidationRecord(
            method="challenge",
            score=challenge_result.score,
            feedback=challenge_result.feedback,
        )

        return ValidationResult(
            original_level=original_level,
            adjusted_level=new_level,
            confidence_score=confidence,
            validation_record=record,
            validation_history=[*user_skill.validation_history, record],
            recommendations=scoring.recommendations(challenge_result.score, new_level, original_level),
        )

    def get_available_challenges(self, skill_id: str) -> list[Challenge]:
        return self.catalog.get_available_challenges(skill_id)

    def calculate_skill_confidence(
        self,
        history: Iterable[ValidationRecord],
        now: Optional[datetime] = None,
    ) -> float:
        return scoring.skill_confidence(history, now)
