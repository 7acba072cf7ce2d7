import httpx
import pytest
import pytest_asyncio

from skill_intelligence.core.models import (
    AssessmentRecord,
    CareerGoals,
    LearningPlatformRecord,
    RepositoryAnalysis,
    ServiceConfig,
    UserSkill,
    UserSkillData,
    ValidationRecord,
)


@pytest_asyncio.fixture
async def tmp_db(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    from skill_intelligence import db

    await db.close_db()
    await db.init_db()
    yield tmp_path
    await db.close_db()


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class ScriptedTransport:
    """Replays a fixed sequence of responses (or raises exceptions) and records requests."""

    def __init__(self, *steps):
        self.steps = list(steps)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    @property
    def transport(self):
        return httpx.MockTransport(self)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def service_config():
    return ServiceConfig(
        api_endpoint="https://analysis.test/v1",
        api_key="test-key-1234567890",
        rate_limit_per_hour=100,
        timeout_seconds=5,
        retry_attempts=3,
        data_privacy_level="enhanced",
    )


@pytest.fixture
def user_data():
    return UserSkillData(
        manual_skills=[
            UserSkill(
                id="skill-js",
                name="JavaScript",
                category="programming",
                self_assessed_level=70,
                validation_history=[ValidationRecord(score=80, feedback="solid")],
            ),
            UserSkill(
                id="skill-react",
                name="React",
                category="frontend",
                self_assessed_level=55.5,
            ),
        ],
        repository_analysis=RepositoryAnalysis(
            username="octocat",
            email="octo@example.com",
            languages={"JavaScript": 0.7, "Python": 0.3},
            total_repositories=12,
            profile={"full_name": "Octo Cat", "bio": "Builds things"},
        ),
        learning_platform_data=[
            LearningPlatformRecord(
                platform="coursera",
                user_id="user-42",
                completed_courses=["Algorithms"],
                email="octo@example.com",
            ),
        ],
        career_goals=CareerGoals(
            target_role="Senior Software Engineer",
            timeframe="12 months",
            priority_skills=["skill-js"],
        ),
        assessment_history=[AssessmentRecord(skill_id="skill-js", score=75)],
    )
