"""Shared test configuration, fakes for the external services, and fixtures."""

import httpx
import pytest

from services.documents import InMemoryDocumentSource
from services.extractor import StructuredExtractor
from services.parse_client import ParseClient
from services.pipeline.orchestrator import ResumePipeline
from services.store import InMemoryStore

PARSE_BASE = "https://parse.test/api/v1/parsing"

SAMPLE_MARKDOWN = """# Jane Smith
jane.smith@example.com | +1-555-0100

## Skills
Python, Docker, Go, PostgreSQL

## Experience
**Backend Engineer**, Acme Corp (2019 - 2024)
- Built data pipelines in Python and SQL

## Education
BSc Computer Science, State University (2018)
"""

SAMPLE_EXTRACTION = {
    "candidate_name": "Jane Smith",
    "email": "jane.smith@example.com",
    "phone": "+1-555-0100",
    "skills": ["Python", "Docker", "Go", "PostgreSQL", "python"],
    "experience_years": 5,
    "education": [
        {"degree": "BSc", "institution": "State University", "year": 2018, "field": "Computer Science"},
    ],
    "work_experience": [
        {"title": "Backend Engineer", "company": "Acme Corp", "duration": "5 years",
         "description": "Built data pipelines"},
    ],
}


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: talks to the real parse or extraction services"
    )


class FakeParseService:
    """Scripted parse service served through httpx.MockTransport.

    ``statuses`` is consumed one entry per poll; the last entry repeats.
    """

    def __init__(
        self,
        statuses: list[str] | None = None,
        markdown: str = SAMPLE_MARKDOWN,
        text: str = "",
        error_message: str | None = None,
        upload_status: int = 200,
    ) -> None:
        self.statuses = statuses or ["SUCCESS"]
        self.markdown = markdown
        self.text = text
        self.error_message = error_message
        self.upload_status = upload_status
        self.uploads: list[httpx.Request] = []
        self.polls = 0
        self.fetches = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST" and path.endswith("/upload"):
            self.uploads.append(request)
            if self.upload_status != 200:
                return httpx.Response(self.upload_status, text="unsupported file")
            return httpx.Response(200, json={"id": "job-1", "status": "PENDING"})
        if path.endswith("/job/job-1/result/markdown"):
            self.fetches += 1
            return httpx.Response(200, json={"markdown": self.markdown, "text": self.text})
        if path.endswith("/job/job-1"):
            status = self.statuses[min(self.polls, len(self.statuses) - 1)]
            self.polls += 1
            body = {"id": "job-1", "status": status}
            if self.error_message is not None:
                body["error_message"] = self.error_message
            return httpx.Response(200, json=body)
        return httpx.Response(404, text="not found")

    def client(self, sleep=None, max_attempts: int = 60, api_key: str = "test-key") -> ParseClient:
        return ParseClient(
            api_key=api_key,
            base_url=PARSE_BASE,
            max_attempts=max_attempts,
            poll_interval=2.0,
            sleep=sleep or SleepRecorder(),
            transport=httpx.MockTransport(self.handler),
        )


class SleepRecorder:
    """Stands in for asyncio.sleep; records requested delays without waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeJsonGenerator:
    """Stands in for gemini_client.generate_json."""

    def __init__(self, reply: dict | Exception) -> None:
        self.reply = reply
        self.prompts: list[str] = []

    async def __call__(self, prompt: str, system_instruction: str | None = None) -> dict:
        self.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def make_pipeline():
    """Factory for a pipeline wired to fakes. Every collaborator can be overridden."""

    def _make(
        service: FakeParseService | None = None,
        reply: dict | Exception | None = None,
        documents: dict[str, bytes] | None = None,
        store: InMemoryStore | None = None,
        sleep=None,
    ) -> ResumePipeline:
        service = service or FakeParseService()
        return ResumePipeline(
            store=store or InMemoryStore(),
            parse_client=service.client(sleep=sleep),
            extractor=StructuredExtractor(
                generate_json=FakeJsonGenerator(SAMPLE_EXTRACTION if reply is None else reply)
            ),
            documents=InMemoryDocumentSource(
                {"resumes/jane.pdf": b"%PDF-1.4 fake"} if documents is None else documents
            ),
        )

    return _make


@pytest.fixture
def fake_parse_service():
    return FakeParseService


@pytest.fixture
def fake_json_generator():
    return FakeJsonGenerator


@pytest.fixture
def sample_markdown():
    return SAMPLE_MARKDOWN


@pytest.fixture
def sample_extraction():
    return dict(SAMPLE_EXTRACTION)
