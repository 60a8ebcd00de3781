"""Client for the external document-parsing service (LlamaParse API).

Flow:
    submit(bytes)  -> external job id
    poll(job id)   -> PENDING | SUCCESS | PARTIAL_SUCCESS | ERROR
    fetch(job id)  -> {markdown, text}

``parse()`` chains the three with a bounded fixed-interval polling loop.
The default ceiling (60 attempts x 2s) keeps the parse stage inside a
120s request time limit.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

import httpx
from pydantic import BaseModel

from config import settings
from models.errors import (
    ParseJobError,
    ParseServiceError,
    ParseSubmissionError,
    ParseTimeoutError,
)
from services.prompt_builder import RESUME_PARSING_INSTRUCTION

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class JobState(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    ERROR = "ERROR"


TERMINAL_SUCCESS = frozenset({JobState.SUCCESS, JobState.PARTIAL_SUCCESS})


class JobStatus(BaseModel):
    id: str = ""
    status: JobState
    error_code: str | None = None
    error_message: str | None = None


class JobResult(BaseModel):
    markdown: str = ""
    text: str = ""

    @property
    def content(self) -> str:
        """Markdown when the parser produced any, plain text otherwise."""
        return self.markdown or self.text


class ParseOutcome(BaseModel):
    external_job_id: str
    markdown: str


class ParseClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        max_attempts: int | None = None,
        poll_interval: float | None = None,
        timeout: float | None = None,
        sleep: SleepFn = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = settings.llama_cloud_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.parse_api_base).rstrip("/")
        self.max_attempts = settings.parse_max_attempts if max_attempts is None else max_attempts
        self.poll_interval = settings.parse_poll_interval if poll_interval is None else poll_interval
        self.timeout = settings.parse_http_timeout if timeout is None else timeout
        self._sleep = sleep
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
            transport=self._transport,
        )

    async def submit(self, document: bytes, filename: str, mime_type: str = "application/pdf") -> str:
        if not self.api_key:
            raise ParseSubmissionError("LLAMA_CLOUD_API_KEY is not set")

        try:
            async with self._client() as client:
                response = await client.post(
                    "/upload",
                    files={"file": (filename, document, mime_type)},
                    data={
                        "result_type": "markdown",
                        "parsing_instruction": RESUME_PARSING_INSTRUCTION,
                    },
                )
        except httpx.HTTPError as e:
            raise ParseSubmissionError(f"Parse upload failed: {e}") from e

        if not response.is_success:
            raise ParseSubmissionError(
                f"Parse upload failed: {response.status_code} - {response.text}"
            )
        try:
            job_id = response.json()["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise ParseSubmissionError("Parse upload returned no job id") from e
        if isinstance(job_id, bool) or not isinstance(job_id, (str, int)) or job_id == "":
            raise ParseSubmissionError(f"Parse upload returned an invalid job id: {job_id!r}")
        job_id = str(job_id)

        logger.info("Submitted %s to parse service as job %s", filename, job_id)
        return job_id

    async def _get(self, path: str, what: str) -> dict:
        try:
            async with self._client() as client:
                response = await client.get(path)
        except httpx.HTTPError as e:
            raise ParseServiceError(f"Parse {what} failed: {e}") from e
        if not response.is_success:
            raise ParseServiceError(
                f"Parse {what} failed: {response.status_code} - {response.text}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise ParseServiceError(f"Parse {what} returned invalid JSON") from e

    async def poll(self, external_job_id: str) -> JobStatus:
        data = await self._get(f"/job/{external_job_id}", "status check")
        try:
            return JobStatus.model_validate(data)
        except ValueError as e:
            raise ParseServiceError(f"Unrecognised parse job status: {data!r}") from e

    async def fetch_result(self, external_job_id: str) -> JobResult:
        data = await self._get(f"/job/{external_job_id}/result/markdown", "result fetch")
        return JobResult(markdown=data.get("markdown") or "", text=data.get("text") or "")

    async def wait_for_completion(self, external_job_id: str) -> JobStatus:
        """Poll until the job is terminal. Sleeps only between attempts."""
        for attempt in range(1, self.max_attempts + 1):
            status = await self.poll(external_job_id)
            logger.debug(
                "Parse job %s attempt %d/%d: %s",
                external_job_id, attempt, self.max_attempts, status.status.value,
            )

            if status.status in TERMINAL_SUCCESS:
                return status
            if status.status == JobState.ERROR:
                raise ParseJobError(status.error_message or "Unknown error")

            if attempt < self.max_attempts:
                await self._sleep(self.poll_interval)

        raise ParseTimeoutError(
            f"Parsing timeout: job {external_job_id} did not complete "
            f"within {self.max_attempts} attempts"
        )

    async def parse(
        self, document: bytes, filename: str, mime_type: str = "application/pdf"
    ) -> ParseOutcome:
        job_id = await self.submit(document, filename, mime_type)
        await self.wait_for_completion(job_id)
        result = await self.fetch_result(job_id)
        logger.info("Parse job %s finished (%d chars)", job_id, len(result.content))
        return ParseOutcome(external_job_id=job_id, markdown=result.content)
