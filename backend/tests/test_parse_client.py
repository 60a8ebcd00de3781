"""Tests for the parse service client and its bounded polling loop."""

import httpx
import pytest

from models.errors import (
    ParseJobError,
    ParseServiceError,
    ParseSubmissionError,
    ParseTimeoutError,
)
from services.parse_client import JobResult, JobState, ParseClient

PDF = b"%PDF-1.4 fake"


class TestSubmit:
    @pytest.mark.asyncio
    async def test_upload_fields(self, fake_parse_service):
        service = fake_parse_service()
        job_id = await service.client().submit(PDF, "cv.pdf")

        assert job_id == "job-1"
        assert len(service.uploads) == 1
        request = service.uploads[0]
        assert request.headers["Authorization"] == "Bearer test-key"
        body = request.content
        assert b'name="result_type"' in body
        assert b"markdown" in body
        assert b'name="parsing_instruction"' in body
        assert b'filename="cv.pdf"' in body

    @pytest.mark.asyncio
    async def test_rejected_upload(self, fake_parse_service):
        service = fake_parse_service(upload_status=500)
        with pytest.raises(ParseSubmissionError) as exc_info:
            await service.client().submit(PDF, "cv.pdf")
        assert "500" in exc_info.value.message
        assert service.polls == 0

    @pytest.mark.asyncio
    async def test_missing_api_key(self, fake_parse_service):
        service = fake_parse_service()
        with pytest.raises(ParseSubmissionError):
            await service.client(api_key="").submit(PDF, "cv.pdf")
        assert service.uploads == []

    @pytest.mark.asyncio
    async def test_reply_without_job_id(self, sleep_recorder):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"status": "PENDING"}))
        client = ParseClient(api_key="k", base_url="https://parse.test", sleep=sleep_recorder, transport=transport)
        with pytest.raises(ParseSubmissionError, match="no job id"):
            await client.submit(PDF, "cv.pdf")

    @pytest.mark.asyncio
    async def test_numeric_job_id_coerced(self, sleep_recorder):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"id": 12345}))
        client = ParseClient(api_key="k", base_url="https://parse.test", sleep=sleep_recorder, transport=transport)
        assert await client.submit(PDF, "cv.pdf") == "12345"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("job_id", [None, "", {"nested": 1}, True])
    async def test_invalid_job_id(self, sleep_recorder, job_id):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"id": job_id}))
        client = ParseClient(api_key="k", base_url="https://parse.test", sleep=sleep_recorder, transport=transport)
        with pytest.raises(ParseSubmissionError, match="invalid job id"):
            await client.submit(PDF, "cv.pdf")

    @pytest.mark.asyncio
    async def test_transport_failure(self, sleep_recorder):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        client = ParseClient(
            api_key="k", base_url="https://parse.test", sleep=sleep_recorder,
            transport=httpx.MockTransport(handler),
        )
        with pytest.raises(ParseSubmissionError):
            await client.submit(PDF, "cv.pdf")


class TestPolling:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("pending", [0, 1, 5, 9])
    async def test_succeeds_before_ceiling(self, fake_parse_service, sleep_recorder, pending):
        service = fake_parse_service(statuses=["PENDING"] * pending + ["SUCCESS"])
        client = service.client(sleep=sleep_recorder, max_attempts=10)

        status = await client.wait_for_completion("job-1")

        assert status.status == JobState.SUCCESS
        assert service.polls == pending + 1
        assert sleep_recorder.calls == [2.0] * pending

    @pytest.mark.asyncio
    async def test_success_on_last_attempt(self, fake_parse_service, sleep_recorder):
        service = fake_parse_service(statuses=["PENDING"] * 4 + ["SUCCESS"])
        status = await service.client(sleep=sleep_recorder, max_attempts=5).wait_for_completion("job-1")
        assert status.status == JobState.SUCCESS
        assert len(sleep_recorder.calls) == 4

    @pytest.mark.asyncio
    async def test_timeout_after_max_attempts(self, fake_parse_service, sleep_recorder):
        service = fake_parse_service(statuses=["PENDING"])
        client = service.client(sleep=sleep_recorder, max_attempts=5)

        with pytest.raises(ParseTimeoutError):
            await client.wait_for_completion("job-1")

        assert service.polls == 5
        # no sleep after the final attempt
        assert len(sleep_recorder.calls) == 4

    @pytest.mark.asyncio
    async def test_zero_attempts_is_respected(self, fake_parse_service, sleep_recorder):
        service = fake_parse_service()
        client = service.client(sleep=sleep_recorder, max_attempts=0)
        assert client.max_attempts == 0

        with pytest.raises(ParseTimeoutError):
            await client.wait_for_completion("job-1")
        assert service.polls == 0

    def test_explicit_zero_timeout_kept(self):
        assert ParseClient(api_key="k", timeout=0).timeout == 0

    @pytest.mark.asyncio
    async def test_timeout_when_success_comes_too_late(self, fake_parse_service, sleep_recorder):
        service = fake_parse_service(statuses=["PENDING"] * 5 + ["SUCCESS"])
        with pytest.raises(ParseTimeoutError):
            await service.client(sleep=sleep_recorder, max_attempts=5).wait_for_completion("job-1")
        assert service.polls == 5

    @pytest.mark.asyncio
    async def test_error_state_carries_upstream_message(self, fake_parse_service, sleep_recorder):
        service = fake_parse_service(statuses=["PENDING", "ERROR"], error_message="bad scan")

        with pytest.raises(ParseJobError) as exc_info:
            await service.client(sleep=sleep_recorder).wait_for_completion("job-1")

        assert exc_info.value.upstream_message == "bad scan"
        assert "bad scan" in exc_info.value.message
        assert service.polls == 2

    @pytest.mark.asyncio
    async def test_error_state_without_message(self, fake_parse_service):
        service = fake_parse_service(statuses=["ERROR"])
        with pytest.raises(ParseJobError, match="Unknown error"):
            await service.client().wait_for_completion("job-1")

    @pytest.mark.asyncio
    async def test_partial_success_is_terminal(self, fake_parse_service, sleep_recorder):
        service = fake_parse_service(statuses=["PARTIAL_SUCCESS"])
        status = await service.client(sleep=sleep_recorder).wait_for_completion("job-1")
        assert status.status == JobState.PARTIAL_SUCCESS
        assert sleep_recorder.calls == []

    @pytest.mark.asyncio
    async def test_unknown_status(self, fake_parse_service):
        service = fake_parse_service(statuses=["EXPLODED"])
        with pytest.raises(ParseServiceError):
            await service.client().poll("job-1")

    @pytest.mark.asyncio
    async def test_poll_http_error(self, sleep_recorder):
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="down"))
        client = ParseClient(api_key="k", base_url="https://parse.test", sleep=sleep_recorder, transport=transport)
        with pytest.raises(ParseServiceError, match="503"):
            await client.poll("job-1")


class TestParse:
    @pytest.mark.asyncio
    async def test_full_flow(self, fake_parse_service, sleep_recorder):
        service = fake_parse_service(statuses=["PENDING", "PENDING", "SUCCESS"], markdown="# CV")

        outcome = await service.client(sleep=sleep_recorder).parse(PDF, "cv.pdf")

        assert outcome.external_job_id == "job-1"
        assert outcome.markdown == "# CV"
        assert service.fetches == 1
        assert len(sleep_recorder.calls) == 2

    @pytest.mark.asyncio
    async def test_text_fallback_when_markdown_empty(self, fake_parse_service):
        service = fake_parse_service(markdown="", text="plain resume text")
        outcome = await service.client().parse(PDF, "cv.pdf")
        assert outcome.markdown == "plain resume text"

    @pytest.mark.asyncio
    async def test_no_fetch_after_failure(self, fake_parse_service):
        service = fake_parse_service(statuses=["ERROR"], error_message="corrupt")
        with pytest.raises(ParseJobError):
            await service.client().parse(PDF, "cv.pdf")
        assert service.fetches == 0

    def test_result_content_prefers_markdown(self):
        assert JobResult(markdown="# md", text="txt").content == "# md"
        assert JobResult(markdown="", text="txt").content == "txt"

    def test_is_configured(self):
        assert ParseClient(api_key="k").is_configured
        assert not ParseClient(api_key="").is_configured
