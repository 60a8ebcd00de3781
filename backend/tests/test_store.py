import pytest

from models.errors import DocumentUnavailableError
from models.schemas import JobPosting, MatchScore, ParsedResume, ResumeRecord
from services.documents import InMemoryDocumentSource, LocalDocumentSource
from services.store import InMemoryStore


def _record(resume_id: str = "r1") -> ResumeRecord:
    return ResumeRecord(id=resume_id, file_reference=f"resumes/{resume_id}.pdf", file_name=f"{resume_id}.pdf")


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_score_upsert_replaces(self):
        store = InMemoryStore()
        await store.put_score(MatchScore(resume_id="r1", job_id="j1", overall_score=40))
        await store.put_score(MatchScore(resume_id="r1", job_id="j1", overall_score=80))
        await store.put_score(MatchScore(resume_id="r1", job_id="j2", overall_score=10))

        scores = await store.list_scores("j1")
        assert len(scores) == 1
        assert scores[0].overall_score == 80

    @pytest.mark.asyncio
    async def test_parsed_resume_upsert(self):
        store = InMemoryStore()
        await store.put_parsed_resume(ParsedResume(resume_id="r1", skills=["Go"]))
        await store.put_parsed_resume(ParsedResume(resume_id="r1", skills=["Rust"]))
        assert (await store.get_parsed_resume("r1")).skills == ["Rust"]

    @pytest.mark.asyncio
    async def test_returns_copies(self):
        store = InMemoryStore()
        await store.put_parsed_resume(ParsedResume(resume_id="r1", skills=["Go"]))
        copy = await store.get_parsed_resume("r1")
        copy.skills.append("Rust")
        assert (await store.get_parsed_resume("r1")).skills == ["Go"]

    @pytest.mark.asyncio
    async def test_delete_cascades(self):
        store = InMemoryStore()
        await store.put_resume(_record("r1"))
        await store.put_resume(_record("r2"))
        await store.put_parsed_resume(ParsedResume(resume_id="r1"))
        await store.put_score(MatchScore(resume_id="r1", job_id="j1"))
        await store.put_score(MatchScore(resume_id="r2", job_id="j1"))

        assert await store.delete_resume("r1") is True

        assert await store.get_resume("r1") is None
        assert await store.get_parsed_resume("r1") is None
        assert [s.resume_id for s in await store.list_scores("j1")] == ["r2"]
        assert await store.delete_resume("r1") is False

    @pytest.mark.asyncio
    async def test_jobs(self):
        store = InMemoryStore()
        await store.put_job(JobPosting(id="j1", title="Engineer"))
        assert (await store.get_job("j1")).title == "Engineer"
        assert await store.get_job("j2") is None
        assert len(await store.list_jobs()) == 1

    @pytest.mark.asyncio
    async def test_sequence_monotonic(self):
        store = InMemoryStore()
        values = [await store.next_sequence() for _ in range(3)]
        assert values == [1, 2, 3]


class TestDocumentSources:
    @pytest.mark.asyncio
    async def test_local_reads_file(self, tmp_path):
        (tmp_path / "2024").mkdir()
        (tmp_path / "2024" / "jane.pdf").write_bytes(b"%PDF")
        source = LocalDocumentSource(tmp_path)

        assert await source.fetch("2024/jane.pdf") == b"%PDF"
        assert await source.fetch("https://storage.test/bucket/resumes/2024/jane.pdf") == b"%PDF"

    @pytest.mark.asyncio
    async def test_local_missing_file(self, tmp_path):
        with pytest.raises(DocumentUnavailableError, match="Failed to download"):
            await LocalDocumentSource(tmp_path).fetch("nope.pdf")

    @pytest.mark.asyncio
    async def test_local_rejects_escape(self, tmp_path):
        with pytest.raises(DocumentUnavailableError):
            await LocalDocumentSource(tmp_path / "docs").fetch("../secret.txt")

    @pytest.mark.asyncio
    async def test_in_memory(self):
        source = InMemoryDocumentSource({"a.pdf": b"x"})
        assert await source.fetch("a.pdf") == b"x"
        with pytest.raises(DocumentUnavailableError):
            await source.fetch("b.pdf")
