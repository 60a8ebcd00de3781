"""Storage collaborator: keyed upsert store for pipeline records.

Every write is a put-if-absent-or-replace on one key:

    resumes         resume_id
    parsed resumes  resume_id
    scores          (resume_id, job_id)
    jobs            job_id

No operation spans more than one key except ``delete_resume``, which
removes a resume together with the records it owns.
"""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod

from models.schemas import JobPosting, MatchScore, ParsedResume, ResumeRecord

logger = logging.getLogger(__name__)


class Store(ABC):
    """Interface the pipeline persists through."""

    @abstractmethod
    async def next_sequence(self) -> int:
        """Monotonic ingestion counter for new resumes."""

    @abstractmethod
    async def put_resume(self, record: ResumeRecord) -> None: ...

    @abstractmethod
    async def get_resume(self, resume_id: str) -> ResumeRecord | None: ...

    @abstractmethod
    async def list_resumes(self) -> list[ResumeRecord]: ...

    @abstractmethod
    async def delete_resume(self, resume_id: str) -> bool:
        """Delete a resume, its parsed data and its scores. False if unknown."""

    @abstractmethod
    async def put_parsed_resume(self, parsed: ParsedResume) -> None: ...

    @abstractmethod
    async def get_parsed_resume(self, resume_id: str) -> ParsedResume | None: ...

    @abstractmethod
    async def put_score(self, score: MatchScore) -> None: ...

    @abstractmethod
    async def get_score(self, resume_id: str, job_id: str) -> MatchScore | None: ...

    @abstractmethod
    async def list_scores(self, job_id: str) -> list[MatchScore]: ...

    @abstractmethod
    async def put_job(self, job: JobPosting) -> None: ...

    @abstractmethod
    async def get_job(self, job_id: str) -> JobPosting | None: ...

    @abstractmethod
    async def list_jobs(self) -> list[JobPosting]: ...


class InMemoryStore(Store):
    """Process-local store. Hands out copies so callers never share state."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._sequence = itertools.count(1)
        self._resumes: dict[str, ResumeRecord] = {}
        self._parsed: dict[str, ParsedResume] = {}
        self._scores: dict[tuple[str, str], MatchScore] = {}
        self._jobs: dict[str, JobPosting] = {}

    async def next_sequence(self) -> int:
        return next(self._sequence)

    async def put_resume(self, record: ResumeRecord) -> None:
        async with self._lock:
            self._resumes[record.id] = record.model_copy(deep=True)

    async def get_resume(self, resume_id: str) -> ResumeRecord | None:
        record = self._resumes.get(resume_id)
        return record.model_copy(deep=True) if record else None

    async def list_resumes(self) -> list[ResumeRecord]:
        return [r.model_copy(deep=True) for r in self._resumes.values()]

    async def delete_resume(self, resume_id: str) -> bool:
        async with self._lock:
            if self._resumes.pop(resume_id, None) is None:
                return False
            self._parsed.pop(resume_id, None)
            for key in [k for k in self._scores if k[0] == resume_id]:
                del self._scores[key]
        logger.info("Deleted resume %s with its parsed data and scores", resume_id)
        return True

    async def put_parsed_resume(self, parsed: ParsedResume) -> None:
        async with self._lock:
            self._parsed[parsed.resume_id] = parsed.model_copy(deep=True)

    async def get_parsed_resume(self, resume_id: str) -> ParsedResume | None:
        parsed = self._parsed.get(resume_id)
        return parsed.model_copy(deep=True) if parsed else None

    async def put_score(self, score: MatchScore) -> None:
        async with self._lock:
            self._scores[(score.resume_id, score.job_id)] = score.model_copy(deep=True)

    async def get_score(self, resume_id: str, job_id: str) -> MatchScore | None:
        score = self._scores.get((resume_id, job_id))
        return score.model_copy(deep=True) if score else None

    async def list_scores(self, job_id: str) -> list[MatchScore]:
        return [s.model_copy(deep=True) for (_, j), s in self._scores.items() if j == job_id]

    async def put_job(self, job: JobPosting) -> None:
        async with self._lock:
            self._jobs[job.id] = job.model_copy(deep=True)

    async def get_job(self, job_id: str) -> JobPosting | None:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def list_jobs(self) -> list[JobPosting]:
        return [j.model_copy(deep=True) for j in self._jobs.values()]
