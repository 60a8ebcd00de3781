"""Pipeline orchestrator: drives resumes from upload to score.

Flow per resume:
    register_resume()                       -> pending
    start_parsing()
      ├─ documents.fetch(file_reference)    -> bytes
      ├─ parse_client.parse(bytes)          -> markdown   (submit + poll + fetch)
      ├─ extractor.extract_resume(markdown) -> ParsedResume
      └─ store.put_parsed_resume()          -> completed
         any stage error                    -> failed (+ parsing_error), re-raised
    compute_scores(resume_ids, job_id)
      └─ scoring.score() per resume         -> MatchScore upserted per (resume, job)

Callers must not run two start_parsing calls for one resume at once; the
orchestrator enforces this with a single-flight guard on top of the
``processing`` status check.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from config import settings
from models.errors import (
    AtsError,
    ConflictingOperationError,
    InvalidRequestError,
    NotFoundError,
    PipelineStageError,
)
from models.requests import JobCreate, JobUpdate
from models.responses import BatchScoreResult, ParseOutcomeItem, ParseStatus, ScoreFailure
from models.schemas import (
    JobKeywords,
    JobPosting,
    JobRequirements,
    MatchScore,
    ParsedResume,
    ParsingStatus,
    ResumeRecord,
    ScoringWeights,
)
from services import scoring
from services.documents import DocumentSource, LocalDocumentSource
from services.extractor import StructuredExtractor, merge_keywords
from services.parse_client import ParseClient
from services.pipeline.context import RequestContext
from services.store import InMemoryStore, Store

logger = logging.getLogger(__name__)

GLOBAL_POOL = "global"
ALL_JOBS = "all"

# Job fields an update may clear by sending null
_NULLABLE_JOB_FIELDS = frozenset({"department", "experience_years_max"})


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ResumePipeline:
    def __init__(
        self,
        store: Store,
        parse_client: ParseClient,
        extractor: StructuredExtractor,
        documents: DocumentSource,
        weights: ScoringWeights | None = None,
    ) -> None:
        self.store = store
        self.parse_client = parse_client
        self.extractor = extractor
        self.documents = documents
        self.weights = weights or scoring.DEFAULT_WEIGHTS
        self._in_flight: set[str] = set()

    # --- Records ---

    async def _require_resume(self, resume_id: str) -> ResumeRecord:
        record = await self.store.get_resume(resume_id)
        if record is None:
            raise NotFoundError(f"Resume {resume_id} not found")
        return record

    async def _require_job(self, job_id: str) -> JobPosting:
        job = await self.store.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        return job

    async def _update_resume(self, resume_id: str, **changes: Any) -> ResumeRecord | None:
        """Re-read, apply changes with validation, write back. None if deleted meanwhile."""
        record = await self.store.get_resume(resume_id)
        if record is None:
            logger.warning("Resume %s disappeared during update %s", resume_id, changes)
            return None
        updated = ResumeRecord.model_validate({**record.model_dump(), **changes})
        await self.store.put_resume(updated)
        return updated

    async def register_resume(
        self,
        ctx: RequestContext,
        file_reference: str,
        file_name: str,
        file_type: str = "application/pdf",
        file_size: int | None = None,
        job_id: str | None = None,
    ) -> ResumeRecord:
        if job_id is not None:
            await self._require_job(job_id)

        record = ResumeRecord(
            id=str(uuid.uuid4()),
            file_reference=file_reference,
            file_name=file_name,
            file_type=file_type or "application/pdf",
            file_size=file_size,
            job_id=job_id,
            uploaded_by=ctx.actor_id,
            sequence=await self.store.next_sequence(),
        )
        await self.store.put_resume(record)
        logger.info(
            "[%s] Registered resume %s (%s) for %s",
            ctx.request_id, record.id, file_name, job_id or "global pool",
        )
        return record

    async def list_resumes(
        self, status: ParsingStatus | None = None, job_filter: str | None = None
    ) -> list[ResumeRecord]:
        """Newest first. job_filter: "global" for unassigned, "all"/None for every resume."""
        records = await self.store.list_resumes()
        if status is not None:
            records = [r for r in records if r.parsing_status == status]
        if job_filter == GLOBAL_POOL:
            records = [r for r in records if r.job_id is None]
        elif job_filter and job_filter != ALL_JOBS:
            records = [r for r in records if r.job_id == job_filter]
        return sorted(records, key=lambda r: (r.created_at, r.sequence), reverse=True)

    async def delete_resume(self, ctx: RequestContext, resume_id: str) -> None:
        if resume_id in self._in_flight:
            raise ConflictingOperationError(f"Resume {resume_id} is being parsed")
        if not await self.store.delete_resume(resume_id):
            raise NotFoundError(f"Resume {resume_id} not found")
        logger.info("[%s] Resume %s deleted", ctx.request_id, resume_id)

    # --- Parsing ---

    async def start_parsing(self, ctx: RequestContext, resume_id: str) -> ParsedResume:
        """Parse and extract one resume. Allowed from pending, failed or completed."""
        record = await self._require_resume(resume_id)
        if resume_id in self._in_flight or record.parsing_status == ParsingStatus.PROCESSING:
            raise ConflictingOperationError(f"Parsing already in progress for resume {resume_id}")

        self._in_flight.add(resume_id)
        try:
            await self._update_resume(
                resume_id, parsing_status=ParsingStatus.PROCESSING, parsing_error=None
            )
            logger.info("[%s] Resume %s -> processing", ctx.request_id, resume_id)

            try:
                document = await self.documents.fetch(record.file_reference)
                outcome = await self.parse_client.parse(document, record.file_name, record.file_type)
                parsed = await self.extractor.extract_resume(outcome.markdown)

                parsed = parsed.model_copy(update={"resume_id": resume_id, "parsed_at": _now()})
                await self.store.put_parsed_resume(parsed)
                await self._update_resume(
                    resume_id,
                    parsing_status=ParsingStatus.COMPLETED,
                    parsing_error=None,
                    external_job_id=outcome.external_job_id,
                )
            except PipelineStageError as e:
                logger.warning("[%s] Resume %s -> failed: %s", ctx.request_id, resume_id, e.message)
                await self._update_resume(
                    resume_id, parsing_status=ParsingStatus.FAILED, parsing_error=e.message
                )
                raise
            except Exception as e:
                logger.exception("[%s] Unexpected error parsing resume %s", ctx.request_id, resume_id)
                await self._update_resume(
                    resume_id,
                    parsing_status=ParsingStatus.FAILED,
                    parsing_error=f"Unexpected error: {e}" if str(e) else "Unexpected error",
                )
                raise

            logger.info(
                "[%s] Resume %s -> completed (%d skills)",
                ctx.request_id, resume_id, len(parsed.skills),
            )
            return parsed
        finally:
            self._in_flight.discard(resume_id)

    async def start_parsing_batch(
        self, ctx: RequestContext, resume_ids: list[str]
    ) -> list[ParseOutcomeItem]:
        """Parse several resumes concurrently; one failure does not stop the others."""
        unique_ids = list(dict.fromkeys(resume_ids))
        results = await asyncio.gather(
            *(self.start_parsing(ctx, rid) for rid in unique_ids), return_exceptions=True
        )

        outcomes: list[ParseOutcomeItem] = []
        for resume_id, result in zip(unique_ids, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                message = result.message if isinstance(result, AtsError) else str(result)
                record = await self.store.get_resume(resume_id)
                outcomes.append(ParseOutcomeItem(
                    resume_id=resume_id,
                    status=record.parsing_status if record else None,
                    error=message,
                ))
            else:
                outcomes.append(ParseOutcomeItem(resume_id=resume_id, status=ParsingStatus.COMPLETED))
        return outcomes

    async def get_status(self, resume_id: str) -> ParseStatus:
        record = await self._require_resume(resume_id)
        return ParseStatus(
            resume_id=resume_id,
            status=record.parsing_status,
            error=record.parsing_error,
            parsed_resume=await self.store.get_parsed_resume(resume_id),
        )

    # --- Jobs ---

    async def create_job(self, ctx: RequestContext, body: JobCreate) -> JobPosting:
        keywords = JobKeywords(
            required_skills=body.required_skills,
            preferred_skills=body.preferred_skills,
            education_requirements=body.education_requirements,
        )
        if body.auto_extract_keywords:
            try:
                extracted = await self.extractor.extract_job_keywords(body.description)
                keywords = merge_keywords(keywords, extracted)
            except PipelineStageError as e:
                logger.warning(
                    "[%s] Keyword extraction unavailable, using supplied requirements: %s",
                    ctx.request_id, e.message,
                )

        requirements = JobRequirements(
            title=body.title,
            description=body.description,
            required_skills=keywords.required_skills,
            preferred_skills=keywords.preferred_skills,
            education_requirements=keywords.education_requirements,
            experience_years_min=body.experience_years_min,
            experience_years_max=body.experience_years_max,
        )
        job = JobPosting(
            id=str(uuid.uuid4()),
            department=body.department,
            created_by=ctx.actor_id,
            **requirements.model_dump(),
        )
        await self.store.put_job(job)
        logger.info("[%s] Created job %s (%s)", ctx.request_id, job.id, job.title)
        return job

    async def get_job(self, job_id: str) -> JobPosting:
        return await self._require_job(job_id)

    async def list_jobs(self, include_archived: bool = False) -> list[JobPosting]:
        jobs = await self.store.list_jobs()
        if not include_archived:
            jobs = [j for j in jobs if not j.is_archived]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    async def update_job(self, ctx: RequestContext, job_id: str, body: JobUpdate) -> JobPosting:
        job = await self._require_job(job_id)
        changes = {
            k: v for k, v in body.model_dump(exclude_unset=True).items()
            if v is not None or k in _NULLABLE_JOB_FIELDS
        }
        merged = {**job.model_dump(), **changes}
        try:
            requirements = JobRequirements.model_validate(
                {k: v for k, v in merged.items() if k in JobRequirements.model_fields}
            )
        except ValidationError as e:
            raise InvalidRequestError(f"Invalid job requirements: {e.errors()[0]['msg']}") from e
        updated = JobPosting.model_validate({**merged, **requirements.model_dump()})
        await self.store.put_job(updated)
        logger.info("[%s] Updated job %s", ctx.request_id, job_id)
        return updated

    async def archive_job(self, ctx: RequestContext, job_id: str) -> JobPosting:
        return await self.update_job(ctx, job_id, JobUpdate(is_archived=True))

    # --- Scoring ---

    async def _score_one(
        self, resume_id: str, job_id: str, requirements: JobRequirements
    ) -> tuple[MatchScore, ResumeRecord]:
        record = await self._require_resume(resume_id)
        parsed = await self.store.get_parsed_resume(resume_id)
        if parsed is None:
            raise NotFoundError(f"Resume {resume_id} has no parsed data")

        match = scoring.score(requirements, parsed, self.weights, job_id=job_id)
        match = match.model_copy(update={"calculated_at": _now()})
        await self.store.put_score(match)
        return match, record

    async def compute_scores(
        self, ctx: RequestContext, resume_ids: list[str], job_id: str
    ) -> BatchScoreResult:
        """Score resumes against a job. Per-resume failures are reported, not raised."""
        job = await self._require_job(job_id)
        requirements = job.requirements()

        scored: list[tuple[MatchScore, ResumeRecord]] = []
        failures: list[ScoreFailure] = []
        for resume_id in dict.fromkeys(resume_ids):
            try:
                scored.append(await self._score_one(resume_id, job_id, requirements))
            except AtsError as e:
                logger.warning("[%s] Could not score resume %s: %s", ctx.request_id, resume_id, e.message)
                failures.append(ScoreFailure(resume_id=resume_id, error=e.message))
            except Exception as e:
                logger.exception("[%s] Unexpected error scoring resume %s", ctx.request_id, resume_id)
                failures.append(ScoreFailure(resume_id=resume_id, error=str(e) or type(e).__name__))

        scored.sort(key=lambda pair: scoring.ranking_key(pair[0], pair[1].created_at, pair[1].sequence))
        logger.info(
            "[%s] Scored %d resumes against job %s (%d failed)",
            ctx.request_id, len(scored), job_id, len(failures),
        )
        return BatchScoreResult(
            job_id=job_id,
            job_title=job.title,
            scores=[match for match, _ in scored],
            failures=failures,
        )

    async def get_scores(self, job_id: str) -> list[MatchScore]:
        """Stored scores for a job, ranked like compute_scores."""
        await self._require_job(job_id)
        ranked: list[tuple[tuple, MatchScore]] = []
        for match in await self.store.list_scores(job_id):
            record = await self.store.get_resume(match.resume_id)
            if record is None:
                continue
            ranked.append((scoring.ranking_key(match, record.created_at, record.sequence), match))
        ranked.sort(key=lambda pair: pair[0])
        return [match for _, match in ranked]

    async def get_score(self, resume_id: str, job_id: str) -> MatchScore:
        match = await self.store.get_score(resume_id, job_id)
        if match is None:
            raise NotFoundError(f"No score for resume {resume_id} against job {job_id}")
        return match


def build_pipeline() -> ResumePipeline:
    """Pipeline wired from settings: in-memory store, local documents, live services."""
    return ResumePipeline(
        store=InMemoryStore(),
        parse_client=ParseClient(),
        extractor=StructuredExtractor(),
        documents=LocalDocumentSource(settings.document_root),
        weights=scoring.weights_from_settings(),
    )
