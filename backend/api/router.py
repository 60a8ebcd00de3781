from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.dependencies import get_pipeline, get_request_context
from config import settings
from models.requests import (
    BatchParseRequest,
    JobCreate,
    JobUpdate,
    ParseRequest,
    ResumeCreate,
    ScoreRequest,
)
from models.responses import (
    BatchScoreResult,
    HealthResponse,
    ParseOutcomeItem,
    ParseStatus,
)
from models.schemas import JobPosting, MatchScore, ParsedResume, ParsingStatus, ResumeRecord
from services.pipeline.context import RequestContext
from services.pipeline.orchestrator import ResumePipeline

router = APIRouter()
ats = APIRouter(prefix="/ats")
limiter = Limiter(key_func=get_remote_address)


@router.get("/health", response_model=HealthResponse)
async def health(pipeline: ResumePipeline = Depends(get_pipeline)):
    return HealthResponse(
        status="ok",
        gemini_configured=bool(settings.gemini_api_key),
        parser_configured=pipeline.parse_client.is_configured,
    )


# --- Jobs ---


@ats.post("/jobs", response_model=JobPosting, status_code=201)
async def create_job(
    body: JobCreate,
    ctx: RequestContext = Depends(get_request_context),
    pipeline: ResumePipeline = Depends(get_pipeline),
):
    return await pipeline.create_job(ctx, body)


@ats.get("/jobs", response_model=list[JobPosting])
async def list_jobs(include_archived: bool = False, pipeline: ResumePipeline = Depends(get_pipeline)):
    return await pipeline.list_jobs(include_archived=include_archived)


@ats.get("/jobs/{job_id}", response_model=JobPosting)
async def get_job(job_id: str, pipeline: ResumePipeline = Depends(get_pipeline)):
    return await pipeline.get_job(job_id)


@ats.patch("/jobs/{job_id}", response_model=JobPosting)
async def update_job(
    job_id: str,
    body: JobUpdate,
    ctx: RequestContext = Depends(get_request_context),
    pipeline: ResumePipeline = Depends(get_pipeline),
):
    return await pipeline.update_job(ctx, job_id, body)


@ats.delete("/jobs/{job_id}", response_model=JobPosting)
async def archive_job(
    job_id: str,
    ctx: RequestContext = Depends(get_request_context),
    pipeline: ResumePipeline = Depends(get_pipeline),
):
    return await pipeline.archive_job(ctx, job_id)


# --- Resumes ---


@ats.post("/resumes", response_model=ResumeRecord, status_code=201)
async def register_resume(
    body: ResumeCreate,
    ctx: RequestContext = Depends(get_request_context),
    pipeline: ResumePipeline = Depends(get_pipeline),
):
    return await pipeline.register_resume(
        ctx,
        file_reference=body.file_reference,
        file_name=body.file_name,
        file_type=body.file_type,
        file_size=body.file_size,
        job_id=body.job_id,
    )


@ats.get("/resumes", response_model=list[ResumeRecord])
async def list_resumes(
    status: ParsingStatus | None = None,
    job_id: str | None = None,
    pipeline: ResumePipeline = Depends(get_pipeline),
):
    return await pipeline.list_resumes(status=status, job_filter=job_id)


@ats.delete("/resumes/{resume_id}", status_code=204)
async def delete_resume(
    resume_id: str,
    ctx: RequestContext = Depends(get_request_context),
    pipeline: ResumePipeline = Depends(get_pipeline),
):
    await pipeline.delete_resume(ctx, resume_id)


# --- Parsing ---


@ats.post("/parse", response_model=ParsedResume)
@limiter.limit("10/minute")
async def start_parsing(
    request: Request,
    body: ParseRequest,
    ctx: RequestContext = Depends(get_request_context),
    pipeline: ResumePipeline = Depends(get_pipeline),
):
    return await pipeline.start_parsing(ctx, body.resume_id)


@ats.post("/parse/batch", response_model=list[ParseOutcomeItem])
@limiter.limit("5/minute")
async def start_parsing_batch(
    request: Request,
    body: BatchParseRequest,
    ctx: RequestContext = Depends(get_request_context),
    pipeline: ResumePipeline = Depends(get_pipeline),
):
    return await pipeline.start_parsing_batch(ctx, body.resume_ids)


@ats.get("/parse/{resume_id}", response_model=ParseStatus)
async def get_status(resume_id: str, pipeline: ResumePipeline = Depends(get_pipeline)):
    return await pipeline.get_status(resume_id)


# --- Scoring ---


@ats.post("/score", response_model=BatchScoreResult)
async def compute_scores(
    body: ScoreRequest,
    ctx: RequestContext = Depends(get_request_context),
    pipeline: ResumePipeline = Depends(get_pipeline),
):
    return await pipeline.compute_scores(ctx, body.resume_ids, body.job_id)


@ats.get("/score", response_model=list[MatchScore])
async def get_scores(
    job_id: str,
    resume_id: str | None = None,
    pipeline: ResumePipeline = Depends(get_pipeline),
):
    if resume_id:
        return [await pipeline.get_score(resume_id, job_id)]
    return await pipeline.get_scores(job_id)


router.include_router(ats)
