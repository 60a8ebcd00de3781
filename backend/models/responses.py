from pydantic import BaseModel

from models.schemas import MatchScore, ParsedResume, ParsingStatus


class ParseStatus(BaseModel):
    resume_id: str
    status: ParsingStatus
    error: str | None = None
    parsed_resume: ParsedResume | None = None


class ParseOutcomeItem(BaseModel):
    """Result of one resume in a batch parse request."""
    resume_id: str
    status: ParsingStatus | None = None
    error: str | None = None


class ScoreFailure(BaseModel):
    resume_id: str
    error: str


class BatchScoreResult(BaseModel):
    job_id: str
    job_title: str = ""
    scores: list[MatchScore] = []  # overall_score descending, earliest ingested first on ties
    failures: list[ScoreFailure] = []


class HealthResponse(BaseModel):
    status: str = "ok"
    gemini_configured: bool = False
    parser_configured: bool = False
