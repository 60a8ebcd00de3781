"""Resume records and the structured data extracted from them."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from models.schemas.job import dedupe_terms


class ParsingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ResumeRecord(BaseModel):
    """One uploaded document and where it is in the parsing lifecycle.

    ``job_id=None`` places the resume in the global candidate pool.
    ``sequence`` is a monotonic ingestion counter; together with
    ``created_at`` it gives ranking its stable tie-break.
    """

    id: str
    file_reference: str
    file_name: str
    file_type: str = "application/pdf"
    file_size: int | None = None
    job_id: str | None = None
    uploaded_by: str | None = None
    parsing_status: ParsingStatus = ParsingStatus.PENDING
    parsing_error: str | None = None
    external_job_id: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    sequence: int = 0

    @model_validator(mode="after")
    def _error_iff_failed(self) -> "ResumeRecord":
        failed = self.parsing_status == ParsingStatus.FAILED
        if failed and not self.parsing_error:
            raise ValueError("failed resumes must carry a parsing_error")
        if not failed and self.parsing_error is not None:
            raise ValueError("parsing_error is only allowed when parsing failed")
        return self


class WorkEntry(BaseModel):
    """A single work experience entry."""
    title: str = ""
    company: str = ""
    duration: str = ""
    description: str = ""


class ParsedResume(BaseModel):
    """Canonical structured resume, one live copy per resume."""

    resume_id: str = ""
    candidate_name: str | None = None
    email: str | None = None
    phone: str | None = None
    skills: list[str] = []
    experience_years: float | None = None
    education: list[str] = []
    work_experience: list[WorkEntry] = []
    raw_text: str = ""
    parsed_at: datetime | None = None

    @field_validator("skills")
    @classmethod
    def _dedupe_skills(cls, v: list[str]) -> list[str]:
        return dedupe_terms(v)
