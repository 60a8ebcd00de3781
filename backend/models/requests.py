from pydantic import BaseModel, Field, model_validator


class JobCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=20000)
    department: str | None = None
    required_skills: list[str] = []
    preferred_skills: list[str] = []
    experience_years_min: float = Field(0.0, ge=0)
    experience_years_max: float | None = Field(None, ge=0)
    education_requirements: list[str] = []
    auto_extract_keywords: bool = False

    @model_validator(mode="after")
    def _check_experience_range(self) -> "JobCreate":
        if self.experience_years_max is not None and self.experience_years_max < self.experience_years_min:
            raise ValueError("experience_years_max must be >= experience_years_min")
        return self


class JobUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1, max_length=20000)
    department: str | None = None
    required_skills: list[str] | None = None
    preferred_skills: list[str] | None = None
    experience_years_min: float | None = Field(None, ge=0)
    experience_years_max: float | None = Field(None, ge=0)
    education_requirements: list[str] | None = None
    is_archived: bool | None = None


class ResumeCreate(BaseModel):
    file_reference: str = Field(..., min_length=1, description="Key of the stored document")
    file_name: str = Field(..., min_length=1)
    file_type: str = "application/pdf"
    file_size: int | None = Field(None, ge=0)
    job_id: str | None = Field(None, description="Omit for the global candidate pool")


class ParseRequest(BaseModel):
    resume_id: str = Field(..., min_length=1)


class BatchParseRequest(BaseModel):
    resume_ids: list[str] = Field(..., min_length=1)


class ScoreRequest(BaseModel):
    resume_ids: list[str] = Field(..., min_length=1)
    job_id: str = Field(..., min_length=1)
