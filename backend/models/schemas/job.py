"""Job posting and the immutable requirements snapshot used for scoring."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def dedupe_terms(values: list[str]) -> list[str]:
    """Strip, drop empties and case-insensitive duplicates, keep first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        cleaned = value.strip()
        key = cleaned.lower()
        if cleaned and key not in seen:
            seen.add(key)
            result.append(cleaned)
    return result


class JobRequirements(BaseModel):
    """Read-only hiring criteria handed to the scoring engine."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    required_skills: list[str] = []
    preferred_skills: list[str] = []
    experience_years_min: float = 0.0
    experience_years_max: float | None = None
    education_requirements: list[str] = []
    description: str = ""

    @field_validator("required_skills", "preferred_skills", "education_requirements")
    @classmethod
    def _dedupe(cls, v: list[str]) -> list[str]:
        return dedupe_terms(v)

    @model_validator(mode="after")
    def _check_experience_range(self) -> "JobRequirements":
        if self.experience_years_min < 0:
            raise ValueError("experience_years_min must be >= 0")
        if (
            self.experience_years_max is not None
            and self.experience_years_max < self.experience_years_min
        ):
            raise ValueError("experience_years_max must be >= experience_years_min")
        return self


class JobKeywords(BaseModel):
    """Requirement lists pulled out of a free-text job description."""
    required_skills: list[str] = []
    preferred_skills: list[str] = []
    education_requirements: list[str] = []


class JobPosting(BaseModel):
    """A job posting as stored. Owns its requirements."""

    id: str
    title: str
    department: str | None = None
    description: str = ""
    required_skills: list[str] = []
    preferred_skills: list[str] = []
    experience_years_min: float = 0.0
    experience_years_max: float | None = None
    education_requirements: list[str] = []
    is_archived: bool = False
    created_by: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def requirements(self) -> JobRequirements:
        return JobRequirements(
            title=self.title,
            required_skills=self.required_skills,
            preferred_skills=self.preferred_skills,
            experience_years_min=self.experience_years_min,
            experience_years_max=self.experience_years_max,
            education_requirements=self.education_requirements,
            description=self.description,
        )
