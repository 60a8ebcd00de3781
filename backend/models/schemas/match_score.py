"""Scoring output: one MatchScore per (resume, job) pair."""

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, model_validator


class ScoringWeights(BaseModel):
    """Weights for combining sub-scores into the overall score."""

    model_config = ConfigDict(frozen=True)

    skill: float = 0.45
    experience: float = 0.25
    education: float = 0.15
    keyword: float = 0.15

    @model_validator(mode="after")
    def _check_sum(self) -> "ScoringWeights":
        parts = (self.skill, self.experience, self.education, self.keyword)
        if any(w < 0 for w in parts):
            raise ValueError("scoring weights must be non-negative")
        if not math.isclose(sum(parts), 1.0, abs_tol=1e-6):
            raise ValueError(f"scoring weights must sum to 1.0, got {sum(parts):.4f}")
        return self


class ScoreBreakdown(BaseModel):
    """Matched and missing items behind each sub-score."""
    required_skills_matched: list[str] = []
    required_skills_missing: list[str] = []
    preferred_skills_matched: list[str] = []
    preferred_skills_missing: list[str] = []
    experience_assessment: str = ""
    education_matched: list[str] = []
    education_missing: list[str] = []
    education_assessment: str = ""
    keywords_missing: list[str] = []
    keyword_analysis: str = ""
    weights: ScoringWeights = ScoringWeights()


class MatchScore(BaseModel):
    resume_id: str = ""
    job_id: str = ""
    overall_score: float = 0.0  # 0-100
    skill_match_score: float = 0.0  # 0-100
    experience_score: float = 0.0  # 0-100
    education_score: float = 0.0  # 0-100
    keyword_density_score: float = 0.0  # 0-100
    keyword_matches: list[str] = []
    score_breakdown: ScoreBreakdown = ScoreBreakdown()
    calculated_at: datetime | None = None  # stamped on persistence
