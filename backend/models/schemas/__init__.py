"""Pydantic contracts shared by the pipeline stages and the API."""

from models.schemas.job import JobKeywords, JobPosting, JobRequirements
from models.schemas.match_score import MatchScore, ScoreBreakdown, ScoringWeights
from models.schemas.resume import ParsedResume, ParsingStatus, ResumeRecord, WorkEntry

__all__ = [
    "JobKeywords",
    "JobPosting",
    "JobRequirements",
    "MatchScore",
    "ScoreBreakdown",
    "ScoringWeights",
    "ParsedResume",
    "ParsingStatus",
    "ResumeRecord",
    "WorkEntry",
]
