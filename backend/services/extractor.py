"""Structured and requirement extraction on top of the Gemini JSON capability.

Missing fields never fail extraction: they default to None or empty.
Only a total failure of the capability raises ExtractionError.
"""

import logging
from typing import Any, Awaitable, Callable

from models.schemas import JobKeywords, ParsedResume, WorkEntry
from models.schemas.job import dedupe_terms
from services import gemini_client, prompt_builder

logger = logging.getLogger(__name__)

JsonGenerator = Callable[[str, str | None], Awaitable[dict]]


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none", "n/a"):
        return None
    return text


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def _experience_years(value: Any) -> float | None:
    # bool is an int subclass; "true" is not a year count
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value >= 0 else None


def _education_entry(entry: Any) -> str | None:
    """Flatten an education object into one line, e.g. "BSc Computer Science, MIT (2019)"."""
    if isinstance(entry, str):
        return entry.strip() or None
    if not isinstance(entry, dict):
        return None

    degree = _optional_str(entry.get("degree")) or ""
    field = _optional_str(entry.get("field"))
    if field and field.lower() not in degree.lower():
        degree = f"{degree} in {field}" if degree else field
    parts = [p for p in (degree, _optional_str(entry.get("institution"))) if p]
    line = ", ".join(parts)
    year = _optional_str(entry.get("year"))
    if year:
        line = f"{line} ({year})" if line else year
    return line or None


def _work_entry(entry: Any) -> WorkEntry | None:
    if not isinstance(entry, dict):
        return None
    work = WorkEntry(
        title=_optional_str(entry.get("title")) or "",
        company=_optional_str(entry.get("company")) or "",
        duration=_optional_str(entry.get("duration")) or "",
        description=_optional_str(entry.get("description")) or "",
    )
    if not (work.title or work.company):
        return None
    return work


def to_parsed_resume(data: dict, markdown_text: str) -> ParsedResume:
    """Map a raw extraction reply onto the canonical resume schema."""
    education = [line for line in map(_education_entry, data.get("education") or []) if line]
    work = [w for w in map(_work_entry, data.get("work_experience") or []) if w]

    return ParsedResume(
        candidate_name=_optional_str(data.get("candidate_name")),
        email=_optional_str(data.get("email")),
        phone=_optional_str(data.get("phone")),
        skills=_str_list(data.get("skills")),
        experience_years=_experience_years(data.get("experience_years")),
        education=education,
        work_experience=work,
        raw_text=markdown_text,
    )


def merge_keywords(explicit: JobKeywords, extracted: JobKeywords) -> JobKeywords:
    """Union extracted keywords into explicitly supplied ones without overwriting."""
    return JobKeywords(
        required_skills=dedupe_terms(explicit.required_skills + extracted.required_skills),
        preferred_skills=dedupe_terms(explicit.preferred_skills + extracted.preferred_skills),
        education_requirements=dedupe_terms(
            explicit.education_requirements + extracted.education_requirements
        ),
    )


class StructuredExtractor:
    """Turns parsed document text and job descriptions into structured records."""

    def __init__(self, generate_json: JsonGenerator | None = None) -> None:
        self._generate_json = generate_json or gemini_client.generate_json

    async def extract_resume(self, markdown_text: str) -> ParsedResume:
        data = await self._generate_json(
            prompt_builder.build_resume_prompt(markdown_text),
            prompt_builder.RESUME_EXTRACTION_SYSTEM,
        )
        parsed = to_parsed_resume(data, markdown_text)
        logger.info(
            "Extracted resume: %d skills, %d education, %d work entries",
            len(parsed.skills), len(parsed.education), len(parsed.work_experience),
        )
        return parsed

    async def extract_job_keywords(self, job_description: str) -> JobKeywords:
        data = await self._generate_json(
            prompt_builder.build_job_keywords_prompt(job_description),
            prompt_builder.JOB_KEYWORDS_SYSTEM,
        )
        return JobKeywords(
            required_skills=dedupe_terms(_str_list(data.get("required_skills"))),
            preferred_skills=dedupe_terms(_str_list(data.get("preferred_skills"))),
            education_requirements=dedupe_terms(_str_list(data.get("education_requirements"))),
        )
