"""Scoring engine: (JobRequirements, ParsedResume) -> MatchScore.

Pure and deterministic, no I/O. Four sub-scores (0-100) combined by a
weighted sum:

    skill match      0.45   required skills count double
    experience fit   0.25   full inside [min, max], linear penalty outside
    education fit    0.15   fraction of listed credentials satisfied
    keyword density  0.15   fraction of job skills found in the raw text

Absence of a requirement never penalizes: a job with no skills, no
education requirements or no keywords scores 100 on that factor.
"""

import re
from datetime import datetime

from config import settings
from models.schemas import JobRequirements, MatchScore, ParsedResume, ScoreBreakdown, ScoringWeights

DEFAULT_WEIGHTS = ScoringWeights()

NEUTRAL_EXPERIENCE_SCORE = 50.0
OVERQUALIFIED_FLOOR = 70.0
OVERQUALIFIED_PENALTY_PER_YEAR = 10.0

# Keywords this short ("go", "r", "c") only count as whole words
SHORT_KEYWORD_LENGTH = 2

# canonical skill -> aliases (all lower-case)
SKILL_SYNONYMS: dict[str, list[str]] = {
    "javascript": ["js", "ecmascript", "es6"],
    "typescript": ["ts"],
    "python": ["py", "python3"],
    "go": ["golang"],
    "c#": ["csharp", "c sharp"],
    ".net": ["dotnet"],
    "node.js": ["nodejs", "node"],
    "react": ["reactjs", "react.js"],
    "vue": ["vuejs", "vue.js"],
    "next.js": ["nextjs"],
    "kubernetes": ["k8s"],
    "postgresql": ["postgres", "psql"],
    "mongodb": ["mongo"],
    "aws": ["amazon web services"],
    "gcp": ["google cloud", "google cloud platform"],
    "ci/cd": ["cicd", "continuous integration"],
    "machine learning": ["ml"],
    "natural language processing": ["nlp"],
    "scikit-learn": ["sklearn"],
    "tensorflow": ["tf"],
}

_CANONICAL: dict[str, str] = {}
for _skill, _aliases in SKILL_SYNONYMS.items():
    _CANONICAL[_skill] = _skill
    for _alias in _aliases:
        _CANONICAL[_alias] = _skill

# Education levels, highest first. Bare two-letter forms ("ba", "me")
# need dots so ordinary words are not read as degrees.
DEGREE_LEVELS: list[tuple[str, int, list[str]]] = [
    ("phd", 5, [r"ph\.?\s?d", r"doctorate", r"doctoral", r"doctor of philosophy"]),
    ("masters", 4, [r"master'?s", r"master\s+(?:of|in|degree)", r"m\.?sc?", r"mba", r"m\.?tech", r"m\.?eng", r"m\.a\.", r"m\.e\."]),
    ("bachelors", 3, [r"bachelor(?:'?s)?", r"b\.?sc?", r"b\.?tech", r"b\.?eng", r"b\.a\.", r"b\.e\."]),
    ("associate", 2, [r"associate(?:'?s)?", r"a\.a\.", r"a\.s\."]),
    ("diploma", 1, [r"diploma", r"certificate"]),
    ("high school", 0, [r"high school", r"ged", r"secondary school"]),
]

_DEGREE_COMPILED: list[tuple[str, int, re.Pattern]] = [
    (name, rank, re.compile(rf"(?<![a-z])(?:{'|'.join(patterns)})(?![a-z])", re.IGNORECASE))
    for name, rank, patterns in DEGREE_LEVELS
]


def weights_from_settings() -> ScoringWeights:
    return ScoringWeights(
        skill=settings.score_weight_skill,
        experience=settings.score_weight_experience,
        education=settings.score_weight_education,
        keyword=settings.score_weight_keyword,
    )


# ---------------------------------------------------------------------------
# Skill matching
# ---------------------------------------------------------------------------

def _normalize(term: str) -> str:
    return re.sub(r"\s+", " ", term.lower().strip())


def _contains_word(haystack: str, needle: str) -> bool:
    """True when needle occurs in haystack not glued to other letters/digits."""
    if not needle or not haystack:
        return False
    return re.search(rf"(?<![a-z0-9]){re.escape(needle)}(?![a-z0-9])", haystack) is not None


def skill_variations(skill: str) -> set[str]:
    """Spellings of one skill: React / ReactJS / React.js, k8s / kubernetes."""
    norm = _normalize(skill)
    forms = {norm}
    if norm.endswith(".js"):
        forms.update({norm[:-3] + "js", norm[:-3]})
    elif norm.endswith("js") and len(norm) > 2:
        forms.update({norm[:-2] + ".js", norm[:-2]})
    without_symbols = re.sub(r"[.\-_]", "", norm)
    if without_symbols:
        forms.add(without_symbols)
    forms.update({_CANONICAL[f] for f in list(forms) if f in _CANONICAL})
    forms.discard("")
    return forms


def _skill_matches(job_skill: str, resume_forms: list[set[str]]) -> bool:
    job_forms = skill_variations(job_skill)
    for forms in resume_forms:
        if job_forms & forms:
            return True
        for a in job_forms:
            for b in forms:
                if _contains_word(a, b) or _contains_word(b, a):
                    return True
    return False


def score_skills(
    resume_skills: list[str], required: list[str], preferred: list[str]
) -> tuple[float, list[str], list[str], list[str], list[str]]:
    """Returns (score, required_matched, required_missing, preferred_matched, preferred_missing)."""
    resume_forms = [skill_variations(s) for s in resume_skills if s.strip()]

    req_matched = [s for s in required if _skill_matches(s, resume_forms)]
    req_missing = [s for s in required if s not in req_matched]
    pref_matched = [s for s in preferred if _skill_matches(s, resume_forms)]
    pref_missing = [s for s in preferred if s not in pref_matched]

    denominator = len(required) * 2 + len(preferred)
    if denominator == 0:
        return 100.0, [], [], [], []
    score = 100.0 * (len(req_matched) * 2 + len(pref_matched)) / denominator
    return score, req_matched, req_missing, pref_matched, pref_missing


# ---------------------------------------------------------------------------
# Experience
# ---------------------------------------------------------------------------

def _fmt_years(years: float) -> str:
    return f"{years:g}"


def score_experience(
    candidate_years: float | None, min_years: float, max_years: float | None
) -> tuple[float, str]:
    if candidate_years is None:
        return NEUTRAL_EXPERIENCE_SCORE, "Experience years not detected in resume"

    required = f"{_fmt_years(min_years)}-{_fmt_years(max_years) if max_years is not None else 'any'}"
    years = _fmt_years(candidate_years)

    if candidate_years < min_years:
        score = 100.0 * max(0.0, candidate_years) / min_years if min_years > 0 else 0.0
        return score, f"Below requirement: {years} years (min: {_fmt_years(min_years)})"

    if max_years is not None and candidate_years > max_years:
        over = candidate_years - max_years
        score = max(OVERQUALIFIED_FLOOR, 100.0 - OVERQUALIFIED_PENALTY_PER_YEAR * over)
        return score, f"Overqualified: {years} years (max: {_fmt_years(max_years)})"

    return 100.0, f"Within range: {years} years (required: {required})"


# ---------------------------------------------------------------------------
# Education
# ---------------------------------------------------------------------------

def education_level(text: str) -> tuple[str, int]:
    """Highest degree level named in text as (name, rank); ("", -1) if none."""
    for name, rank, pattern in _DEGREE_COMPILED:
        if pattern.search(text):
            return name, rank
    return "", -1


def score_education(
    education: list[str], requirements: list[str]
) -> tuple[float, list[str], list[str], str]:
    """Returns (score, requirements_met, requirements_missing, assessment)."""
    if not requirements:
        return 100.0, [], [], "No specific education requirements"
    if not education:
        return 0.0, [], list(requirements), "No education information found in resume"

    entries = [_normalize(e) for e in education]
    _, candidate_rank = max((education_level(e) for e in entries), key=lambda lv: lv[1])

    met: list[str] = []
    missing: list[str] = []
    for req in requirements:
        req_norm = _normalize(req)
        textual = any(req_norm in e for e in entries)
        _, required_rank = education_level(req_norm)
        by_level = required_rank >= 0 and candidate_rank >= required_rank
        (met if textual or by_level else missing).append(req)

    score = 100.0 * len(met) / len(requirements)
    return score, met, missing, f"Meets {len(met)}/{len(requirements)} education requirements"


# ---------------------------------------------------------------------------
# Keyword density
# ---------------------------------------------------------------------------

def job_keywords(job: JobRequirements) -> list[str]:
    """Required + preferred skills, lower-cased, duplicates removed, in order."""
    seen: dict[str, None] = {}
    for skill in job.required_skills + job.preferred_skills:
        norm = _normalize(skill)
        if norm:
            seen.setdefault(norm, None)
    return list(seen)


def _keyword_in_text(text: str, keyword: str) -> bool:
    if len(keyword) <= SHORT_KEYWORD_LENGTH:
        return _contains_word(text, keyword)
    return keyword in text


def score_keywords(raw_text: str, keywords: list[str]) -> tuple[float, list[str], list[str], str]:
    """Returns (score, found, missing, analysis)."""
    if not keywords:
        return 100.0, [], [], "Job defines no keywords"

    text = raw_text.lower()
    found = [kw for kw in keywords if _keyword_in_text(text, kw)]
    missing = [kw for kw in keywords if kw not in found]
    score = 100.0 * len(found) / len(keywords)
    return score, found, missing, f"Found {len(found)}/{len(keywords)} keywords from job requirements"


# ---------------------------------------------------------------------------
# Combination
# ---------------------------------------------------------------------------

def _clamp(value: float) -> float:
    return round(min(100.0, max(0.0, value)), 2)


def score(
    job: JobRequirements,
    resume: ParsedResume,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    job_id: str = "",
) -> MatchScore:
    """Score one resume against one job. Same inputs, same MatchScore."""
    skill_score, req_matched, req_missing, pref_matched, pref_missing = score_skills(
        resume.skills, job.required_skills, job.preferred_skills
    )
    exp_score, exp_assessment = score_experience(
        resume.experience_years, job.experience_years_min, job.experience_years_max
    )
    edu_score, edu_met, edu_missing, edu_assessment = score_education(
        resume.education, job.education_requirements
    )
    kw_score, kw_found, kw_missing, kw_analysis = score_keywords(
        resume.raw_text, job_keywords(job)
    )

    overall = (
        weights.skill * skill_score
        + weights.experience * exp_score
        + weights.education * edu_score
        + weights.keyword * kw_score
    )

    return MatchScore(
        resume_id=resume.resume_id,
        job_id=job_id,
        overall_score=_clamp(overall),
        skill_match_score=_clamp(skill_score),
        experience_score=_clamp(exp_score),
        education_score=_clamp(edu_score),
        keyword_density_score=_clamp(kw_score),
        keyword_matches=kw_found,
        score_breakdown=ScoreBreakdown(
            required_skills_matched=req_matched,
            required_skills_missing=req_missing,
            preferred_skills_matched=pref_matched,
            preferred_skills_missing=pref_missing,
            experience_assessment=exp_assessment,
            education_matched=edu_met,
            education_missing=edu_missing,
            education_assessment=edu_assessment,
            keywords_missing=kw_missing,
            keyword_analysis=kw_analysis,
            weights=weights,
        ),
    )


def ranking_key(match: MatchScore, created_at: datetime, sequence: int) -> tuple:
    """Sort key: best score first, then earliest ingested. Never by name."""
    return (-match.overall_score, created_at, sequence)
