import os
from pydantic_settings import BaseSettings


def _parse_cors_origins() -> list[str] | None:
    """Parse CORS_ORIGINS env var as comma-separated string or JSON list."""
    raw = os.environ.get("CORS_ORIGINS")
    if not raw:
        return None
    if raw.startswith("["):
        import json
        return json.loads(raw)
    return [o.strip() for o in raw.split(",") if o.strip()]


class Settings(BaseSettings):
    # Structured extraction (Gemini)
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    extraction_temperature: float = 0.1

    # Document parsing service (LlamaParse-compatible)
    llama_cloud_api_key: str = ""
    parse_api_base: str = "https://api.cloud.llamaindex.ai/api/v1/parsing"
    parse_max_attempts: int = 60  # 60 x 2s = 120s ceiling for the parse stage
    parse_poll_interval: float = 2.0
    parse_http_timeout: float = 30.0

    document_root: str = "./data/resumes"

    # Scoring weights, must sum to 1.0
    score_weight_skill: float = 0.45
    score_weight_experience: float = 0.25
    score_weight_education: float = 0.15
    score_weight_keyword: float = 0.15

    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


_cors_override = _parse_cors_origins()
settings = Settings(**{"cors_origins": _cors_override} if _cors_override else {})
