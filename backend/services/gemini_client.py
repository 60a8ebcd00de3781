"""Google Gemini API wrapper used as the text-to-JSON extraction capability."""

import json
import logging

from google import genai
from google.genai import types

from config import settings
from models.errors import ExtractionError

logger = logging.getLogger(__name__)

_client: genai.Client | None = None


def get_client() -> genai.Client | None:
    global _client
    if not settings.gemini_api_key:
        logger.warning("No GEMINI_API_KEY set - structured extraction disabled")
        return None
    if _client is None:
        _client = genai.Client(api_key=settings.gemini_api_key)
    return _client


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```) if present."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()
    return text


async def generate_json(prompt: str, system_instruction: str | None = None) -> dict:
    """Send a prompt to Gemini and parse the reply as a JSON object.

    Raises ExtractionError when the client is not configured, the API
    call fails, or the reply is not a JSON object.
    """
    client = get_client()
    if client is None:
        raise ExtractionError("Extraction service is not configured")

    try:
        response = await client.aio.models.generate_content(
            model=settings.gemini_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                temperature=settings.extraction_temperature,
                max_output_tokens=4096,
            ),
        )
    except Exception as e:
        logger.error("Gemini API error: %s", e)
        raise ExtractionError(f"Extraction service error: {e}") from e

    text = strip_code_fences(response.text or "")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse Gemini response as JSON: %s", e)
        raise ExtractionError("Extraction service returned invalid JSON") from e

    if not isinstance(data, dict):
        raise ExtractionError("Extraction service returned a non-object JSON value")
    return data
