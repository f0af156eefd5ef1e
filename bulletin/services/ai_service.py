"""
Gemini summaries for announcements (google-genai; Gemini API key or Vertex AI).
"""
import logging
from pathlib import Path

from google import genai
from google.genai import types

from bulletin.config import get_settings
from bulletin.services.text_security import redact_for_ai

logger = logging.getLogger(__name__)

VERTEX_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

# Built on first use so a missing key never breaks app startup
_client: genai.Client | None = None


def is_configured() -> bool:
    settings = get_settings()
    return bool(settings.gemini_api_key or settings.vertex_project_id)


def _vertex_credentials():
    """Service-account file if one is configured, else application default credentials (None)."""
    path = get_settings().vertex_credentials_path
    if not path or not Path(path).is_file():
        return None
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_file(path, scopes=VERTEX_SCOPES)


def _get_client() -> genai.Client:
    global _client
    if _client is not None:
        return _client

    settings = get_settings()
    http_options = types.HttpOptions(timeout=int(settings.ai_timeout_seconds * 1000))
    if settings.gemini_api_key:
        _client = genai.Client(api_key=settings.gemini_api_key, http_options=http_options)
    elif settings.vertex_project_id:
        logger.info("Using Vertex AI project %s (%s)", settings.vertex_project_id, settings.vertex_location)
        _client = genai.Client(
            vertexai=True,
            project=settings.vertex_project_id,
            location=settings.vertex_location,
            credentials=_vertex_credentials(),
            http_options=http_options,
        )
    else:
        raise RuntimeError("Neither gemini_api_key nor vertex_project_id is configured")
    return _client


SUMMARY_SYSTEM_INSTRUCTION = """You write short summaries of university announcements for a news feed read by students and staff.
Rules:
- At most 60 words, one paragraph, plain text (no Markdown, no headings, no lists).
- Keep the key facts intact: what, who, when, where, deadlines.
- Make it engaging for students, but do not invent details that are not in the announcement.
- Redacted values like [email] must not be reconstructed."""


def build_summary_prompt(text: str) -> str:
    return (
        "Summarize the following university announcement into exactly 60 words, "
        "keeping the key information intact. Make it engaging for students.\n\n"
        f"Announcement: {redact_for_ai(text)}"
    )


def generate_summary(text: str) -> str:
    """
    Call Gemini for a <= 60 word summary.
    Raises on API or model errors; callers decide on fallback.
    """
    client = _get_client()
    settings = get_settings()

    response = client.models.generate_content(
        model=settings.gemini_model,
        contents=build_summary_prompt(text),
        config=types.GenerateContentConfig(
            system_instruction=SUMMARY_SYSTEM_INSTRUCTION,
            temperature=0.4,
            max_output_tokens=256,
        ),
    )

    if not response or not response.candidates:
        raise ValueError("Empty response from model")
    candidate = response.candidates[0]
    if not candidate.content or not candidate.content.parts:
        raise ValueError("No text in model response")
    return getattr(response, "text", None) or candidate.content.parts[0].text
