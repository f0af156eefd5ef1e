"""Normalization of announcement fields shared by create and update. Raises ValidationError."""
import json
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from bulletin.errors import ValidationError
from bulletin.models.announcement import Audience, Category
from bulletin.schemas.announcement import StaffRecipient, StudentRecipient
from bulletin.services.content_generator import SUMMARY_MAX_WORDS, word_count
from bulletin.services.text_security import is_safe_text

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 5000
MAX_TAGS = 5

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _check_safe(value: str) -> None:
    if not is_safe_text(value):
        raise ValidationError("Invalid input format detected", "INVALID_INPUT")


def validate_title(title: str) -> str:
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Title must be less than {TITLE_MAX_LENGTH} characters", "TITLE_TOO_LONG"
        )
    _check_safe(title)
    return title


def validate_description(description: str) -> str:
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Description must be less than {DESCRIPTION_MAX_LENGTH} characters",
            "DESCRIPTION_TOO_LONG",
        )
    _check_safe(description)
    return description


def validate_manual_summary(summary: str) -> str:
    summary = summary.strip()
    if word_count(summary) > SUMMARY_MAX_WORDS:
        raise ValidationError(
            f"Summary must be at most {SUMMARY_MAX_WORDS} words", "SUMMARY_TOO_LONG"
        )
    _check_safe(summary)
    return summary


def parse_json_field(value: Any) -> Any:
    """Form fields carry JSON as text; already-decoded values pass through."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        raise ValidationError(
            "Invalid JSON format in tags, students, or staff fields", "JSON_PARSE_ERROR"
        )


def parse_tags(value: Any) -> list[str]:
    tags = parse_json_field(value)
    if tags is None:
        return []
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValidationError("Tags must be a list of strings", "INVALID_TAGS")
    tags = [t.strip() for t in tags if t.strip()]
    if len(tags) > MAX_TAGS:
        raise ValidationError(f"Maximum {MAX_TAGS} tags allowed", "TOO_MANY_TAGS")
    for tag in tags:
        _check_safe(tag)
    return tags


def _parse_recipients(value: Any, model: type[StudentRecipient] | type[StaffRecipient]) -> list[dict]:
    entries = parse_json_field(value)
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ValidationError("Recipients must be a list", "INVALID_RECIPIENTS")
    out = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError("Each recipient must be an object", "INVALID_RECIPIENTS")
        try:
            recipient = model.model_validate({k: v for k, v in entry.items() if v is not None})
        except PydanticValidationError:
            raise ValidationError("Invalid recipient fields", "INVALID_RECIPIENTS")
        recipient.email = recipient.email.strip()
        if recipient.email and not EMAIL_RE.match(recipient.email):
            raise ValidationError(f"Invalid email format: {recipient.email}", "INVALID_EMAIL")
        out.append(recipient.model_dump(by_alias=True))
    return out


def parse_students(value: Any) -> list[dict]:
    return _parse_recipients(value, StudentRecipient)


def parse_staff(value: Any) -> list[dict]:
    return _parse_recipients(value, StaffRecipient)


def validate_category(value: str) -> str:
    try:
        return Category(value).value
    except ValueError:
        raise ValidationError(f"Invalid category: {value}", "INVALID_CATEGORY")


def validate_audience(value: str) -> str:
    try:
        return Audience(value).value
    except ValueError:
        raise ValidationError(f"Invalid audience: {value}", "INVALID_AUDIENCE")
