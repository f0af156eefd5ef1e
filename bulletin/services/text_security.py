"""
Text hygiene for announcement fields.
- is_safe_text: reject markup/script injection and control characters in author input.
- redact_for_ai: strip e-mail addresses and credential-looking values before text goes to Gemini.
"""
import re


# Author input matching any of these is rejected (stored text is rendered by the web client)
UNSAFE_PATTERNS = [
    re.compile(r"<\s*/?\s*(script|iframe|object|embed|style|link|meta)\b", re.I),
    re.compile(r"\bjavascript\s*:", re.I),
    re.compile(r"\bvbscript\s*:", re.I),
    re.compile(r"data\s*:\s*text/html", re.I),
    re.compile(r"<[^>]*\bon[a-z]+\s*=", re.I),  # onclick=, onerror=, ...
    re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]"),
]

# Redacted before sending to the AI provider
REDACT_PATTERNS = [
    (re.compile(r"(password|passwd|pwd|secret|token|api_key|apikey)\s*[:=]\s*[\"']?[^\s\"']+", re.I), r"\1=***REDACTED***"),
    (re.compile(r"[^\s@<>()\[\]]+@[^\s@<>()\[\]]+\.[A-Za-z]{2,}"), "[email]"),
]


def is_safe_text(text: str) -> bool:
    if not isinstance(text, str):
        return False
    return not any(pattern.search(text) for pattern in UNSAFE_PATTERNS)


def redact_for_ai(text: str) -> str:
    """Redact personal data and secrets. Returns safe text for AI."""
    if not text or not isinstance(text, str):
        return ""
    out = text
    for pattern, repl in REDACT_PATTERNS:
        out = pattern.sub(repl, out)
    return out
