"""
Derived content for announcements: a <= 60 word summary and a cover image URL.

Both operations walk an ordered list of providers. A provider that is not
configured is skipped; a provider that fails is logged and skipped. Neither
operation ever raises: summaries fall back to word truncation, images fall back
to a Picsum URL seeded by title and time.
"""
import logging
import random
import re
import time
from functools import lru_cache
from typing import Callable, Protocol
from urllib.parse import quote, urlparse

import requests

from bulletin.config import get_settings
from bulletin.errors import ProviderError
from bulletin.services import ai_service

logger = logging.getLogger(__name__)

SUMMARY_MAX_WORDS = 60
ELLIPSIS = "..."


def word_count(text: str) -> int:
    return len(text.split())


def fallback_summary(text: str) -> str:
    """First 60 words joined by single spaces, plus "..." if truncated; otherwise the trimmed text."""
    words = text.split()
    if len(words) <= SUMMARY_MAX_WORDS:
        return text.strip()
    return " ".join(words[:SUMMARY_MAX_WORDS]) + ELLIPSIS


def is_http_url(value: str | None) -> bool:
    if not value or not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


# ---------- Providers ----------


class SummaryProvider(Protocol):
    name: str

    def is_configured(self) -> bool: ...

    def summarize(self, text: str) -> str: ...


class ImageProvider(Protocol):
    name: str

    def is_configured(self) -> bool: ...

    def find_image(self, title: str, tags: list[str]) -> str | None: ...


class GeminiSummaryProvider:
    name = "gemini"

    def is_configured(self) -> bool:
        return ai_service.is_configured()

    def summarize(self, text: str) -> str:
        try:
            summary = ai_service.generate_summary(text)
        except Exception as e:
            raise ProviderError(f"Gemini summary failed: {e}") from e
        return summary


class UnsplashImageProvider:
    name = "unsplash"
    endpoint = "https://api.unsplash.com/photos/random"

    def __init__(self, access_key: str, timeout: float):
        self._access_key = access_key
        self._timeout = timeout

    def is_configured(self) -> bool:
        return bool(self._access_key)

    def find_image(self, title: str, tags: list[str]) -> str | None:
        keywords = ",".join(tags) if tags else title
        try:
            response = requests.get(
                self.endpoint,
                params={"query": keywords, "orientation": "landscape", "content_filter": "high"},
                headers={"Authorization": f"Client-ID {self._access_key}"},
                timeout=self._timeout,
            )
            if not response.ok:
                raise ProviderError(f"Unsplash returned HTTP {response.status_code}")
            data = response.json()
            return data["urls"]["regular"]
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            raise ProviderError(f"Unsplash lookup failed: {e}") from e


class PexelsImageProvider:
    name = "pexels"
    endpoint = "https://api.pexels.com/v1/search"

    def __init__(self, api_key: str, timeout: float):
        self._api_key = api_key
        self._timeout = timeout

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def find_image(self, title: str, tags: list[str]) -> str | None:
        keywords = " ".join(tags) if tags else "education university"
        try:
            response = requests.get(
                self.endpoint,
                params={
                    "query": keywords,
                    "per_page": 1,
                    "page": random.randint(1, 5),
                    "orientation": "landscape",
                },
                headers={"Authorization": self._api_key},
                timeout=self._timeout,
            )
            if not response.ok:
                raise ProviderError(f"Pexels returned HTTP {response.status_code}")
            photos = response.json().get("photos") or []
            if not photos:
                return None
            return photos[0]["src"]["large2x"]
        except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
            raise ProviderError(f"Pexels lookup failed: {e}") from e


class PicsumImageProvider:
    """Always available; the URL depends only on the title and the clock."""
    name = "picsum"

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def is_configured(self) -> bool:
        return True

    def find_image(self, title: str, tags: list[str]) -> str:
        millis = int(self._clock() * 1000)
        seed = quote(re.sub(r"\s+", "-", f"{title}{millis}"), safe="")
        return f"https://picsum.photos/seed/{seed}/1600/900"


# ---------- Generator ----------


class ContentGenerator:
    """Composes summary and image providers with fallback. Stateless; safe to share."""

    def __init__(
        self,
        summary_providers: list[SummaryProvider] | None = None,
        image_providers: list[ImageProvider] | None = None,
        default_image: PicsumImageProvider | None = None,
    ):
        self._summary_providers = list(summary_providers or [])
        self._image_providers = list(image_providers or [])
        self._default_image = default_image or PicsumImageProvider()

    def summarize(self, text: str) -> str:
        for provider in self._summary_providers:
            try:
                if not provider.is_configured():
                    continue
                summary = (provider.summarize(text) or "").strip()
            except Exception as e:
                logger.warning("Summary provider %s failed: %s", provider.name, e, exc_info=True)
                continue
            if summary:
                # Models do not always respect the word limit
                return fallback_summary(summary)
            logger.warning("Summary provider %s returned empty text", provider.name)
        return fallback_summary(text)

    def render_image(self, title: str, tags: list[str]) -> str:
        for provider in self._image_providers:
            try:
                if not provider.is_configured():
                    continue
                url = provider.find_image(title, tags)
            except Exception as e:
                logger.warning("Image provider %s failed: %s", provider.name, e, exc_info=True)
                continue
            if is_http_url(url):
                return url
            logger.info("Image provider %s had no usable result", provider.name)
        return self._default_image.find_image(title, tags)


def build_content_generator() -> ContentGenerator:
    settings = get_settings()
    return ContentGenerator(
        summary_providers=[GeminiSummaryProvider()],
        image_providers=[
            UnsplashImageProvider(settings.unsplash_access_key, settings.image_search_timeout_seconds),
            PexelsImageProvider(settings.pexels_api_key, settings.image_search_timeout_seconds),
        ],
        default_image=PicsumImageProvider(),
    )


@lru_cache
def get_content_generator() -> ContentGenerator:
    """FastAPI dependency; overridden in tests."""
    return build_content_generator()
