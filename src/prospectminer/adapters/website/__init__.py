"""Public interface for the website enrichment adapter."""

from __future__ import annotations

from .extract import HtmlPageExtractor, is_junk_email
from .fetcher import (
    WebsiteFetcher,
    classify_exception,
    classify_status,
    looks_like_captcha,
    website_resilience,
)

__all__ = [
    "HtmlPageExtractor",
    "WebsiteFetcher",
    "classify_exception",
    "classify_status",
    "is_junk_email",
    "looks_like_captcha",
    "website_resilience",
]
