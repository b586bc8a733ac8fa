"""Pull outreach signals out of fetched HTML."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from prospectminer.domain.identity import normalize_email, normalize_phone
from prospectminer.domain.ports.fetching import PageSignals
from prospectminer.domain.settings import (
    DEFAULT_BOOKING_SIGNALS,
    DEFAULT_CONTACT_PAGE_PATTERNS,
    DEFAULT_EMAIL_PATTERNS,
    DEFAULT_PHONE_PATTERNS,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from prospectminer.domain.ports.fetching import PageExtractor
    from prospectminer.domain.settings import EnrichmentSettings

log = getLogger(__name__)

JUNK_EMAIL_DOMAINS: Final[frozenset[str]] = frozenset(
    {"example.com", "example.org", "domain.com", "test.com", "sentry.io"}
)
JUNK_EMAIL_SUFFIXES: Final[tuple[str, ...]] = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".webp",
    ".css",
    ".js",
)
SOCIAL_HOSTS: Final[dict[str, tuple[str, ...]]] = {
    "facebook": ("facebook.com",),
    "instagram": ("instagram.com",),
    "linkedin": ("linkedin.com",),
    "twitter": ("twitter.com", "x.com"),
    "youtube": ("youtube.com",),
}
_LINKEDIN_PROFILE_PATHS: Final[tuple[str, ...]] = ("/company/", "/in/")


def is_junk_email(email: str) -> bool:
    domain = email.rpartition("@")[2]
    return domain in JUNK_EMAIL_DOMAINS or domain.endswith(JUNK_EMAIL_SUFFIXES)


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _social_platform(url: str) -> str | None:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"}:
        return None
    host = parsed.netloc.lower().removeprefix("www.")
    for platform, hosts in SOCIAL_HOSTS.items():
        if host not in hosts:
            continue
        if platform == "linkedin" and not parsed.path.startswith(_LINKEDIN_PROFILE_PATHS):
            return None
        if not parsed.path.strip("/"):
            return None
        return platform
    return None


@dataclass(slots=True)
class HtmlPageExtractor:
    """BeautifulSoup based extractor configured with the enrichment patterns."""

    email_patterns: tuple[str, ...] = DEFAULT_EMAIL_PATTERNS
    phone_patterns: tuple[str, ...] = DEFAULT_PHONE_PATTERNS
    contact_page_patterns: tuple[str, ...] = DEFAULT_CONTACT_PAGE_PATTERNS
    booking_signals: tuple[str, ...] = DEFAULT_BOOKING_SIGNALS
    _email_res: tuple[re.Pattern[str], ...] = field(init=False, repr=False)
    _phone_res: tuple[re.Pattern[str], ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._email_res = tuple(re.compile(p, re.IGNORECASE) for p in self.email_patterns)
        self._phone_res = tuple(re.compile(p) for p in self.phone_patterns)

    @classmethod
    def from_settings(cls, settings: EnrichmentSettings) -> HtmlPageExtractor:
        return cls(
            email_patterns=settings.email_patterns,
            phone_patterns=settings.phone_patterns,
            contact_page_patterns=settings.contact_page_patterns,
            booking_signals=settings.booking_signals,
        )

    def extract(self, html: str, *, base_url: str) -> PageSignals:
        soup = BeautifulSoup(html, "html.parser")
        anchors = [a for a in soup.find_all("a", href=True) if isinstance(a, Tag)]
        hrefs = [str(a.get("href", "")).strip() for a in anchors]
        text = soup.get_text(" ")

        return PageSignals(
            emails=self._emails(html, hrefs),
            phones=self._phones(text, hrefs),
            social_links=self._social_links(hrefs, base_url),
            has_online_booking=self._has_booking(html),
            title=self._title(soup),
            meta_description=self._meta_description(soup),
            contact_links=self._contact_links(hrefs, base_url),
        )

    def _emails(self, html: str, hrefs: list[str]) -> tuple[str, ...]:
        found: list[str] = []
        for pattern in self._email_res:
            found.extend(pattern.findall(html))
        for href in hrefs:
            if href.lower().startswith("mailto:"):
                address = href[len("mailto:") :].split("?", 1)[0].strip()
                if address:
                    found.append(address)
        emails = [normalize_email(email) for email in found]
        return _unique(email for email in emails if not is_junk_email(email))

    def _phones(self, text: str, hrefs: list[str]) -> tuple[str, ...]:
        found: list[str] = []
        for pattern in self._phone_res:
            found.extend(match.group(0) for match in pattern.finditer(text))
        for href in hrefs:
            if href.lower().startswith("tel:"):
                found.append(href[len("tel:") :])
        return _unique(normalize_phone(phone) for phone in found if phone.strip())

    def _has_booking(self, html: str) -> bool:
        lowered = html.lower()
        return any(signal.lower() in lowered for signal in self.booking_signals)

    @staticmethod
    def _social_links(hrefs: list[str], base_url: str) -> dict[str, str]:
        links: dict[str, str] = {}
        for href in hrefs:
            url = urljoin(base_url, href)
            platform = _social_platform(url)
            if platform is not None and platform not in links:
                links[platform] = url
        return links

    @staticmethod
    def _title(soup: BeautifulSoup) -> str | None:
        if soup.title is None or soup.title.string is None:
            return None
        return soup.title.string.strip() or None

    @staticmethod
    def _meta_description(soup: BeautifulSoup) -> str | None:
        meta = soup.find("meta", attrs={"name": re.compile("^description$", re.IGNORECASE)})
        if not isinstance(meta, Tag):
            return None
        content = meta.get("content")
        if not isinstance(content, str):
            return None
        return content.strip() or None

    def _contact_links(self, hrefs: list[str], base_url: str) -> tuple[str, ...]:
        patterns = [pattern.lower() for pattern in self.contact_page_patterns]
        links: list[str] = []
        for href in hrefs:
            lowered = href.lower()
            if not any(pattern in lowered for pattern in patterns):
                continue
            url = urljoin(base_url, href)
            if urlparse(url).scheme not in {"http", "https"}:
                continue
            links.append(url)
        return _unique(links)


if TYPE_CHECKING:
    _extractor_check: PageExtractor = HtmlPageExtractor()
