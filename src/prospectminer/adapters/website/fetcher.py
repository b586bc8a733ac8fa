"""Fetch business websites and classify failures for the enrich stage."""

from __future__ import annotations

import ssl
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx

from prospectminer.adapters.http_resilience import ResilientClient
from prospectminer.config.http_resilience import CacheConfig, ResilienceConfig, RetryPolicy
from prospectminer.domain.identity import normalize_url
from prospectminer.domain.model import FailureType
from prospectminer.domain.ports.fetching import FetchResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from prospectminer.domain.ports.fetching import EnrichmentFetcher
    from prospectminer.domain.settings import EnrichmentSettings

log = getLogger(__name__)

CAPTCHA_MARKERS: Final[tuple[str, ...]] = (
    "captcha",
    "recaptcha",
    "hcaptcha",
    "challenge-running",
    "cf-browser-verification",
    "please verify you are human",
)
_DNS_MARKERS: Final[tuple[str, ...]] = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "temporary failure in name resolution",
    "no address associated",
    "name resolution",
)
_SSL_MARKERS: Final[tuple[str, ...]] = ("ssl", "certificate", "tls")
ACCEPT_HEADER: Final[str] = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def website_resilience(settings: EnrichmentSettings) -> ResilienceConfig:
    return ResilienceConfig(
        name="website",
        timeout_seconds=settings.timeout_seconds,
        retry=RetryPolicy(
            total=settings.retries,
            allowed_methods=frozenset({"GET", "HEAD"}),
            status_forcelist=frozenset({500, 502, 503, 504}),
        ),
        # sites shared by several listings are fetched once per run
        cache=CacheConfig(backend="memory"),
        follow_redirects=True,
        default_headers={
            "User-Agent": settings.user_agent,
            "Accept": ACCEPT_HEADER,
            "Accept-Language": "en-US,en;q=0.5",
        },
    )


def looks_like_captcha(html: str) -> bool:
    lowered = html.lower()
    return any(marker in lowered for marker in CAPTCHA_MARKERS)


def classify_status(status_code: int) -> FailureType:
    if status_code == httpx.codes.NOT_FOUND:
        return FailureType.PAGE_NOT_FOUND
    if status_code in {httpx.codes.FORBIDDEN, httpx.codes.TOO_MANY_REQUESTS}:
        return FailureType.RATE_LIMITED
    return FailureType.UNKNOWN


def classify_exception(exc: Exception) -> FailureType:
    if isinstance(exc, httpx.TimeoutException):
        return FailureType.SITE_TIMEOUT
    if isinstance(exc, UnicodeDecodeError):
        return FailureType.PARSE_ERROR
    message = str(exc).lower()
    if isinstance(exc.__cause__ or exc.__context__, ssl.SSLError) or any(
        marker in message for marker in _SSL_MARKERS
    ):
        return FailureType.SSL_ERROR
    if isinstance(exc, httpx.ConnectError) and any(marker in message for marker in _DNS_MARKERS):
        return FailureType.DNS_ERROR
    return FailureType.UNKNOWN


@dataclass(slots=True)
class WebsiteFetcher:
    """Fetches pages with one shared client; never raises for network failures."""

    resilience: ResilienceConfig = field(default_factory=lambda: ResilienceConfig(name="website"))
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_settings(
        cls,
        settings: EnrichmentSettings,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> WebsiteFetcher:
        return cls(
            resilience=website_resilience(settings),
            client_factory=client_factory or _default_client_factory,
        )

    async def fetch(self, url: str) -> FetchResult:
        target = normalize_url(url)
        if not target:
            return FetchResult(url=url, failure_type=FailureType.UNKNOWN, message="Empty URL")

        if self._client is None:
            self._client = self.client_factory(self.resilience)

        try:
            response = await self._client.get(target)
        except (httpx.HTTPError, ssl.SSLError) as exc:
            failure = classify_exception(exc)
            log.debug("Fetch failed for %s: %s (%s)", target, failure, exc)
            return FetchResult(url=target, failure_type=failure, message=str(exc) or repr(exc))

        if not response.is_success:
            return FetchResult(
                url=target,
                status_code=response.status_code,
                failure_type=classify_status(response.status_code),
                message=f"HTTP {response.status_code}",
            )

        try:
            html = response.text
        except (UnicodeDecodeError, LookupError) as exc:
            return FetchResult(
                url=target,
                status_code=response.status_code,
                failure_type=FailureType.PARSE_ERROR,
                message=str(exc),
            )

        if looks_like_captcha(html):
            return FetchResult(
                url=target,
                status_code=response.status_code,
                failure_type=FailureType.CAPTCHA_BLOCK,
                message="Captcha challenge detected",
            )

        return FetchResult(url=target, html=html, status_code=response.status_code)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


if TYPE_CHECKING:
    _fetcher_check: EnrichmentFetcher = WebsiteFetcher()
