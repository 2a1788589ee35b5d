"""Rate-limited HTTP fetcher with bot-check detection.

One long-lived :class:`Fetcher` owns the request counter for the process.
Every request first sleeps through :meth:`Fetcher.intelligent_delay`; after
``slow_mode_threshold`` requests the delay window widens, mirroring the
source site's own rate-limit escalation.
"""

from __future__ import annotations

import logging
import random
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urlparse

import httpx

from douban_sync.categories import Domain
from douban_sync.config import Settings, settings
from douban_sync.errors import BlockedError, ForbiddenError, NetworkError
from douban_sync.scraper.models import FetchRequest, RawPage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Block detection heuristics
# ---------------------------------------------------------------------------
_VERIFICATION_MARKERS = [
    "<title>禁止访问</title>",
    "验证码",
    "人机验证",
    "captcha",
    "robot check",
    "安全验证",
]

_ACCESS_DENIED_MARKERS = [
    "访问被拒绝",
    "access denied",
    "请求频繁",
    "too many requests",
    "系统繁忙",
]

BlockDetector = Callable[[str], Optional[str]]


def detect_block(html: str) -> str | None:
    """Return the reason *html* looks like a block page, or ``None``."""
    lowered = html.lower()
    for marker in _VERIFICATION_MARKERS:
        if marker.lower() in lowered:
            return f"human verification required ({marker})"
    for marker in _ACCESS_DENIED_MARKERS:
        if marker.lower() in lowered:
            return f"access denied ({marker})"
    return None


# ---------------------------------------------------------------------------
# Header profiles
# ---------------------------------------------------------------------------

def sanitize_cookie(cookie: str) -> str:
    """Strip newlines and collapse whitespace in a pasted cookie string."""
    return re.sub(r"\s+", " ", re.sub(r"\r?\n", "", cookie)).strip()


def domain_for_url(url: str) -> Domain:
    """Map *url* to the vertical whose header profile it needs."""
    host = urlparse(url).netloc.lower()
    if host.startswith("book."):
        return Domain.BOOK
    if host.startswith("movie."):
        return Domain.MOVIE
    return Domain.WWW


def build_headers(
    domain: Domain,
    cookie: str | None = None,
    user_agent: str | None = None,
) -> dict[str, str]:
    """Browser-like request headers for *domain*, with the session cookie."""
    headers = {
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "zh-CN,zh;q=0.9",
        "Cache-Control": "max-age=0",
        "Host": domain.host,
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Upgrade-Insecure-Requests": "1",
        "User-Agent": user_agent or settings.user_agent,
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
    }
    if cookie:
        headers["Cookie"] = sanitize_cookie(cookie)
    return headers


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------

@dataclass
class FetcherStats:
    request_count: int
    is_slow_mode: bool
    slow_mode_threshold: int
    base_delay: float
    slow_delay: float


@dataclass
class DelayConfig:
    mode: str
    base_delay: float
    random_range: float
    expected_delay: float


class Fetcher:
    """Issues single GETs against the source site with adaptive delay.

    Args:
        config: Settings to read delays and retry limits from.  Defaults to
            the module singleton.
        block_detector: Predicate returning a reason string when a response
            body is a block page.  Defaults to :func:`detect_block`.
    """

    def __init__(
        self,
        config: Settings | None = None,
        block_detector: BlockDetector = detect_block,
    ) -> None:
        self._settings = config or settings
        self._detect_block = block_detector
        self._request_count = 0

    # ------------------------------------------------------------------
    # Counter state
    # ------------------------------------------------------------------
    @property
    def request_count(self) -> int:
        return self._request_count

    @property
    def is_slow_mode(self) -> bool:
        return self._request_count > self._settings.slow_mode_threshold

    def intelligent_delay(self) -> float:
        """Count one request and sleep for the current mode's delay.

        Returns:
            The number of seconds slept.
        """
        self._request_count += 1
        cfg = self._settings
        if self.is_slow_mode:
            delay = cfg.slow_delay + random.uniform(0, cfg.slow_random_delay)
            mode = "Slow"
        else:
            delay = cfg.base_delay + random.uniform(0, cfg.random_delay)
            mode = "Normal"
        logger.debug(
            "%s mode (%d requests) - delay: %.2fs", mode, self._request_count, delay
        )
        time.sleep(delay)
        return delay

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------
    def fetch(self, url: str, credential: str) -> RawPage:
        """Fetch *url* with the session *credential* and return a :class:`RawPage`.

        Transient failures are retried up to ``max_retries`` attempts in
        total.  Block pages and 403 responses are never retried.

        Raises:
            BlockedError: The body shows a verification or access-denied page.
            ForbiddenError: The server answered 403.
            NetworkError: Every attempt failed with a transport error or an
                unexpected status.
        """
        request = FetchRequest(url=url, credential=credential, domain=domain_for_url(url))
        attempts = max(1, self._settings.max_retries)
        attempt = 0

        while True:
            attempt += 1
            logger.debug("Attempt %d/%d - %s", attempt, attempts, url)
            if attempt > 1:
                time.sleep(
                    random.uniform(
                        self._settings.retry_delay_min, self._settings.retry_delay_max
                    )
                )
            self.intelligent_delay()

            try:
                page = self._request(request)
            except NetworkError as exc:
                logger.warning("Attempt %d/%d failed for %s: %s", attempt, attempts, url, exc)
                if attempt >= attempts:
                    logger.error("All %d attempts failed for %s", attempts, url)
                    raise
                continue

            logger.debug("Request successful - %s", url)
            return page

    def _request(self, request: FetchRequest) -> RawPage:
        headers = build_headers(
            request.domain, request.credential, user_agent=self._settings.user_agent
        )
        with httpx.Client(
            headers=headers,
            timeout=self._settings.request_timeout,
            follow_redirects=True,
        ) as client:
            try:
                response = client.get(request.url)
            except httpx.HTTPError as exc:
                raise NetworkError(f"Request failed: {exc}", url=request.url) from exc

        if response.status_code == 403:
            raise ForbiddenError(
                "Request forbidden (403) - possible IP blocking", url=request.url
            )

        html = response.text
        reason = self._detect_block(html)
        if reason:
            raise BlockedError(f"Access blocked: {reason}", url=request.url, reason=reason)

        if response.status_code >= 400:
            raise NetworkError(
                f"Unexpected HTTP status {response.status_code}",
                url=request.url,
                status_code=response.status_code,
            )

        return RawPage(url=request.url, html=html, status_code=response.status_code)

    # ------------------------------------------------------------------
    # Operator hooks
    # ------------------------------------------------------------------
    def get_stats(self) -> FetcherStats:
        cfg = self._settings
        return FetcherStats(
            request_count=self._request_count,
            is_slow_mode=self.is_slow_mode,
            slow_mode_threshold=cfg.slow_mode_threshold,
            base_delay=cfg.base_delay,
            slow_delay=cfg.slow_delay,
        )

    def current_delay_config(self) -> DelayConfig:
        cfg = self._settings
        if self.is_slow_mode:
            return DelayConfig(
                mode="slow",
                base_delay=cfg.slow_delay,
                random_range=cfg.slow_random_delay,
                expected_delay=cfg.slow_delay + cfg.slow_random_delay / 2,
            )
        return DelayConfig(
            mode="normal",
            base_delay=cfg.base_delay,
            random_range=cfg.random_delay,
            expected_delay=cfg.base_delay + cfg.random_delay / 2,
        )

    def reset_counter(self) -> None:
        """Zero the request counter.  Operator action; never call mid-batch."""
        old = self._request_count
        self._request_count = 0
        logger.info("Request count reset from %d to 0", old)

    def set_count(self, count: int) -> None:
        self._request_count = count
        logger.debug("Request count manually set to %d", count)
