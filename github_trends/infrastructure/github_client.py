import aiohttp
import asyncio
import base64
import binascii
import logging
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional

from github_trends.domain.models import RateLimitState
from github_trends.infrastructure.cache_store import CacheStore

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_PER_PAGE = 30
REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=15, connect=5)
# GitHub signals both primary and secondary rate limits with these
RATE_LIMIT_STATUSES = {403, 429}


class TransportStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"


class TransportResult(NamedTuple):
    status: TransportStatus
    body: Any = None

    @property
    def ok(self) -> bool:
        return self.status is TransportStatus.OK


class GitHubRestClient:
    """
    Client for the GitHub REST API endpoints used by the trend fetcher.
    Classifies responses instead of raising, and serves README and
    repository metadata from the cache when possible.
    """

    def __init__(
            self,
            cache: CacheStore,
            api_url: str = DEFAULT_API_URL,
            timeout: aiohttp.ClientTimeout = REQUEST_TIMEOUT,
    ):
        self.cache = cache
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @staticmethod
    def headers(credential: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "github-trends",
        }
        if credential:
            headers["Authorization"] = f"token {credential}"
        return headers

    async def request_json(
        self,
        session: aiohttp.ClientSession,
        url: str,
        credential: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        optional: bool = False,
        state: Optional[RateLimitState] = None,
    ) -> TransportResult:
        """
        Issues a GET request and classifies the outcome.

        Args:
            optional (bool): Report non-2xx answers as NOT_FOUND rather than ERROR.
            state (Optional[RateLimitState]): Tripped when the response is a rate-limit answer.

        Returns:
            TransportResult: Status plus the decoded JSON body for OK results.
        """
        try:
            async with session.get(url, params=params, headers=self.headers(credential), timeout=self.timeout) as response:
                if response.status in RATE_LIMIT_STATUSES:
                    logger.warning(f"Rate limited ({response.status}) on {url}.")
                    if state is not None:
                        state.trip()
                    return TransportResult(TransportStatus.RATE_LIMITED)

                if not 200 <= response.status < 300:
                    logger.debug(f"GET {url} returned {response.status}.")
                    status = TransportStatus.NOT_FOUND if optional else TransportStatus.ERROR
                    return TransportResult(status)

                body = await response.json(content_type=None)
                return TransportResult(TransportStatus.OK, body)

        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Request to {url} failed: {e!r}")
            return TransportResult(TransportStatus.ERROR)

    async def search_repositories(
        self,
        session: aiohttp.ClientSession,
        query: str,
        credential: Optional[str] = None,
        per_page: int = DEFAULT_PER_PAGE,
        state: Optional[RateLimitState] = None,
    ) -> TransportResult:
        """Runs a repository search sorted by stars, descending. Never cached."""
        params = {"q": query, "sort": "stars", "order": "desc", "per_page": per_page}
        return await self.request_json(
            session, f"{self.api_url}/search/repositories", credential, params=params, state=state,
        )

    async def fetch_readme(
        self,
        session: aiohttp.ClientSession,
        owner: str,
        repo: str,
        credential: Optional[str] = None,
        state: Optional[RateLimitState] = None,
    ) -> Optional[str]:
        """
        Returns the decoded README text, or None if the repository has none or it cannot be fetched.
        """
        cache_key = f"readme:{owner}:{repo}"
        cached = await self.cache.get(cache_key)
        if cached:
            return cached

        result = await self.request_json(
            session, f"{self.api_url}/repos/{owner}/{repo}/readme", credential, optional=True, state=state,
        )
        if not result.ok:
            return None

        text = self._decode_content(result.body)
        if text is None:
            return None

        await self.cache.put(cache_key, text)
        return text

    async def fetch_repo_info(
        self,
        session: aiohttp.ClientSession,
        owner: str,
        repo: str,
        credential: Optional[str] = None,
        state: Optional[RateLimitState] = None,
    ) -> Optional[Dict[str, Any]]:
        """Returns the repository metadata object, or None."""
        cache_key = f"info:{owner}:{repo}"
        cached = await self.cache.get(cache_key)
        if cached:
            return cached

        result = await self.request_json(
            session, f"{self.api_url}/repos/{owner}/{repo}", credential, state=state,
        )
        if not result.ok or not isinstance(result.body, dict):
            return None

        await self.cache.put(cache_key, result.body)
        return result.body

    @staticmethod
    def _decode_content(body: Any) -> Optional[str]:
        if not isinstance(body, dict):
            return None
        content = body.get("content")
        if not isinstance(content, str):
            return None
        try:
            raw = base64.b64decode(content.replace("\n", ""))
        except (binascii.Error, ValueError):
            logger.debug("README content is not valid base64.")
            return None
        return raw.decode("utf-8", errors="replace")
