import calendar
import logging
from datetime import date, datetime, timedelta, timezone
from functools import partial
from typing import Callable, List, Optional, Union
import aiohttp

from github_trends.application.detail_fetcher import DetailFetcher
from github_trends.application.pacing import PacedTaskQueue
from github_trends.domain.exceptions import RateLimitExceededException, SearchFailedException
from github_trends.domain.models import EnrichmentRecord, RateLimitState, RepositorySummary, TimeWindow, TrendResult
from github_trends.infrastructure.acl import GitHubTranslator
from github_trends.infrastructure.github_client import GitHubRestClient, TransportStatus

logger = logging.getLogger(__name__)

# Enrichment costs two requests per repository, so only the top few get it
ENRICH_LIMIT = 6
PACING_INTERVAL = 0.1  # Seconds between consecutive detail fetch start times
SEARCH_PER_PAGE = 30
# Requests are sequential; a single pooled connection is enough
CONNECTOR_LIMIT = 1


def _one_month_before(day: date) -> date:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


class TrendService:
    """
    Orchestrates one fetch cycle: search for recently created repositories,
    then enrich the top results one after another with paced detail fetches.
    """

    def __init__(
            self,
            github_client: GitHubRestClient,
            detail_fetcher: DetailFetcher,
            enrich_limit: int = ENRICH_LIMIT,
            pacing_interval: float = PACING_INTERVAL,
            per_page: int = SEARCH_PER_PAGE,
            now: Optional[Callable[[], datetime]] = None,
    ):
        self.github_client = github_client
        self.detail_fetcher = detail_fetcher
        self.enrich_limit = enrich_limit
        self.per_page = per_page
        self.queue = PacedTaskQueue(pacing_interval)
        self.now = now or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def cutoff_date(time_window: TimeWindow, now: datetime) -> date:
        today = now.astimezone(timezone.utc).date() if now.tzinfo else now.date()
        if time_window is TimeWindow.WEEKLY:
            return today - timedelta(days=7)
        if time_window is TimeWindow.MONTHLY:
            return _one_month_before(today)
        return today - timedelta(days=1)

    @staticmethod
    def build_search_query(cutoff: date, language: Optional[str] = None) -> str:
        query = f"created:>{cutoff.isoformat()}"
        if language:
            query += f" language:{language}"
        return query

    async def fetch_trending(
        self,
        time_window: Union[TimeWindow, str],
        language: Optional[str] = None,
        credential: Optional[str] = None,
    ) -> TrendResult:
        """
        Fetches the most starred repositories created within ``time_window``.

        Raises:
            RateLimitExceededException: If the search request is rate limited.
            SearchFailedException: If the search fails for any other reason.
        """
        time_window = TimeWindow(time_window)
        state = RateLimitState()
        query = self.build_search_query(self.cutoff_date(time_window, self.now()), language)

        logger.info(f"Searching repositories with query '{query}'.")

        async with aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=CONNECTOR_LIMIT),
        ) as session:
            result = await self.github_client.search_repositories(
                session, query, credential, per_page=self.per_page, state=state,
            )

            if result.status is TransportStatus.RATE_LIMITED:
                raise RateLimitExceededException(has_credential=bool(credential))
            if not result.ok or not isinstance(result.body, dict):
                raise SearchFailedException()

            repositories = self._translate(result.body.get("items") or [])
            top = repositories[:self.enrich_limit]

            jobs = [partial(self._enrich, session, repo, credential, state) for repo in top]
            records = await self.queue.run(jobs)

        enrichment = {repo.id: record for repo, record in zip(top, records)}
        if state.triggered:
            logger.warning("Rate limit reached during enrichment; some details are placeholders.")
        logger.info(f"Fetched {len(repositories)} repositories, enriched {len(enrichment)}.")

        return TrendResult(
            time_window=time_window,
            language=language or None,
            repositories=tuple(repositories),
            enrichment=enrichment,
            rate_limited=state.triggered,
        )

    async def _enrich(
        self, session, repo: RepositorySummary, credential, state, delay: float,
    ) -> EnrichmentRecord:
        return await self.detail_fetcher.fetch_details(
            session, repo.owner, repo.name, delay, credential, state,
        )

    @staticmethod
    def _translate(items: list) -> List[RepositorySummary]:
        repositories = []
        for item in items:
            try:
                repositories.append(GitHubTranslator.to_domain(item))
            except (ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed search item: {e}")
        return repositories
