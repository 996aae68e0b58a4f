import logging
from typing import Iterable, List, Optional, Union

from github_trends.application.trend_service import TrendService
from github_trends.domain.exceptions import RateLimitExceededException, TrendFetcherException
from github_trends.domain.models import NO_DESCRIPTION, RepositorySummary, TimeWindow, TrendResult

logger = logging.getLogger(__name__)


def filter_repositories(repositories: Iterable[RepositorySummary], query: str) -> List[RepositorySummary]:
    """Case-insensitive match on name, description or owner login."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(repositories)
    return [
        repo for repo in repositories
        if needle in repo.name.lower()
        or (repo.description and needle in repo.description.lower())
        or needle in repo.owner.lower()
    ]


class TrendBoard:
    """
    Holds the latest fetch cycle's result for the presentation layer.

    Each refresh takes a generation number. A cycle that finishes after a
    newer one has started is discarded, so results are only ever replaced
    whole, by the most recently started cycle.
    """

    def __init__(self, trend_service: TrendService):
        self.trend_service = trend_service
        self.result: Optional[TrendResult] = None
        self.error: Optional[str] = None
        self.loading = False
        self.rate_limited = False
        self._generation = 0

    async def refresh(
        self,
        time_window: Union[TimeWindow, str],
        language: Optional[str] = None,
        credential: Optional[str] = None,
    ) -> bool:
        """
        Runs a fetch cycle and applies its result if no newer cycle has started.

        Returns:
            bool: True if this cycle's result was applied.
        """
        self._generation += 1
        generation = self._generation
        self.loading = True
        self.error = None
        self.rate_limited = False

        try:
            result = await self.trend_service.fetch_trending(time_window, language, credential)
        except TrendFetcherException as e:
            # The previous result set is kept so the caller can still show it
            if generation == self._generation:
                self.error = str(e)
                self.rate_limited = isinstance(e, RateLimitExceededException)
            return False
        finally:
            if generation == self._generation:
                self.loading = False

        if generation != self._generation:
            logger.info(f"Discarding superseded {result.time_window.value} results.")
            return False

        self.result = result
        self.rate_limited = result.rate_limited
        return True

    def visible(self, query: str = "") -> List[RepositorySummary]:
        if self.result is None:
            return []
        return filter_repositories(self.result.repositories, query)

    def description_for(self, repo: RepositorySummary) -> str:
        record = self.result.enrichment.get(repo.id) if self.result else None
        if record and record.summary_text:
            return record.summary_text
        return repo.description or NO_DESCRIPTION
