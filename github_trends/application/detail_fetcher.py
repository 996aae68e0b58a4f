import asyncio
import logging
from typing import Optional

import aiohttp

from github_trends.domain.exceptions import DetailFetchFailedException
from github_trends.domain.models import EnrichmentRecord, RateLimitState
from github_trends.domain.summary import DEFAULT_CONFIG, SummaryConfig, extract_summary
from github_trends.infrastructure.github_client import GitHubRestClient

logger = logging.getLogger(__name__)


class DetailFetcher:
    """
    Enriches a single repository with a README-derived summary and its topics.
    Failures never propagate: they collapse to a placeholder record.
    """

    def __init__(self, github_client: GitHubRestClient, summary_config: SummaryConfig = DEFAULT_CONFIG):
        self.github_client = github_client
        self.summary_config = summary_config

    async def fetch_details(
        self,
        session: aiohttp.ClientSession,
        owner: str,
        repo: str,
        delay_before_start: float = 0.0,
        credential: Optional[str] = None,
        state: Optional[RateLimitState] = None,
    ) -> EnrichmentRecord:
        """
        Waits ``delay_before_start`` seconds, then fetches README and metadata (cache first).

        Returns:
            EnrichmentRecord: The enrichment, or ``EnrichmentRecord.unavailable()`` on failure.
        """
        if delay_before_start > 0:
            await asyncio.sleep(delay_before_start)

        try:
            return await self._enrich(session, owner, repo, credential, state)
        except DetailFetchFailedException as e:
            logger.warning(f"{e}: {e.__cause__!r}. Using placeholder details.")
            return EnrichmentRecord.unavailable()

    async def _enrich(self, session, owner, repo, credential, state) -> EnrichmentRecord:
        try:
            # Neither call raises on HTTP failures, so both are always attempted
            readme = await self.github_client.fetch_readme(session, owner, repo, credential, state)
            repo_info = await self.github_client.fetch_repo_info(session, owner, repo, credential, state)

            repo_info = repo_info or {}
            summary = extract_summary(readme, repo_info.get("description"), self.summary_config)

            return EnrichmentRecord(
                summary_text=summary,
                topics=tuple(str(topic) for topic in repo_info.get("topics") or ()),
                readme_available=readme is not None,
            )
        except Exception as e:
            raise DetailFetchFailedException(owner, repo) from e
