import unittest
from unittest.mock import AsyncMock, patch

from github_trends.application.detail_fetcher import DetailFetcher
from github_trends.domain.models import NO_DESCRIPTION, EnrichmentRecord, RateLimitState


class _FakeGitHubClient:
    def __init__(self, readme=None, repo_info=None, readme_error=None) -> None:
        self.readme = readme
        self.repo_info = repo_info
        self.readme_error = readme_error
        self.calls = []

    async def fetch_readme(self, session, owner, repo, credential=None, state=None):
        self.calls.append(("readme", owner, repo, credential, state))
        if self.readme_error:
            raise self.readme_error
        return self.readme

    async def fetch_repo_info(self, session, owner, repo, credential=None, state=None):
        self.calls.append(("info", owner, repo, credential, state))
        return self.repo_info


class TestDetailFetcher(unittest.IsolatedAsyncioTestCase):
    async def test_builds_record_from_readme_and_metadata(self) -> None:
        client = _FakeGitHubClient(
            readme="# Tool\n\nThis library makes parsing configuration files painless. More below.",
            repo_info={"description": "Config parser", "topics": ["config", "parser"]},
        )
        state = RateLimitState()

        record = await DetailFetcher(client).fetch_details(None, "octocat", "tool", credential="tok", state=state)

        self.assertEqual(record.summary_text, "Tool This library makes parsing configuration files painless.")
        self.assertEqual(record.topics, ("config", "parser"))
        self.assertTrue(record.readme_available)
        self.assertEqual(
            client.calls,
            [("readme", "octocat", "tool", "tok", state), ("info", "octocat", "tool", "tok", state)],
        )

    async def test_missing_readme_falls_back_to_description(self) -> None:
        client = _FakeGitHubClient(readme=None, repo_info={"description": "Config parser"})

        record = await DetailFetcher(client).fetch_details(None, "octocat", "tool")

        self.assertEqual(record.summary_text, "Config parser")
        self.assertEqual(record.topics, ())
        self.assertFalse(record.readme_available)
        # Metadata is still requested when the README is missing
        self.assertEqual([call[0] for call in client.calls], ["readme", "info"])

    async def test_nothing_available_yields_sentinel(self) -> None:
        record = await DetailFetcher(_FakeGitHubClient()).fetch_details(None, "octocat", "tool")

        self.assertEqual(record, EnrichmentRecord.unavailable())

    async def test_unexpected_failure_collapses_to_placeholder(self) -> None:
        client = _FakeGitHubClient(readme_error=RuntimeError("boom"))

        record = await DetailFetcher(client).fetch_details(None, "octocat", "tool")

        self.assertEqual(record.summary_text, NO_DESCRIPTION)
        self.assertEqual(record.topics, ())
        self.assertFalse(record.readme_available)

    async def test_waits_before_starting(self) -> None:
        client = _FakeGitHubClient(readme="x")

        with patch("github_trends.application.detail_fetcher.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await DetailFetcher(client).fetch_details(None, "octocat", "tool", delay_before_start=0.3)

        mock_sleep.assert_awaited_once_with(0.3)

    async def test_no_wait_for_zero_delay(self) -> None:
        with patch("github_trends.application.detail_fetcher.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await DetailFetcher(_FakeGitHubClient()).fetch_details(None, "octocat", "tool")

        mock_sleep.assert_not_awaited()
