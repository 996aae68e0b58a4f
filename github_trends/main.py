import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import aiohttp
from dotenv import load_dotenv
from pydantic import ValidationError

from github_trends.application.detail_fetcher import DetailFetcher
from github_trends.application.trend_board import TrendBoard
from github_trends.application.trend_service import TrendService
from github_trends.config import Settings
from github_trends.domain.models import TimeWindow
from github_trends.infrastructure.cache_store import CacheStore
from github_trends.infrastructure.github_client import GitHubRestClient

logger = logging.getLogger(__name__)


def format_count(num: int) -> str:
    if num >= 1000:
        return f"{num / 1000:.1f}k"
    return str(num)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Show trending GitHub repositories created in a recent time window",
    )
    parser.add_argument(
        "--window",
        choices=[window.value for window in TimeWindow],
        default=TimeWindow.DAILY.value,
        help="Creation time window (default: daily)",
    )
    parser.add_argument("--language", default=None, help="Only repositories in this language")
    parser.add_argument(
        "--token",
        default=None,
        help="GitHub token (default: GITHUB_TOKEN); raises the rate limit to 5000 requests/hour",
    )
    parser.add_argument("--search", default="", help="Filter the fetched list by name, owner or description")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def render(board: TrendBoard, query: str) -> List[str]:
    repositories = board.visible(query)
    lines = []
    for rank, repo in enumerate(repositories, start=1):
        created = repo.created_at.date().isoformat() if repo.created_at else "unknown"
        lines.append(
            f"{rank:>2}. {repo.full_name}  "
            f"* {format_count(repo.stars)}  forks {format_count(repo.forks)}  "
            f"{repo.language or '-'}  created {created}"
        )
        record = board.result.enrichment.get(repo.id)
        if record and record.topics:
            lines.append(f"    topics: {', '.join(record.topics)}")
        lines.append(f"    {board.description_for(repo)}")
        lines.append(f"    {repo.html_url}")
    lines.append(f"Showing {len(repositories)} trending repositories")
    return lines


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )

    # Load environment variables from .env file
    load_dotenv()
    try:
        settings = Settings.from_env()
    except ValidationError as e:
        logger.error(f"Invalid configuration in the environment:\n{e}")
        return 1

    credential = args.token or settings.github_token
    if not credential:
        logger.info("No GitHub token set; unauthenticated requests are limited to 60/hour.")

    cache = CacheStore(settings.cache_db_url, ttl=settings.cache_ttl_seconds)
    github_client = GitHubRestClient(
        cache=cache,
        api_url=settings.api_url,
        timeout=aiohttp.ClientTimeout(
            total=settings.request_timeout_seconds,
            connect=settings.request_connect_timeout_seconds,
        ),
    )
    trend_service = TrendService(
        github_client=github_client,
        detail_fetcher=DetailFetcher(github_client),
        enrich_limit=settings.enrich_limit,
        pacing_interval=settings.pacing_interval_seconds,
        per_page=settings.search_per_page,
    )
    board = TrendBoard(trend_service)

    try:
        applied = await board.refresh(args.window, args.language, credential)
    finally:
        await cache.close()

    if not applied:
        print(f"Error: {board.error} Run the command again to retry.", file=sys.stderr)
        return 1

    if board.rate_limited:
        logger.warning("Rate limit reached while fetching details; some descriptions may be missing.")

    print("\n".join(render(board, args.search)))
    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Interrupted by user. Exiting.")
        sys.exit(130)


if __name__ == "__main__":
    run()
