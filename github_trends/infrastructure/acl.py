from datetime import datetime
from typing import Any, Dict, Optional
from github_trends.domain.models import RepositorySummary

class GitHubTranslator:
    """
    Anti-corruption layer that translates raw GitHub REST search items into RepositorySummary instances.
    """

    @staticmethod
    def to_domain(raw_item: Dict[str, Any]) -> RepositorySummary:
        """
        Transforms a raw item from the search/repositories response into a RepositorySummary.

        Args:
            raw_item (Dict[str, Any]): One element of the response's ``items`` array.

        Returns:
            RepositorySummary: The domain model instance representing the repository.
        """

        # Extract nested fields with safe defaults
        owner_data = raw_item.get('owner') or {}

        repo_id = raw_item.get('id')
        if repo_id is None:
            raise ValueError("id is required to build RepositorySummary.")

        return RepositorySummary(
            id=repo_id,
            name=raw_item.get('name') or '',
            owner=owner_data.get('login') or '',
            stars=raw_item.get('stargazers_count') or 0,
            forks=raw_item.get('forks_count') or 0,
            created_at=GitHubTranslator._parse_timestamp(raw_item.get('created_at')),
            language=raw_item.get('language'),
            html_url=raw_item.get('html_url') or '',
            avatar_url=owner_data.get('avatar_url') or '',
            description=raw_item.get('description'),
        )

    @staticmethod
    def _parse_timestamp(raw_date: Optional[str]) -> Optional[datetime]:
        if not raw_date:
            return None
        return datetime.fromisoformat(raw_date.replace("Z", "+00:00"))
