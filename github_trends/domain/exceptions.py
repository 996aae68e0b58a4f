class TrendFetcherException(Exception):
    """Base exception for all trend-fetching errors."""
    pass

class RateLimitExceededException(TrendFetcherException):
    """Raised when the GitHub REST API answers a search with 403 or 429."""
    def __init__(self, has_credential: bool):
        self.has_credential = has_credential
        if has_credential:
            message = "GitHub API rate limit exceeded. Please wait a minute and try again."
        else:
            message = "GitHub API rate limit exceeded. Add a token for 5000 requests/hour, or wait 1 minute."
        super().__init__(message)

class SearchFailedException(TrendFetcherException):
    """Raised when the repository search fails for any reason other than rate limiting."""
    def __init__(self, message: str = "Failed to fetch repositories"):
        super().__init__(message)

class DetailFetchFailedException(TrendFetcherException):
    """Raised when enriching a single repository fails. Never leaves the detail fetcher."""
    def __init__(self, owner: str, repo: str):
        self.owner = owner
        self.repo = repo
        super().__init__(f"Failed to fetch details for {owner}/{repo}")

class CacheException(TrendFetcherException):
    """Raised when the cache medium cannot be read or written. Never leaves the cache store."""
    pass
