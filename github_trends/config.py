import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CACHE_PATH = Path.home() / ".cache" / "github-trends" / "cache.db"


class Settings(BaseModel):
    """
    Runtime configuration read from environment variables.
    Call ``load_dotenv()`` before ``from_env()`` to pick up a local .env file.
    """
    model_config = ConfigDict(frozen=True)

    github_token: Optional[str] = None
    api_url: str = "https://api.github.com"
    cache_db_url: str = f"sqlite+aiosqlite:///{DEFAULT_CACHE_PATH}"
    cache_ttl_seconds: float = Field(300.0, gt=0)
    enrich_limit: int = Field(6, ge=0)
    pacing_interval_seconds: float = Field(0.1, ge=0)
    search_per_page: int = Field(30, ge=1, le=100)
    request_timeout_seconds: float = Field(15.0, gt=0)
    request_connect_timeout_seconds: float = Field(5.0, gt=0)

    @classmethod
    def from_env(cls) -> "Settings":
        env_map = {
            "github_token": "GITHUB_TOKEN",
            "api_url": "GITHUB_API_URL",
            "cache_db_url": "CACHE_DB_URL",
            "cache_ttl_seconds": "CACHE_TTL_SECONDS",
            "enrich_limit": "ENRICH_LIMIT",
            "pacing_interval_seconds": "PACING_INTERVAL_SECONDS",
            "search_per_page": "SEARCH_PER_PAGE",
            "request_timeout_seconds": "REQUEST_TIMEOUT_SECONDS",
            "request_connect_timeout_seconds": "REQUEST_CONNECT_TIMEOUT_SECONDS",
        }
        values = {}
        for field, env_var in env_map.items():
            value = os.getenv(env_var)
            # Empty strings count as unset
            if value:
                values[field] = value
        return cls(**values)
