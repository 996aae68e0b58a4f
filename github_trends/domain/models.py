from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from pydantic import BaseModel, Field, ConfigDict

NO_DESCRIPTION = "No description available"


class TimeWindow(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RepositorySummary(BaseModel):
    """
    Immutable domain model for one row of a repository search result.
    """
    # Enforces immutability: once created, fields cannot be modified.
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Numeric repository id from GitHub")
    name: str = Field(..., description="Name of the repository")
    owner: str = Field(..., description="Login name of the repository owner")
    stars: int = Field(0, ge=0, description="Total number of stargazers")
    forks: int = Field(0, ge=0, description="Total number of forks")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    language: Optional[str] = Field(None, description="Primary language tag")
    html_url: str = Field("", description="Canonical web URL of the repository")
    avatar_url: str = Field("", description="Avatar URL of the repository owner")
    description: Optional[str] = Field(None, description="Platform-supplied description")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class EnrichmentRecord(BaseModel):
    """
    README-derived details for a single repository, produced by the detail fetcher.
    """
    model_config = ConfigDict(frozen=True)

    summary_text: str = Field(..., description="Short plain-text teaser")
    topics: Tuple[str, ...] = Field(default_factory=tuple, description="Topics in platform order")
    readme_available: bool = Field(False, description="Whether a README could be fetched")

    @classmethod
    def unavailable(cls) -> "EnrichmentRecord":
        return cls(summary_text=NO_DESCRIPTION, topics=(), readme_available=False)


class CacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    payload: Any
    written_at: float = Field(..., description="Epoch seconds at write time")

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.written_at > ttl


class RateLimitState:
    """
    Rate-limit flag scoped to a single fetch cycle.

    A fresh instance is created at the start of every trend fetch and passed
    explicitly to each transport call made during that cycle.
    """

    def __init__(self) -> None:
        self.triggered = False

    def trip(self) -> None:
        self.triggered = True


class TrendResult(BaseModel):
    """
    Everything one fetch cycle produces. Replaced as a unit, never patched.
    """
    model_config = ConfigDict(frozen=True)

    time_window: TimeWindow
    language: Optional[str] = None
    repositories: Tuple[RepositorySummary, ...] = Field(default_factory=tuple)
    enrichment: Dict[int, EnrichmentRecord] = Field(default_factory=dict)
    rate_limited: bool = False
