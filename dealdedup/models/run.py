"""Run models: windows, limits and the report returned by a cleanup run."""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..errors import InvalidInputError
from .article import Article
from .judgment import ConfidenceTier


class WindowStrategy(str, Enum):
    """How candidate articles are selected for a run."""

    RECENT = "recent"
    PUBLICATION_DATE = "publication_date"


class RunMode(str, Enum):
    PREVIEW = "preview"
    APPLY = "apply"


class ResolutionStrategy(str, Enum):
    """What applying a plan does to redundant articles."""

    DELETE = "delete"
    FILL_MISSING_LINK = "fill_missing_link"


class RunState(str, Enum):
    FETCHING = "fetching"
    COMPARING = "comparing"
    GROUPING = "grouping"
    GATE_CHECKING = "gate_checking"
    PREVIEWING = "previewing"
    APPLYING = "applying"
    REPORTED = "reported"
    FAILED = "failed"


class RunStatus(str, Enum):
    COMPLETED = "completed"
    REJECTED = "rejected"
    PARTIAL = "partial"
    CANCELLED = "cancelled"
    FAILED = "failed"


class Window(BaseModel):
    """Date or recency range of articles considered in one run."""

    strategy: WindowStrategy = Field(WindowStrategy.RECENT)
    days: Optional[int] = Field(None, description="Look-back in days for the recent strategy")
    start_date: Optional[date] = Field(None, description="First publication date (inclusive)")
    end_date: Optional[date] = Field(None, description="Last publication date (inclusive)")

    @classmethod
    def recent(cls, days: int) -> "Window":
        """Articles created within the last ``days`` days."""
        return cls(strategy=WindowStrategy.RECENT, days=days)

    @classmethod
    def publication_dates(cls, start_date: date, end_date: Optional[date] = None) -> "Window":
        """Articles published in a date range, compared per exact date."""
        return cls(
            strategy=WindowStrategy.PUBLICATION_DATE,
            start_date=start_date,
            end_date=end_date or start_date,
        )

    def validate_params(self) -> None:
        """Raise InvalidInputError when the window cannot be fetched."""
        if self.strategy == WindowStrategy.RECENT:
            if self.days is None:
                raise InvalidInputError("Recent window requires 'days'")
            if self.days < 1:
                raise InvalidInputError(f"Window days must be >= 1, got {self.days}")
        else:
            if self.start_date is None or self.end_date is None:
                raise InvalidInputError("Publication-date window requires start and end dates")
            if self.start_date > self.end_date:
                raise InvalidInputError(
                    f"Window start {self.start_date} is after end {self.end_date}"
                )

    def describe(self) -> str:
        if self.strategy == WindowStrategy.RECENT:
            return f"last {self.days} days"
        if self.start_date == self.end_date:
            return f"published {self.start_date}"
        return f"published {self.start_date}..{self.end_date}"


class RunLimits(BaseModel):
    """Per-run overrides of the safety configuration."""

    max_deletions: Optional[int] = Field(None, ge=0)
    max_groups: Optional[int] = Field(None, ge=0)
    min_confidence_tier: Optional[ConfidenceTier] = Field(None)


class SkippedArticle(BaseModel):
    article_id: Optional[int]
    reason: str


class FailedAction(BaseModel):
    article_id: Optional[int]
    error: str


class GroupSummary(BaseModel):
    """Audit view of one duplicate group."""

    canonical_id: Optional[int]
    canonical_title: str
    redundant_ids: List[Optional[int]] = Field(default_factory=list)
    confidence_tier: ConfidenceTier
    allowed: bool = Field(True, description="Whether the gate lets this group be resolved")
    rationale: str


class RunReport(BaseModel):
    """Outcome of one cleanup run."""

    run_id: str
    mode: RunMode
    resolution: ResolutionStrategy = Field(ResolutionStrategy.DELETE)
    window: Window
    state: RunState = Field(RunState.FETCHING)
    status: Optional[RunStatus] = Field(None)
    started_at: datetime
    finished_at: Optional[datetime] = Field(None)

    articles_analyzed: int = 0
    comparisons: int = 0
    pairs_skipped_out_of_window: int = 0
    semantic_calls: int = 0
    semantic_fallbacks: int = 0
    groups_found: int = 0
    redundant_count: int = 0
    deleted_count: int = 0
    updated_count: int = 0
    failed_count: int = 0

    skipped: List[SkippedArticle] = Field(default_factory=list)
    failures: List[FailedAction] = Field(default_factory=list)
    rejected_reasons: List[str] = Field(default_factory=list)
    groups: List[GroupSummary] = Field(default_factory=list)
    backups: List[Article] = Field(
        default_factory=list, description="Articles as they were before being deleted or updated"
    )

    stage_durations: Dict[str, float] = Field(default_factory=dict, description="Seconds per state")

    partially_applied: bool = False
    error: Optional[str] = None

    @property
    def rationale(self) -> List[str]:
        return [group.rationale for group in self.groups]
