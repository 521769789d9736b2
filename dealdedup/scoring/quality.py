"""Article quality scoring used to pick the canonical article of a group."""

import math
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

import pendulum
from pydantic import BaseModel, Field

from ..config import QualityConfig
from ..models import Article

WIRE_DOMAINS = (
    "reuters.com",
    "businesswire.com",
    "prnewswire.com",
    "yahoo.com",
    "marketwatch.com",
    "cnbc.com",
)
NEWSROOM_MARKERS = ("newsroom", "investor", "press", "news.")
PUBLICATION_DOMAINS = ("seekingalpha.com", "benzinga.com", "ft.com", "wsj.com")
PAID_DOMAINS = ("bloomberg.com",)

WIRE_SOURCES = ("reuters", "business wire", "pr newswire", "yahoo", "marketwatch", "cnbc")
NEWSROOM_SOURCES = ("newsroom", "investor", "press", "official")
PUBLICATION_SOURCES = ("seeking alpha", "benzinga", "financial times", "wsj")


class QualityScore(BaseModel):
    """Quality score of one article with breakdown."""

    article_id: Optional[int] = Field(None, description="Article database ID")
    total_score: float = Field(..., description="Sum of all components", ge=0.0)
    components: Dict[str, float] = Field(default_factory=dict, description="Score per component")
    reason: str = Field("", description="Human-readable scoring reason")


class BaseScorer(ABC):
    """Base class for quality components."""

    name = "base"

    @abstractmethod
    def score(self, article: Article) -> float:
        """
        Score one aspect of an article.

        Args:
            article: Article to score

        Returns:
            Non-negative contribution to the total
        """
        pass


class UrlDomainScorer(BaseScorer):
    """Tiered reputation of the article's URL."""

    name = "url"

    def score(self, article: Article) -> float:
        if not article.source_url:
            return 0.0

        url = article.source_url.lower()
        if any(domain in url for domain in WIRE_DOMAINS):
            return 100.0
        if any(marker in url for marker in NEWSROOM_MARKERS):
            return 90.0
        if any(domain in url for domain in PUBLICATION_DOMAINS):
            return 70.0
        if any(domain in url for domain in PAID_DOMAINS):
            return 30.0
        if url.startswith("https://"):
            return 50.0
        return 10.0


class SourceNameScorer(BaseScorer):
    """Reputation of the publisher label, used only when there is no URL."""

    name = "source"

    def score(self, article: Article) -> float:
        if article.source_url or not article.source:
            return 0.0

        source = article.source.lower()
        if any(name in source for name in WIRE_SOURCES):
            return 50.0
        if any(name in source for name in NEWSROOM_SOURCES):
            return 45.0
        if any(name in source for name in PUBLICATION_SOURCES):
            return 35.0
        if "bloomberg terminal" in source:
            return 5.0
        if "bloomberg" in source:
            return 15.0
        if "news" in source:
            return 10.0
        return 0.0


class ContentScorer(BaseScorer):
    """Bonuses for a descriptive title, a full summary and rich-text formatting."""

    name = "content"

    def __init__(self, config: QualityConfig) -> None:
        self.config = config

    def score(self, article: Article) -> float:
        total = 0.0
        if len(article.title) > self.config.title_min_length:
            total += self.config.title_bonus
        if len(article.summary) > self.config.summary_min_length:
            total += self.config.summary_bonus
        if "**" in article.summary:
            total += self.config.formatting_bonus
        return total


class EngagementScorer(BaseScorer):
    """Community engagement, linear in upvotes."""

    name = "engagement"

    def __init__(self, multiplier: float = 3.0) -> None:
        self.multiplier = multiplier

    def score(self, article: Article) -> float:
        return article.engagement_score * self.multiplier


class RecencyScorer(BaseScorer):
    """Small bonus for recently ingested articles with exponential decay."""

    name = "recency"

    def __init__(
        self,
        max_bonus: float = 5.0,
        half_life_hours: float = 24.0,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Initialize recency scorer.

        Args:
            max_bonus: Bonus for an article ingested right now
            half_life_hours: Hours for the bonus to decay by 50%
            now: Fixed reference time (defaults to the current time)
        """
        self.max_bonus = max_bonus
        self.half_life_hours = half_life_hours
        self.now = now

    def score(self, article: Article) -> float:
        if article.created_at is None:
            return 0.0

        created = article.created_at
        if created.tzinfo is None:
            # Treat naive timestamps as UTC
            created = pendulum.instance(created, tz="UTC")

        now = self.now or pendulum.now("UTC")
        if now.tzinfo is None:
            now = pendulum.instance(now, tz="UTC")
        age_hours = max(0.0, (now - created).total_seconds() / 3600)

        decay_rate = math.log(2) / self.half_life_hours
        return self.max_bonus * math.exp(-decay_rate * age_hours)


class QualityScorer:
    """Additive quality score over the component scorers."""

    def __init__(self, config: Optional[QualityConfig] = None, now: Optional[datetime] = None) -> None:
        self.config = config or QualityConfig()
        self.scorers: List[BaseScorer] = [
            UrlDomainScorer(),
            SourceNameScorer(),
            ContentScorer(self.config),
            EngagementScorer(self.config.engagement_multiplier),
            RecencyScorer(
                max_bonus=self.config.recency_max_bonus,
                half_life_hours=self.config.recency_half_life_hours,
                now=now,
            ),
        ]

    def _generate_reason(self, components: Dict[str, float], article: Article) -> str:
        parts = []
        if components["url"]:
            parts.append(f"URL tier {components['url']:.0f}")
        elif components["source"]:
            parts.append(f"source '{article.source}' tier {components['source']:.0f}")
        else:
            parts.append("no reputable source")
        if components["content"]:
            parts.append(f"content bonus {components['content']:.0f}")
        if article.engagement_score:
            parts.append(f"{article.engagement_score} upvotes")
        return ", ".join(parts)

    def score_article(self, article: Article) -> QualityScore:
        """Score an article with a per-component breakdown."""
        components = {scorer.name: scorer.score(article) for scorer in self.scorers}
        return QualityScore(
            article_id=article.id,
            total_score=sum(components.values()),
            components=components,
            reason=self._generate_reason(components, article),
        )

    def score(self, article: Article) -> float:
        """Total quality score of an article."""
        return self.score_article(article).total_score


def canonical_sort_key(article: Article, quality: float) -> Tuple[float, float, int]:
    """Sort key placing the best canonical candidate first.

    Higher quality wins, then the more recent ``created_at``, then the lower ID.
    """
    created = article.created_at.timestamp() if article.created_at else float("-inf")
    article_id = article.id if article.id is not None else 0
    return (-quality, -created, article_id)


def pick_canonical(articles: Sequence[Article], scores: Dict[Optional[int], float]) -> Article:
    """Article to keep among duplicates, given precomputed quality scores."""
    return min(articles, key=lambda a: canonical_sort_key(a, scores[a.id]))
