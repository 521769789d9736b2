"""Derived comparison models: extracted features and pair judgments."""

from enum import Enum
from typing import FrozenSet, Optional

from pydantic import BaseModel, Field


class ConfidenceTier(str, Enum):
    """Coarse bucket derived from a similarity score."""

    HIGH = "high"
    MEDIUM_HIGH = "medium-high"
    MEDIUM = "medium"
    NONE = "none"

    @classmethod
    def from_score(cls, score: float) -> "ConfidenceTier":
        """Map a similarity score onto its tier."""
        if score >= 0.9:
            return cls.HIGH
        if score >= 0.8:
            return cls.MEDIUM_HIGH
        if score >= 0.7:
            return cls.MEDIUM
        return cls.NONE

    @property
    def rank(self) -> int:
        """Ordinal used to compare tiers (higher is more confident)."""
        return _TIER_RANKS[self]

    def at_least(self, other: "ConfidenceTier") -> bool:
        """Whether this tier is at or above another tier."""
        return self.rank >= other.rank


_TIER_RANKS = {
    ConfidenceTier.NONE: 0,
    ConfidenceTier.MEDIUM: 1,
    ConfidenceTier.MEDIUM_HIGH: 2,
    ConfidenceTier.HIGH: 3,
}


class FeatureSet(BaseModel):
    """Comparable signals pulled out of one article."""

    normalized_title: str = Field("", description="Lower-cased, punctuation-free title")
    significant_words: FrozenSet[str] = Field(default_factory=frozenset)
    amounts: FrozenSet[float] = Field(default_factory=frozenset)
    entities: FrozenSet[str] = Field(default_factory=frozenset)
    keywords: FrozenSet[str] = Field(default_factory=frozenset)

    class Config:
        """Pydantic config."""

        frozen = True


class PairJudgment(BaseModel):
    """Duplicate verdict for one article pair."""

    article_a_id: Optional[int] = Field(None, description="First article ID")
    article_b_id: Optional[int] = Field(None, description="Second article ID")
    similarity_score: float = Field(..., ge=0.0, le=1.0)
    confidence_tier: ConfidenceTier = Field(ConfidenceTier.NONE)
    is_duplicate: bool = Field(False)
    reason: str = Field("", description="Which signals matched")
    title_overlap: float = Field(0.0, ge=0.0, le=1.0)
    method: str = Field("heuristic", description="heuristic or semantic")
    semantic_rationale: Optional[str] = Field(None)

    class Config:
        """Pydantic config."""

        frozen = True

    def with_ids(self, article_a_id: Optional[int], article_b_id: Optional[int]) -> "PairJudgment":
        """Copy of this judgment bound to two article IDs."""
        return self.model_copy(update={"article_a_id": article_a_id, "article_b_id": article_b_id})

    def other(self, article_id: Optional[int]) -> Optional[int]:
        """ID of the article on the other side of the pair."""
        return self.article_b_id if article_id == self.article_a_id else self.article_a_id
