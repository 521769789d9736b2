"""Duplicate group models produced by the grouping resolver."""

from typing import List

from pydantic import BaseModel, Field

from .article import Article
from .judgment import PairJudgment


class RedundantEntry(BaseModel):
    """A non-canonical group member and the evidence that placed it there."""

    article: Article = Field(..., description="Redundant article")
    judgment: PairJudgment = Field(
        ..., description="Weakest judgment on the strongest path to the canonical article"
    )
    quality: float = Field(..., description="Quality score of the redundant article")
    quality_delta: float = Field(..., description="Canonical quality minus this article's quality")


class DuplicateGroup(BaseModel):
    """One connected component of duplicate articles."""

    canonical: Article = Field(..., description="Article kept after cleanup")
    canonical_quality: float = Field(..., description="Quality score of the canonical article")
    redundant: List[RedundantEntry] = Field(default_factory=list)

    @property
    def founding_judgment(self) -> PairJudgment:
        """Weakest judgment holding the group together."""
        return min(
            (entry.judgment for entry in self.redundant),
            key=lambda j: j.similarity_score,
        )

    def article_ids(self) -> List[int]:
        return [self.canonical.id] + [entry.article.id for entry in self.redundant]

    def rationale(self) -> str:
        """Human-readable audit line for this group."""
        removed = ", ".join(str(entry.article.id) for entry in self.redundant)
        founding = self.founding_judgment
        return (
            f"Keep {self.canonical.label()} (quality {self.canonical_quality:.1f}); "
            f"redundant: {removed}; "
            f"{founding.confidence_tier.value} confidence ({founding.similarity_score:.2f}): "
            f"{founding.reason}"
        )
