"""Pairwise similarity strategies for duplicate detection."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..config import DetectionConfig
from ..features.amounts import amounts_match
from ..models import ConfidenceTier, FeatureSet, PairJudgment

DUPLICATE_THRESHOLD = 0.70


def title_overlap(features_a: FeatureSet, features_b: FeatureSet) -> float:
    """Shared significant words divided by the larger word set."""
    words_a = features_a.significant_words
    words_b = features_b.significant_words
    largest = max(len(words_a), len(words_b))
    if largest == 0:
        return 0.0
    return len(words_a & words_b) / largest


def _format_amount(value: float) -> str:
    if value == int(value):
        return f"{int(value):,}"
    return f"{value:,.2f}"


class SimilarityScorer(ABC):
    """Base class for pair scoring strategies."""

    @abstractmethod
    def score(
        self,
        features_a: FeatureSet,
        features_b: FeatureSet,
        title_a: str = "",
        title_b: str = "",
    ) -> PairJudgment:
        """
        Judge whether two articles report the same event.

        Args:
            features_a: Features of the first article
            features_b: Features of the second article
            title_a: Original title of the first article (for reasons)
            title_b: Original title of the second article (for reasons)

        Returns:
            Judgment without article IDs; callers bind them with ``with_ids``
        """
        pass


class MultiSignalScorer(SimilarityScorer):
    """Rule ladder over entities, amounts, keywords and title overlap.

    The first matching rule sets the score; signals are never summed.
    """

    def __init__(self, amount_tolerance: float = 0.01) -> None:
        self.amount_tolerance = amount_tolerance

    def score(
        self,
        features_a: FeatureSet,
        features_b: FeatureSet,
        title_a: str = "",
        title_b: str = "",
    ) -> PairJudgment:
        overlap = title_overlap(features_a, features_b)
        shared_entities = sorted(features_a.entities & features_b.entities)
        shared_keywords = sorted(features_a.keywords & features_b.keywords)
        shared_amounts = sorted(
            a for a in features_a.amounts
            if amounts_match([a], features_b.amounts, self.amount_tolerance)
        )
        same_entity = bool(shared_entities)
        same_amount = bool(shared_amounts)
        keyword_count = len(shared_keywords)
        identical = bool(features_a.normalized_title) and (
            features_a.normalized_title == features_b.normalized_title
        )

        if identical:
            score = 0.95
        elif same_entity and same_amount and keyword_count >= 2:
            score = 0.95
        elif same_entity and same_amount and keyword_count >= 1:
            score = 0.90
        elif same_entity and keyword_count >= 2 and overlap > 0.4:
            score = 0.80
        elif overlap > 0.6 and keyword_count >= 2:
            score = 0.75
        elif overlap > 0.5 and same_amount:
            score = 0.70
        else:
            score = 0.0

        reasons: List[str] = []
        if identical:
            reasons.append("identical title")
        if same_entity:
            reasons.append(f"same entity ({', '.join(shared_entities)})")
        if same_amount:
            reasons.append(f"same amount ({', '.join(_format_amount(a) for a in shared_amounts)})")
        if shared_keywords:
            reasons.append(f"shared keywords ({', '.join(shared_keywords)})")
        reasons.append(f"title overlap {overlap:.2f}")

        return PairJudgment(
            similarity_score=score,
            confidence_tier=ConfidenceTier.from_score(score),
            is_duplicate=score >= DUPLICATE_THRESHOLD,
            reason="; ".join(reasons),
            title_overlap=overlap,
        )


class WordOverlapScorer(SimilarityScorer):
    """Plain title word-overlap ratio against a threshold."""

    def __init__(self, threshold: float = 0.70) -> None:
        self.threshold = threshold

    def score(
        self,
        features_a: FeatureSet,
        features_b: FeatureSet,
        title_a: str = "",
        title_b: str = "",
    ) -> PairJudgment:
        overlap = title_overlap(features_a, features_b)
        identical = bool(features_a.normalized_title) and (
            features_a.normalized_title == features_b.normalized_title
        )
        score = 1.0 if identical else overlap

        return PairJudgment(
            similarity_score=score,
            confidence_tier=ConfidenceTier.from_score(score),
            is_duplicate=score >= self.threshold,
            reason=f"title overlap {overlap:.2f} (threshold {self.threshold:.2f})",
            title_overlap=overlap,
        )


def build_similarity_scorer(config: Optional[DetectionConfig] = None) -> SimilarityScorer:
    """Create the scorer named by ``config.similarity_strategy``."""
    config = config or DetectionConfig()
    if config.similarity_strategy == "word_overlap":
        return WordOverlapScorer(threshold=config.word_overlap_threshold)
    return MultiSignalScorer(amount_tolerance=config.amount_tolerance)
