"""Similarity and quality scoring."""

from .quality import QualityScore, QualityScorer, canonical_sort_key, pick_canonical
from .similarity import (
    MultiSignalScorer,
    SimilarityScorer,
    WordOverlapScorer,
    build_similarity_scorer,
    title_overlap,
)

__all__ = [
    "MultiSignalScorer",
    "QualityScore",
    "QualityScorer",
    "SimilarityScorer",
    "WordOverlapScorer",
    "build_similarity_scorer",
    "canonical_sort_key",
    "pick_canonical",
    "title_overlap",
]
