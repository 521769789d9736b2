"""Semantic comparison of inconclusive article pairs."""

from .comparer import (
    MockSemanticComparer,
    OpenAIComparer,
    SemanticComparer,
    get_semantic_comparer,
    parse_verdict,
)
from .models import SemanticVerdict

__all__ = [
    "MockSemanticComparer",
    "OpenAIComparer",
    "SemanticComparer",
    "SemanticVerdict",
    "get_semantic_comparer",
    "parse_verdict",
]
