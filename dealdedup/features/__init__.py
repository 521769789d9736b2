"""Feature extraction for duplicate detection."""

from .amounts import amounts_match, parse_amounts
from .extractor import (
    CapitalizedPhraseStrategy,
    EntityStrategy,
    FeatureExtractor,
    KnownEntityStrategy,
    normalize_text,
    significant_words,
)

__all__ = [
    "CapitalizedPhraseStrategy",
    "EntityStrategy",
    "FeatureExtractor",
    "KnownEntityStrategy",
    "amounts_match",
    "normalize_text",
    "parse_amounts",
    "significant_words",
]
