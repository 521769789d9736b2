"""Feature extraction for article comparison."""

import re
from abc import ABC, abstractmethod
from typing import FrozenSet, Iterable, List, Set

from ..config import DetectionConfig
from ..models import Article, FeatureSet
from .amounts import parse_amounts

_NON_WORD_RE = re.compile(r"[^\w\s]")
_SPACES_RE = re.compile(r"\s+")

COMMON_WORDS = {
    "the", "and", "or", "for", "in", "on", "at", "to", "from", "with", "by",
    "of", "a", "an", "its", "new", "inc", "ltd", "llc", "corp", "co",
    "million", "billion", "thousand", "announces", "announced", "completes",
    "launches", "provides", "agrees", "deal", "says", "after", "amid",
}


def normalize_text(text: str) -> str:
    """Lower-case, replace punctuation with spaces and collapse whitespace."""
    text = _NON_WORD_RE.sub(" ", text.lower())
    return _SPACES_RE.sub(" ", text).strip()


def significant_words(text: str, min_length: int = 4) -> FrozenSet[str]:
    """Normalized words of at least ``min_length`` characters."""
    return frozenset(w for w in normalize_text(text).split(" ") if len(w) >= min_length)


class EntityStrategy(ABC):
    """Strategy for recognizing company and fund names in a headline."""

    @abstractmethod
    def extract(self, text: str) -> FrozenSet[str]:
        """
        Find entity names in text.

        Args:
            text: Text to scan (usually the title)

        Returns:
            Lower-cased entity names
        """
        pass


class KnownEntityStrategy(EntityStrategy):
    """Match a fixed vocabulary of financial-sponsor names."""

    def __init__(self, vocabulary: Iterable[str]) -> None:
        self.vocabulary = [name.lower() for name in vocabulary if name.strip()]
        self._patterns = [
            (name, re.compile(r"\b" + re.escape(name) + r"\b")) for name in self.vocabulary
        ]

    def extract(self, text: str) -> FrozenSet[str]:
        lowered = text.lower()
        return frozenset(name for name, pattern in self._patterns if pattern.search(lowered))


class CapitalizedPhraseStrategy(EntityStrategy):
    """Treat capitalized words, and adjacent capitalized pairs, as names."""

    def __init__(self, excluded_words: Iterable[str] = ()) -> None:
        self.excluded = set(COMMON_WORDS) | {w.lower() for w in excluded_words}

    def _is_name_word(self, word: str) -> bool:
        return (
            len(word) > 2
            and word[0].isupper()
            and not word.isdigit()
            and word.lower() not in self.excluded
        )

    def extract(self, text: str) -> FrozenSet[str]:
        words = [re.sub(r"[^\w]", "", w) for w in text.split()]
        names: Set[str] = set()

        for i, word in enumerate(words):
            if not self._is_name_word(word):
                continue
            names.add(word.lower())
            if i + 1 < len(words) and self._is_name_word(words[i + 1]):
                names.add(f"{word} {words[i + 1]}".lower())

        return frozenset(names)


class FeatureExtractor:
    """Pull comparable signals out of an article."""

    def __init__(
        self,
        entity_strategy: EntityStrategy,
        transaction_keywords: Iterable[str],
        min_word_length: int = 4,
    ) -> None:
        """
        Initialize feature extractor.

        Args:
            entity_strategy: How entity names are recognized
            transaction_keywords: Deal-type vocabulary matched in titles
            min_word_length: Shortest title word counted as significant
        """
        self.entity_strategy = entity_strategy
        self.transaction_keywords: List[str] = [k.lower() for k in transaction_keywords]
        self.min_word_length = min_word_length

    @classmethod
    def from_config(cls, config: DetectionConfig) -> "FeatureExtractor":
        """Build an extractor with the strategy named in the config."""
        if config.entity_strategy == "capitalized":
            strategy: EntityStrategy = CapitalizedPhraseStrategy(config.transaction_keywords)
        else:
            strategy = KnownEntityStrategy(config.known_entities)
        return cls(strategy, config.transaction_keywords, config.min_word_length)

    def _keywords(self, normalized_title: str) -> FrozenSet[str]:
        tokens = set(normalized_title.split(" "))
        return frozenset(
            k for k in self.transaction_keywords if k in tokens or f"{k}s" in tokens
        )

    def extract(self, article: Article) -> FeatureSet:
        """Extract the feature set of one article."""
        normalized_title = normalize_text(article.title)
        return FeatureSet(
            normalized_title=normalized_title,
            significant_words=significant_words(article.title, self.min_word_length),
            amounts=parse_amounts(f"{article.title} {article.summary}"),
            entities=self.entity_strategy.extract(article.title),
            keywords=self._keywords(normalized_title),
        )
