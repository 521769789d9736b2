"""Semantic comparer interface and implementations."""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from openai import OpenAI

from ..errors import SemanticComparisonError
from ..models import Article
from .models import SemanticVerdict

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)

COMPARE_PROMPT = """You are deduplicating a database of financial deal news.
Decide whether these two articles report the SAME underlying transaction
(same parties, same amount, same deal), even if worded differently.

ARTICLE A
Title: {title_a}
Published: {date_a}
Source: {source_a}
Summary: {summary_a}

ARTICLE B
Title: {title_b}
Published: {date_b}
Source: {source_b}
Summary: {summary_b}

Respond with JSON only:
{{"is_duplicate": true|false, "confidence": 0.0-1.0, "rationale": "one sentence"}}"""


def parse_verdict(raw: str) -> SemanticVerdict:
    """Parse a JSON verdict, tolerating markdown code fences.

    Raises:
        SemanticComparisonError: If the output is not a usable verdict
    """
    cleaned = _CODE_FENCE_RE.sub("", (raw or "").strip())
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise SemanticComparisonError(f"Unparsable comparer output: {e}") from e

    if not isinstance(parsed, dict) or not isinstance(parsed.get("is_duplicate"), bool):
        raise SemanticComparisonError(f"Comparer output lacks a boolean is_duplicate: {cleaned[:200]}")

    confidence = parsed.get("confidence")
    try:
        confidence = None if confidence is None else min(1.0, max(0.0, float(confidence)))
    except (TypeError, ValueError):
        confidence = None

    return SemanticVerdict(
        is_duplicate=parsed["is_duplicate"],
        rationale=str(parsed.get("rationale") or parsed.get("reason") or ""),
        confidence=confidence,
    )


class SemanticComparer(ABC):
    """Abstract base class for semantic comparers."""

    @abstractmethod
    def compare(self, article_a: Article, article_b: Article) -> SemanticVerdict:
        """
        Judge whether two articles describe the same deal.

        Args:
            article_a: First article
            article_b: Second article

        Returns:
            Verdict with rationale

        Raises:
            SemanticComparisonError: On service failure or unparsable output
        """
        pass

    @abstractmethod
    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        pass


class OpenAIComparer(SemanticComparer):
    """OpenAI implementation of the semantic comparer."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        """
        Initialize OpenAI comparer.

        Args:
            api_key: OpenAI API key
            model: Model name to use
            base_url: Custom base URL (e.g., for Ollama)
            timeout: Per-request timeout in seconds
        """
        self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self.model = model
        self.total_tokens = 0
        self.api_calls = 0

    def _build_prompt(self, article_a: Article, article_b: Article) -> str:
        # Keep summaries short; titles and amounts carry most of the signal
        return COMPARE_PROMPT.format(
            title_a=article_a.title,
            date_a=article_a.publication_date.isoformat(),
            source_a=article_a.source or "unknown",
            summary_a=article_a.summary[:1500],
            title_b=article_b.title,
            date_b=article_b.publication_date.isoformat(),
            source_b=article_b.source or "unknown",
            summary_b=article_b.summary[:1500],
        )

    def compare(self, article_a: Article, article_b: Article) -> SemanticVerdict:
        """Compare two articles using OpenAI."""
        try:
            self.api_calls += 1
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": self._build_prompt(article_a, article_b)}],
                temperature=0.0,
                max_tokens=200,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise SemanticComparisonError(f"OpenAI request failed: {e}") from e

        if response.usage:
            self.total_tokens += response.usage.total_tokens

        content = response.choices[0].message.content if response.choices else None
        return parse_verdict(content or "")

    def get_usage_stats(self) -> Dict:
        """Get usage statistics."""
        return {
            "total_tokens": self.total_tokens,
            "api_calls": self.api_calls,
            "model": self.model,
        }


class MockSemanticComparer(SemanticComparer):
    """Mock comparer for testing.

    Returns scripted verdicts keyed by article ID pair, or a default. A
    scripted exception is raised instead of returned.
    """

    def __init__(
        self,
        verdicts: Optional[Dict[Tuple[int, int], Any]] = None,
        default: Optional[SemanticVerdict] = None,
    ) -> None:
        self.verdicts = verdicts or {}
        self.default = default or SemanticVerdict(is_duplicate=False, rationale="mock: not a duplicate")
        self.calls: List[Tuple[Optional[int], Optional[int]]] = []

    def compare(self, article_a: Article, article_b: Article) -> SemanticVerdict:
        """Mock comparison."""
        self.calls.append((article_a.id, article_b.id))

        outcome = self.verdicts.get((article_a.id, article_b.id))
        if outcome is None:
            outcome = self.verdicts.get((article_b.id, article_a.id), self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get_usage_stats(self) -> Dict:
        """Get mock usage statistics."""
        return {
            "total_tokens": 0,
            "api_calls": len(self.calls),
            "model": "mock",
        }


def get_semantic_comparer(llm_config: Dict, timeout: float = 10.0) -> Optional[SemanticComparer]:
    """
    Build the configured comparer.

    Args:
        llm_config: LLM settings with the API key already resolved
        timeout: Per-request timeout in seconds

    Returns:
        Comparer, or None when semantic escalation is unavailable
    """
    provider = llm_config.get("provider")
    if provider == "openai":
        api_key = llm_config.get("api_key")
        if not api_key:
            logger.warning("No OpenAI API key found; semantic escalation disabled")
            return None
        return OpenAIComparer(
            api_key=api_key,
            model=llm_config.get("model", "gpt-4o-mini"),
            base_url=llm_config.get("base_url"),
            timeout=timeout,
        )
    if provider == "mock":
        return MockSemanticComparer()
    if provider not in (None, "none"):
        logger.warning("Unknown LLM provider %r; semantic escalation disabled", provider)
    return None
