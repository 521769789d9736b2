"""Tests for semantic comparison helpers."""

from datetime import date

import pytest

from dealdedup.errors import SemanticComparisonError
from dealdedup.models import Article
from dealdedup.semantic import (
    MockSemanticComparer,
    OpenAIComparer,
    SemanticVerdict,
    get_semantic_comparer,
    parse_verdict,
)


def test_parse_verdict_plain_and_fenced():
    """JSON verdicts parse with or without markdown fences"""
    verdict = parse_verdict('{"is_duplicate": true, "confidence": 0.9, "rationale": "same deal"}')
    assert verdict.is_duplicate
    assert verdict.confidence == 0.9
    assert verdict.rationale == "same deal"

    fenced = parse_verdict('```json\n{"is_duplicate": false, "reason": "different lenders"}\n```')
    assert not fenced.is_duplicate
    assert fenced.rationale == "different lenders"
    assert fenced.confidence is None


def test_parse_verdict_clamps_confidence():
    """Out-of-range confidence is clamped to [0, 1]"""
    assert parse_verdict('{"is_duplicate": true, "confidence": 7}').confidence == 1.0
    assert parse_verdict('{"is_duplicate": true, "confidence": "high"}').confidence is None


@pytest.mark.parametrize(
    "raw",
    ["", "not json", "[true]", '{"is_duplicate": "yes"}', '{"confidence": 0.5}'],
)
def test_parse_verdict_rejects_unusable_output(raw):
    """Unparsable output raises SemanticComparisonError"""
    with pytest.raises(SemanticComparisonError):
        parse_verdict(raw)


def test_mock_comparer_scripted_verdicts():
    """Mock returns scripted verdicts in either pair order and records calls"""
    a = Article(id=1, title="Apollo deal", publication_date=date(2024, 6, 23))
    b = Article(id=2, title="Apollo deal again", publication_date=date(2024, 6, 23))
    comparer = MockSemanticComparer(
        verdicts={(2, 1): SemanticVerdict(is_duplicate=True, rationale="same")}
    )

    assert comparer.compare(a, b).is_duplicate
    assert comparer.calls == [(1, 2)]
    assert comparer.get_usage_stats()["api_calls"] == 1


def test_comparer_factory():
    """Factory picks the provider and disables escalation without a key"""
    assert get_semantic_comparer({"provider": "none"}) is None
    assert get_semantic_comparer({"provider": "openai", "api_key": None}) is None
    assert get_semantic_comparer({"provider": "bogus"}) is None
    assert isinstance(get_semantic_comparer({"provider": "mock"}), MockSemanticComparer)

    comparer = get_semantic_comparer({"provider": "openai", "api_key": "sk-test", "model": "gpt-4o-mini"})
    assert isinstance(comparer, OpenAIComparer)
    assert comparer.get_usage_stats() == {"total_tokens": 0, "api_calls": 0, "model": "gpt-4o-mini"}
