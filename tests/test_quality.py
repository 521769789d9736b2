"""Tests for article quality scoring."""

import pytest

from dealdedup.scoring import QualityScorer, pick_canonical
from dealdedup.scoring.quality import RecencyScorer, SourceNameScorer, UrlDomainScorer


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.reuters.com/markets/deals/apollo", 100),
        ("https://newsroom.apollo.com/release", 90),
        ("https://www.ft.com/content/abc", 70),
        ("https://example.org/story", 50),
        ("https://www.bloomberg.com/articles/2024-06-23/apollo", 30),
        ("http://example.org/story", 10),
    ],
)
def test_url_domain_tiers(make_article, url, expected):
    """URL reputation is tiered from wire services down to paid sites"""
    article = make_article("Apollo closes facility", source_url=url)
    assert UrlDomainScorer().score(article) == expected


def test_source_name_used_only_without_url(make_article):
    """Publisher label counts only when the article has no link"""
    scorer = SourceNameScorer()
    assert scorer.score(make_article("Deal", source="Reuters")) == 50
    assert scorer.score(make_article("Deal", source="Bloomberg Terminal")) == 5
    assert scorer.score(make_article("Deal", source="Bloomberg")) == 15
    assert scorer.score(make_article("Deal", source="Reuters", source_url="https://x.org/a")) == 0


def test_content_bonuses(make_article, now):
    """Long title, long summary and bold markers each add a bonus"""
    scorer = QualityScorer(now=now)
    bare = make_article("Short title", created_at=None)
    rich = make_article(
        "A descriptive title well past twenty characters",
        summary="**Apollo** " + "x" * 120,
        created_at=None,
    )

    assert scorer.score(bare) == 0
    assert scorer.score(rich) == 20 + 15 + 8


def test_quality_monotonic_in_engagement(make_article, now):
    """Higher engagement never lowers the score"""
    scorer = QualityScorer(now=now)
    scores = [
        scorer.score(make_article("Apollo closes $500M credit facility", engagement_score=e))
        for e in range(10)
    ]
    assert scores == sorted(scores)
    assert scores[1] - scores[0] == pytest.approx(3)


def test_recency_decays_with_half_life(make_article, now):
    """Recency bonus halves every 24 hours"""
    scorer = RecencyScorer(max_bonus=5.0, half_life_hours=24.0, now=now)
    assert scorer.score(make_article("Deal", created_at=now)) == pytest.approx(5.0)
    assert scorer.score(make_article("Deal", created_at=now.subtract(hours=24))) == pytest.approx(2.5)


def test_score_breakdown_and_reason(make_article, now):
    """Scores carry per-component breakdown and a readable reason"""
    article = make_article(
        "Apollo closes $500M credit facility for TechCorp",
        source_url="https://www.reuters.com/a",
        engagement_score=2,
    )
    result = QualityScorer(now=now).score_article(article)

    assert result.components["url"] == 100
    assert result.components["engagement"] == 6
    assert "URL tier 100" in result.reason
    assert result.total_score == pytest.approx(sum(result.components.values()))


def test_pick_canonical_tie_breaks(make_article, now):
    """Equal scores prefer the more recent ingestion, then the lower ID"""
    older = make_article("Deal", id=1, created_at=now.subtract(hours=5))
    newer = make_article("Deal", id=2, created_at=now.subtract(hours=1))
    assert pick_canonical([older, newer], {1: 10.0, 2: 10.0}) == newer

    twin_a = make_article("Deal", id=3, created_at=now)
    twin_b = make_article("Deal", id=4, created_at=now)
    assert pick_canonical([twin_b, twin_a], {3: 10.0, 4: 10.0}) == twin_a

    assert pick_canonical([older, newer], {1: 11.0, 2: 10.0}) == older
