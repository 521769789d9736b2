"""Tests for the cleanup orchestrator."""

import asyncio
import time
from datetime import date, timedelta

import pytest

from dealdedup.config import CleanupConfig, DetectionConfig, SafetyConfig
from dealdedup.db import InMemoryArticleStore
from dealdedup.errors import InvalidInputError, RunInProgressError, SemanticComparisonError
from dealdedup.features import FeatureExtractor
from dealdedup.grouping import GroupingResolver
from dealdedup.models import (
    ResolutionStrategy,
    RunLimits,
    RunMode,
    RunState,
    RunStatus,
    Window,
)
from dealdedup.pipeline import CleanupOrchestrator, RunLock
from dealdedup.safety import LIMIT_EXCEEDED, SafetyGate
from dealdedup.scoring import MultiSignalScorer, QualityScorer
from dealdedup.semantic import MockSemanticComparer, SemanticVerdict

TOKEN = "s3cret"
APOLLO_A = "Apollo closes $500M credit facility for TechCorp"
APOLLO_B = "Apollo Closes $500 Million Credit Facility For TechCorp, Inc."
# Scores 0.75: inside the inconclusive band
WIDGET_A = "Widget Holdings closes credit facility with lenders"
WIDGET_B = "Widget Holdings credit facility closes with lender group"


def build(store, now, comparer=None, lock=None, **cleanup):
    settings = {"batch_delay_seconds": 0, "delete_delay_seconds": 0, "store_timeout_seconds": 5}
    settings.update(cleanup)
    return CleanupOrchestrator(
        store=store,
        extractor=FeatureExtractor.from_config(DetectionConfig()),
        similarity_scorer=MultiSignalScorer(),
        resolver=GroupingResolver(QualityScorer(now=now)),
        gate=SafetyGate(SafetyConfig(), expected_token=TOKEN),
        comparer=comparer,
        config=CleanupConfig(**settings),
        lock=lock,
    )


def test_apollo_scenario_apply(make_article, now):
    """Two Apollo reports group and the higher-quality one is kept"""
    weak = make_article(APOLLO_A, source="Financial News")
    strong = make_article(APOLLO_B, source_url="https://www.reuters.com/deals/apollo")
    store = InMemoryArticleStore([weak, strong], now=now)

    report = asyncio.run(build(store, now).run(Window.recent(3), RunMode.APPLY, confirmation_token=TOKEN))

    assert report.status == RunStatus.COMPLETED
    assert report.state == RunState.REPORTED
    assert report.articles_analyzed == 2
    assert report.comparisons == 1
    assert report.groups_found == 1
    assert report.deleted_count == 1
    assert store.deleted == [weak.id]
    assert strong.id in store.articles
    assert report.groups[0].canonical_id == strong.id
    assert report.groups[0].confidence_tier.value == "high"
    assert "same entity (apollo)" in report.rationale[0]


def test_preview_never_mutates(make_article, now):
    """Preview returns the plan and leaves the store untouched"""
    store = InMemoryArticleStore([make_article(APOLLO_A), make_article(APOLLO_B)], now=now)

    report = asyncio.run(build(store, now).run(Window.recent(3), RunMode.PREVIEW))

    assert report.status == RunStatus.COMPLETED
    assert report.groups_found == 1
    assert report.groups[0].allowed
    assert report.deleted_count == 0
    assert store.deleted == []
    assert len(store.articles) == 2


def test_identical_titles_45_days_apart_are_not_compared(make_article, now):
    """Pairs beyond the date gap produce no judgment and no group"""
    store = InMemoryArticleStore(
        [
            make_article(APOLLO_A, publication_date=date(2024, 6, 23)),
            make_article(APOLLO_A, publication_date=date(2024, 6, 23) - timedelta(days=45)),
        ],
        now=now,
    )

    report = asyncio.run(build(store, now).run(Window.recent(3), RunMode.PREVIEW))

    assert report.comparisons == 0
    assert report.pairs_skipped_out_of_window == 1
    assert report.groups_found == 0


def test_deletion_cap_in_apply(make_article, now):
    """maxDeletions=5 with 12 redundant deletes 5 and skips 7"""
    store = InMemoryArticleStore([make_article(APOLLO_A) for _ in range(13)], now=now)

    report = asyncio.run(
        build(store, now).run(
            Window.recent(3), RunMode.APPLY, RunLimits(max_deletions=5), confirmation_token=TOKEN
        )
    )

    assert report.redundant_count == 12
    assert report.deleted_count == 5
    assert len(store.deleted) == 5
    assert len([s for s in report.skipped if s.reason == LIMIT_EXCEEDED]) == 7
    assert report.status == RunStatus.COMPLETED


def test_apply_without_token_is_rejected(make_article, now):
    """Apply without the token deletes nothing, even with nothing to delete"""
    store = InMemoryArticleStore([make_article(APOLLO_A), make_article(APOLLO_B)], now=now)
    orchestrator = build(store, now)

    report = asyncio.run(orchestrator.run(Window.recent(3), RunMode.APPLY))
    assert report.status == RunStatus.REJECTED
    assert report.rejected_reasons
    assert store.deleted == []

    empty = asyncio.run(build(InMemoryArticleStore(now=now), now).run(Window.recent(3), RunMode.APPLY, confirmation_token="nope"))
    assert empty.status == RunStatus.REJECTED


def test_fetch_failure_fails_run(now):
    """A window fetch failure ends in the Failed state without raising"""
    store = InMemoryArticleStore(now=now)
    store.fail_list = True

    report = asyncio.run(build(store, now).run(Window.recent(3), RunMode.PREVIEW))

    assert report.state == RunState.FAILED
    assert report.status == RunStatus.FAILED
    assert "Store unavailable" in report.error


def test_invalid_window_raises_before_store_call(now):
    """Input errors are raised and the lock stays free"""
    store = InMemoryArticleStore(now=now)
    store.fail_list = True
    orchestrator = build(store, now)

    with pytest.raises(InvalidInputError):
        asyncio.run(orchestrator.run(Window.recent(0)))
    with pytest.raises(InvalidInputError):
        asyncio.run(orchestrator.run(Window.publication_dates(date(2024, 6, 2), date(2024, 6, 1))))
    with pytest.raises(InvalidInputError):
        asyncio.run(orchestrator.run(Window.recent(3), mode="destroy"))

    assert not orchestrator.lock.locked
    assert orchestrator.last_report is None


def test_busy_lock_rejects_run_immediately(now):
    """A held lock makes a second run fail fast with a retryable error"""
    lock = RunLock()
    lock.acquire("other-run")
    orchestrator = build(InMemoryArticleStore(now=now), now, lock=lock)

    with pytest.raises(RunInProgressError) as exc_info:
        asyncio.run(orchestrator.run(Window.recent(3)))
    assert exc_info.value.retryable

    lock.release()
    assert asyncio.run(orchestrator.run(Window.recent(3))).status == RunStatus.COMPLETED


def test_overlapping_runs_share_lock(make_article, now):
    """Of two concurrent runs on one lock, the second is rejected"""
    lock = RunLock()
    store = InMemoryArticleStore([make_article(APOLLO_A), make_article(APOLLO_B)], now=now)
    first = build(store, now, lock=lock)
    second = build(store, now, lock=lock)

    async def both():
        return await asyncio.gather(
            first.run(Window.recent(3)),
            second.run(Window.recent(3)),
            return_exceptions=True,
        )

    results = asyncio.run(both())

    assert results[0].status == RunStatus.COMPLETED
    assert isinstance(results[1], RunInProgressError)


def test_delete_failures_are_recorded(make_article, now):
    """A failed delete is reported and the rest of the plan still runs"""
    articles = [make_article(APOLLO_A) for _ in range(3)]
    store = InMemoryArticleStore(articles, now=now)
    store.fail_delete = {articles[1].id}

    report = asyncio.run(build(store, now).run(Window.recent(3), RunMode.APPLY, confirmation_token=TOKEN))

    assert report.state == RunState.REPORTED
    assert report.status == RunStatus.PARTIAL
    assert report.deleted_count == 1
    assert report.failed_count == 1
    assert report.failures[0].article_id == articles[1].id
    assert report.partially_applied


def test_apply_backs_up_deleted_articles(make_article, now):
    """Each deleted article is snapshotted in full; failed deletes are not"""
    articles = [make_article(APOLLO_A, summary=f"Summary {i}", content=f"Body {i}") for i in range(3)]
    store = InMemoryArticleStore(articles, now=now)
    store.fail_delete = {articles[1].id}

    report = asyncio.run(build(store, now).run(Window.recent(3), RunMode.APPLY, confirmation_token=TOKEN))

    assert report.deleted_count == 1
    assert report.backups == [articles[2]]
    assert store.backup == [articles[2]]
    dumped = report.model_dump(mode="json")["backups"][0]
    assert dumped["content"] == "Body 2"
    assert dumped["summary"] == "Summary 2"
    assert dumped["publication_date"] == "2024-06-23"


def test_batches_cover_every_pair(make_article, now):
    """Pairs are batched without losing comparisons at batch boundaries"""
    store = InMemoryArticleStore([make_article(APOLLO_A) for _ in range(4)], now=now)

    report = asyncio.run(build(store, now, batch_size=1).run(Window.recent(3)))

    assert report.comparisons == 6
    assert report.groups_found == 1
    assert report.redundant_count == 3


def test_publication_date_window_compares_same_date_only(make_article, now):
    """The publication-date strategy only pairs articles of the same date"""
    day = date(2024, 6, 20)
    store = InMemoryArticleStore(
        [
            make_article(APOLLO_A, publication_date=day),
            make_article(APOLLO_A, publication_date=day),
            make_article(APOLLO_A, publication_date=day + timedelta(days=1)),
        ],
        now=now,
    )

    report = asyncio.run(
        build(store, now).run(Window.publication_dates(day, day + timedelta(days=1)))
    )

    assert report.articles_analyzed == 3
    assert report.comparisons == 1
    assert report.redundant_count == 1


def test_semantic_verdict_overrides_inconclusive_pair(make_article, now):
    """An inconclusive pair follows the semantic verdict"""
    a, b = make_article(WIDGET_A), make_article(WIDGET_B)

    rejecting = MockSemanticComparer(default=SemanticVerdict(is_duplicate=False, rationale="different deals"))
    report = asyncio.run(build(InMemoryArticleStore([a, b], now=now), now, rejecting).run(Window.recent(3)))
    assert report.semantic_calls == 1
    assert report.groups_found == 0
    assert rejecting.calls == [(a.id, b.id)]

    confirming = MockSemanticComparer(default=SemanticVerdict(is_duplicate=True, rationale="same deal"))
    report = asyncio.run(build(InMemoryArticleStore([a, b], now=now), now, confirming).run(Window.recent(3)))
    assert report.groups_found == 1
    # Medium tier stays preview-only under the default minimum
    assert not report.groups[0].allowed


def test_confident_pairs_are_not_escalated(make_article, now):
    """Pairs outside the inconclusive band never reach the comparer"""
    comparer = MockSemanticComparer()
    store = InMemoryArticleStore([make_article(APOLLO_A), make_article(APOLLO_B)], now=now)

    report = asyncio.run(build(store, now, comparer).run(Window.recent(3)))

    assert comparer.calls == []
    assert report.semantic_calls == 0
    assert report.groups_found == 1


def test_semantic_failure_falls_back_to_heuristic(make_article, now):
    """Comparer errors keep the heuristic verdict"""
    a, b = make_article(WIDGET_A), make_article(WIDGET_B)
    comparer = MockSemanticComparer(verdicts={(a.id, b.id): SemanticComparisonError("bad json")})

    report = asyncio.run(build(InMemoryArticleStore([a, b], now=now), now, comparer).run(Window.recent(3)))

    assert report.status == RunStatus.COMPLETED
    assert report.semantic_calls == 1
    assert report.semantic_fallbacks == 1
    assert report.groups_found == 1


class SlowComparer(MockSemanticComparer):
    def compare(self, article_a, article_b):
        time.sleep(0.5)
        return super().compare(article_a, article_b)


def test_semantic_timeout_falls_back_to_heuristic(make_article, now):
    """A comparer slower than its timeout is treated as unavailable"""
    store = InMemoryArticleStore([make_article(WIDGET_A), make_article(WIDGET_B)], now=now)

    report = asyncio.run(build(store, now, SlowComparer(), semantic_timeout_seconds=0.05).run(Window.recent(3)))

    assert report.semantic_fallbacks == 1
    assert report.groups_found == 1


def test_semantic_call_cap(make_article, now):
    """No more than max_semantic_calls escalations happen per run"""
    comparer = MockSemanticComparer()
    store = InMemoryArticleStore([make_article(WIDGET_A), make_article(WIDGET_B)], now=now)

    report = asyncio.run(build(store, now, comparer, max_semantic_calls=0).run(Window.recent(3)))

    assert comparer.calls == []
    assert report.semantic_calls == 0


def test_fill_missing_link(make_article, now):
    """fill_missing_link copies a redundant link onto a linkless canonical"""
    canonical = make_article(APOLLO_B, source="Reuters", engagement_score=20)
    donor = make_article(APOLLO_A, source_url="http://example.com/apollo-deal")
    store = InMemoryArticleStore([canonical, donor], now=now)

    report = asyncio.run(
        build(store, now).run(
            Window.recent(3),
            RunMode.APPLY,
            confirmation_token=TOKEN,
            resolution=ResolutionStrategy.FILL_MISSING_LINK,
        )
    )

    assert report.status == RunStatus.COMPLETED
    assert report.updated_count == 1
    assert report.deleted_count == 0
    assert store.updates == [(canonical.id, "source_url", "http://example.com/apollo-deal")]
    assert store.articles[canonical.id].source_url == "http://example.com/apollo-deal"
    assert report.backups == [canonical]
    assert donor.id in store.articles


def test_cancel_during_apply_marks_partial(make_article, now):
    """Cancelling mid-apply keeps issued deletes and marks the report"""
    store = InMemoryArticleStore([make_article(APOLLO_A) for _ in range(4)], now=now)
    orchestrator = build(store, now, delete_delay_seconds=0.5)

    async def cancel_after_first_delete():
        task = asyncio.create_task(
            orchestrator.run(Window.recent(3), RunMode.APPLY, confirmation_token=TOKEN)
        )
        while orchestrator.last_report is None or orchestrator.last_report.deleted_count == 0:
            await asyncio.sleep(0.01)
        task.cancel()
        await task

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(cancel_after_first_delete())

    report = orchestrator.last_report
    assert report.status == RunStatus.CANCELLED
    assert report.partially_applied
    assert report.deleted_count == 1
    assert len(store.deleted) == 1
    assert not orchestrator.lock.locked
