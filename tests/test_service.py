"""Tests for the cleanup service entry points."""

import asyncio
import time
from datetime import date, timedelta

import pytest

from dealdedup.config import ConfigModel
from dealdedup.db import InMemoryArticleStore
from dealdedup.errors import InvalidInputError, RunInProgressError, StoreError
from dealdedup.models import Article, RunMode, RunStatus, Window
from dealdedup.pipeline import DuplicateCleanupService, RunLock

TOKEN = "s3cret"

APOLLO_A = "Apollo closes $500M credit facility for TechCorp"
APOLLO_B = "Apollo Closes $500 Million Credit Facility For TechCorp, Inc."


def test_check_for_duplicates_finds_existing_report(fast_config, make_article, now):
    """A new article reporting a stored deal is flagged before insert"""
    stored = make_article(APOLLO_B, source_url="https://www.reuters.com/a")
    other = make_article("Blackstone buys logistics portfolio in Texas")
    service = DuplicateCleanupService(fast_config, InMemoryArticleStore([stored, other], now=now))

    candidate = Article(title=APOLLO_A, publication_date=date(2024, 6, 23))
    matches = service.check_for_duplicates_sync(candidate)

    assert len(matches) == 1
    assert matches[0].article_a_id is None
    assert matches[0].article_b_id == stored.id
    assert matches[0].similarity_score == 0.95


def test_check_for_duplicates_no_match(fast_config, make_article, now):
    """Unrelated candidates produce no judgments"""
    service = DuplicateCleanupService(fast_config, InMemoryArticleStore([make_article(APOLLO_B)], now=now))
    candidate = Article(title="Fitch affirms rating on municipal water notes", publication_date=date(2024, 6, 23))
    assert service.check_for_duplicates_sync(candidate) == []


def test_check_for_duplicates_respects_date_gap(fast_config, make_article, now):
    """Stored articles published beyond the gap are not compared"""
    service = DuplicateCleanupService(fast_config, InMemoryArticleStore([make_article(APOLLO_A)], now=now))
    candidate = Article(title=APOLLO_A, publication_date=date(2024, 6, 23) + timedelta(days=45))
    assert service.check_for_duplicates_sync(candidate) == []


def test_check_for_duplicates_errors(fast_config, now):
    """Bad look-back raises an input error; store failures propagate"""
    store = InMemoryArticleStore(now=now)
    service = DuplicateCleanupService(fast_config, store)
    candidate = Article(title=APOLLO_A, publication_date=date(2024, 6, 23))

    with pytest.raises(InvalidInputError):
        service.check_for_duplicates_sync(candidate, days=0)

    store.fail_list = True
    with pytest.raises(StoreError):
        service.check_for_duplicates_sync(candidate)


class SlowListStore(InMemoryArticleStore):
    """Store whose listing outlasts the store timeout."""

    def list_articles(self, window):
        time.sleep(0.5)
        return super().list_articles(window)


def test_check_for_duplicates_list_timeout_raises_store_error(fast_config, now):
    """A listing that times out surfaces as StoreError, not asyncio.TimeoutError"""
    config = fast_config.model_copy(
        update={"cleanup": fast_config.cleanup.model_copy(update={"store_timeout_seconds": 0.05})}
    )
    service = DuplicateCleanupService(config, SlowListStore(now=now))
    candidate = Article(title=APOLLO_A, publication_date=date(2024, 6, 23))

    with pytest.raises(StoreError, match="timed out"):
        service.check_for_duplicates_sync(candidate)


def test_token_resolved_from_config(fast_config, make_article, now):
    """The configured token authorizes apply runs"""
    store = InMemoryArticleStore([make_article(APOLLO_A), make_article(APOLLO_B)], now=now)
    service = DuplicateCleanupService(fast_config, store)

    rejected = service.run_duplicate_cleanup_sync(Window.recent(3), RunMode.APPLY, confirmation_token="guess")
    assert rejected.status == RunStatus.REJECTED
    assert len(store.articles) == 2

    report = service.run_duplicate_cleanup_sync(Window.recent(3), RunMode.APPLY, confirmation_token=TOKEN)
    assert report.status == RunStatus.COMPLETED
    assert report.deleted_count == 1
    assert service.last_report is report


def test_token_read_from_environment(make_article, now, monkeypatch):
    """The expected token may come from the environment"""
    monkeypatch.setenv("DEALDEDUP_CONFIRM_TOKEN", "from-env")
    config = ConfigModel(cleanup={"batch_delay_seconds": 0, "delete_delay_seconds": 0}, llm={"provider": "none"})
    store = InMemoryArticleStore([make_article(APOLLO_A), make_article(APOLLO_B)], now=now)

    report = DuplicateCleanupService(config, store).run_duplicate_cleanup_sync(
        Window.recent(3), RunMode.APPLY, confirmation_token="from-env"
    )

    assert report.status == RunStatus.COMPLETED


def test_preview_duplicates_sync(fast_config, make_article, now):
    """Preview wrapper plans without deleting"""
    store = InMemoryArticleStore([make_article(APOLLO_A), make_article(APOLLO_B)], now=now)
    report = DuplicateCleanupService(fast_config, store).preview_duplicates_sync(Window.recent(3))

    assert report.mode == RunMode.PREVIEW
    assert report.groups_found == 1
    assert store.deleted == []


def test_services_sharing_a_lock_do_not_overlap(fast_config, make_article, now):
    """A second service on the same lock cannot start while the first runs"""
    lock = RunLock()
    store = InMemoryArticleStore([make_article(APOLLO_A), make_article(APOLLO_B)], now=now)
    first = DuplicateCleanupService(fast_config, store, lock=lock)
    second = DuplicateCleanupService(fast_config, store, lock=lock)

    async def both():
        return await asyncio.gather(
            first.preview_duplicates(Window.recent(3)),
            second.preview_duplicates(Window.recent(3)),
            return_exceptions=True,
        )

    results = asyncio.run(both())

    assert results[0].status == RunStatus.COMPLETED
    assert isinstance(results[1], RunInProgressError)
    assert not lock.locked
