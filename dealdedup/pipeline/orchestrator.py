"""Cleanup orchestrator that drives one duplicate detection and resolution run."""

import asyncio
import logging
import time
import uuid
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pendulum

from ..config import CleanupConfig
from ..db.store import ArticleStore
from ..errors import InvalidInputError
from ..features import FeatureExtractor
from ..grouping import GroupingResolver
from ..models import (
    Article,
    DuplicateGroup,
    FailedAction,
    FeatureSet,
    GroupSummary,
    PairJudgment,
    ResolutionStrategy,
    RunLimits,
    RunMode,
    RunReport,
    RunState,
    RunStatus,
    SkippedArticle,
    Window,
    WindowStrategy,
)
from ..safety import GateResult, SafetyGate
from ..scoring import SimilarityScorer
from ..semantic import SemanticComparer
from .lock import RunLock

logger = logging.getLogger(__name__)

ArticlePair = Tuple[Article, Article]


class PipelineStage:
    """Timing of one run state."""

    def __init__(self, state: RunState) -> None:
        self.state = state
        self.start_time = time.monotonic()
        self.end_time: Optional[float] = None

    def complete(self) -> None:
        self.end_time = time.monotonic()

    @property
    def duration(self) -> float:
        """Get stage duration in seconds."""
        end = self.end_time if self.end_time is not None else time.monotonic()
        return end - self.start_time


class CleanupOrchestrator:
    """Run the fetch, compare, group, gate and resolve steps for one window."""

    def __init__(
        self,
        store: ArticleStore,
        extractor: FeatureExtractor,
        similarity_scorer: SimilarityScorer,
        resolver: GroupingResolver,
        gate: SafetyGate,
        comparer: Optional[SemanticComparer] = None,
        config: Optional[CleanupConfig] = None,
        max_date_gap_days: int = 30,
        lock: Optional[RunLock] = None,
    ) -> None:
        """
        Initialize cleanup orchestrator.

        Args:
            store: Article store to read from and resolve into
            extractor: Feature extractor
            similarity_scorer: Pair scoring strategy
            resolver: Grouping resolver (carries the quality scorer)
            gate: Safety gate
            comparer: Semantic comparer for inconclusive pairs, if any
            config: Batching, pacing and escalation settings
            max_date_gap_days: Pairs published further apart are never scored
            lock: Run lock shared with other orchestrators; a private one by default
        """
        self.store = store
        self.extractor = extractor
        self.similarity_scorer = similarity_scorer
        self.resolver = resolver
        self.gate = gate
        self.comparer = comparer
        self.config = config or CleanupConfig()
        self.max_date_gap_days = max_date_gap_days
        self.lock = lock or RunLock()
        self.last_report: Optional[RunReport] = None
        self._stage: Optional[PipelineStage] = None

    # -- state tracking -------------------------------------------------

    def _enter(self, report: RunReport, state: RunState) -> None:
        self._finish_stage(report)
        report.state = state
        self._stage = PipelineStage(state)
        logger.debug("Run %s: %s", report.run_id, state.value)

    def _finish_stage(self, report: RunReport) -> None:
        if self._stage is not None:
            self._stage.complete()
            report.stage_durations[self._stage.state.value] = round(self._stage.duration, 3)
            self._stage = None

    def _fail(self, report: RunReport, error: str) -> None:
        logger.error("Run %s failed during %s: %s", report.run_id, report.state.value, error)
        self._finish_stage(report)
        report.state = RunState.FAILED
        report.status = RunStatus.FAILED
        report.error = error

    # -- collaborator calls ---------------------------------------------

    async def _call_store(self, func: Callable, *args):
        """Run a blocking store call under the store timeout."""
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args),
            timeout=self.config.store_timeout_seconds,
        )

    # -- run ------------------------------------------------------------

    async def run(
        self,
        window: Window,
        mode: RunMode = RunMode.PREVIEW,
        limits: Optional[RunLimits] = None,
        confirmation_token: Optional[str] = None,
        resolution: ResolutionStrategy = ResolutionStrategy.DELETE,
    ) -> RunReport:
        """
        Run one cleanup pass over a window.

        Args:
            window: Articles to consider
            mode: Preview (no changes) or apply
            limits: Per-run safety overrides
            confirmation_token: Token required by apply
            resolution: What applying does to redundant articles

        Returns:
            Run report; collaborator failures are recorded in it, not raised

        Raises:
            InvalidInputError: Bad window, mode or resolution (before any store call)
            RunInProgressError: Another run holds the lock
        """
        try:
            mode = RunMode(mode)
            resolution = ResolutionStrategy(resolution)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e
        window.validate_params()
        limits = limits or RunLimits()

        run_id = uuid.uuid4().hex[:12]
        report = RunReport(
            run_id=run_id,
            mode=mode,
            resolution=resolution,
            window=window,
            started_at=pendulum.now("UTC"),
        )
        self.lock.acquire(run_id)
        self.last_report = report
        logger.info("Run %s: %s %s (%s)", run_id, mode.value, window.describe(), resolution.value)

        try:
            await self._execute(report, window, mode, limits, confirmation_token, resolution)
        except asyncio.CancelledError:
            logger.warning("Run %s cancelled during %s", run_id, report.state.value)
            if report.state == RunState.APPLYING:
                report.partially_applied = True
            report.status = RunStatus.CANCELLED
            self._finish_stage(report)
            raise
        except Exception as e:
            self._fail(report, str(e))
        finally:
            report.finished_at = pendulum.now("UTC")
            self.lock.release()

        return report

    async def _execute(
        self,
        report: RunReport,
        window: Window,
        mode: RunMode,
        limits: RunLimits,
        confirmation_token: Optional[str],
        resolution: ResolutionStrategy,
    ) -> None:
        self._enter(report, RunState.FETCHING)
        try:
            articles = await self._call_store(self.store.list_articles, window)
        except asyncio.TimeoutError:
            self._fail(report, f"Timed out fetching {window.describe()}")
            return
        except Exception as e:
            self._fail(report, f"Failed to fetch {window.describe()}: {e}")
            return
        report.articles_analyzed = len(articles)

        self._enter(report, RunState.COMPARING)
        judgments = await self._compare(articles, window, report)

        self._enter(report, RunState.GROUPING)
        groups = self.resolver.resolve(articles, judgments)
        report.groups_found = len(groups)
        report.redundant_count = sum(len(g.redundant) for g in groups)

        self._enter(report, RunState.GATE_CHECKING)
        gate_result = self.gate.filter(groups, mode, confirmation_token, limits)
        report.rejected_reasons = list(gate_result.rejected_reasons)
        report.skipped = list(gate_result.skipped)
        report.groups = self._summarize(groups, gate_result)

        if gate_result.rejected:
            report.status = RunStatus.REJECTED
        elif mode == RunMode.PREVIEW:
            self._enter(report, RunState.PREVIEWING)
            report.status = RunStatus.COMPLETED
        else:
            self._enter(report, RunState.APPLYING)
            if resolution == ResolutionStrategy.FILL_MISSING_LINK:
                await self._fill_missing_links(gate_result.allowed, report)
            else:
                await self._delete_redundant(gate_result.allowed, report)
            report.status = RunStatus.PARTIAL if report.failed_count else RunStatus.COMPLETED
            report.partially_applied = bool(
                report.failed_count and (report.deleted_count or report.updated_count)
            )

        self._finish_stage(report)
        report.state = RunState.REPORTED
        logger.info(
            "Run %s %s: %d articles, %d groups, %d redundant, %d deleted, %d updated, %d failed",
            report.run_id,
            report.status.value,
            report.articles_analyzed,
            report.groups_found,
            report.redundant_count,
            report.deleted_count,
            report.updated_count,
            report.failed_count,
        )

    # -- comparing ------------------------------------------------------

    def candidate_pairs(
        self, articles: Sequence[Article], window: Window, report: Optional[RunReport] = None
    ) -> List[ArticlePair]:
        """Pairs worth scoring; pairs beyond the date gap are counted and dropped."""
        ordered = sorted(articles, key=lambda a: (a.publication_date, a.id or 0))
        pairs: List[ArticlePair] = []
        for i, article_a in enumerate(ordered):
            for article_b in ordered[i + 1:]:
                if window.strategy == WindowStrategy.PUBLICATION_DATE:
                    if article_a.publication_date != article_b.publication_date:
                        continue
                gap = abs((article_b.publication_date - article_a.publication_date).days)
                if gap > self.max_date_gap_days:
                    if report is not None:
                        report.pairs_skipped_out_of_window += 1
                    continue
                pairs.append((article_a, article_b))
        return pairs

    def _score_pair(self, pair: ArticlePair, features: Dict[Optional[int], FeatureSet]) -> PairJudgment:
        article_a, article_b = pair
        judgment = self.similarity_scorer.score(
            features[article_a.id], features[article_b.id], article_a.title, article_b.title
        )
        return judgment.with_ids(article_a.id, article_b.id)

    def _is_inconclusive(self, judgment: PairJudgment) -> bool:
        return self.config.inconclusive_min <= judgment.similarity_score < self.config.inconclusive_max

    async def _escalate(self, pair: ArticlePair, judgment: PairJudgment, report: RunReport) -> PairJudgment:
        """Ask the semantic comparer; keep the heuristic verdict if it fails."""
        article_a, article_b = pair
        report.semantic_calls += 1
        try:
            verdict = await asyncio.wait_for(
                asyncio.to_thread(self.comparer.compare, article_a, article_b),
                timeout=self.config.semantic_timeout_seconds,
            )
        except asyncio.TimeoutError:
            report.semantic_fallbacks += 1
            logger.warning(
                "Semantic comparison of %s and %s timed out; keeping heuristic verdict",
                article_a.id,
                article_b.id,
            )
            return judgment
        except Exception as e:
            report.semantic_fallbacks += 1
            logger.warning(
                "Semantic comparison of %s and %s failed (%s); keeping heuristic verdict",
                article_a.id,
                article_b.id,
                e,
            )
            return judgment

        return judgment.model_copy(update={
            "is_duplicate": verdict.is_duplicate,
            "method": "semantic",
            "semantic_rationale": verdict.rationale,
        })

    async def _compare(self, articles: Sequence[Article], window: Window, report: RunReport) -> List[PairJudgment]:
        features = {a.id: self.extractor.extract(a) for a in articles}
        pairs = self.candidate_pairs(articles, window, report)
        batch_size = self.config.batch_size
        escalate = self.comparer is not None and self.config.semantic_enabled

        judgments: List[PairJudgment] = []
        for start in range(0, len(pairs), batch_size):
            if start > 0 and self.config.batch_delay_seconds:
                await asyncio.sleep(self.config.batch_delay_seconds)

            for pair in pairs[start:start + batch_size]:
                judgment = self._score_pair(pair, features)
                if (
                    escalate
                    and self._is_inconclusive(judgment)
                    and report.semantic_calls < self.config.max_semantic_calls
                ):
                    judgment = await self._escalate(pair, judgment, report)
                judgments.append(judgment)

            logger.debug(
                "Run %s: compared %d/%d pairs", report.run_id, min(start + batch_size, len(pairs)), len(pairs)
            )

        report.comparisons = len(judgments)
        return judgments

    # -- reporting ------------------------------------------------------

    def _summarize(self, groups: List[DuplicateGroup], gate_result: GateResult) -> List[GroupSummary]:
        allowed_ids = {g.canonical.id for g in gate_result.allowed}
        return [
            GroupSummary(
                canonical_id=group.canonical.id,
                canonical_title=group.canonical.title,
                redundant_ids=[entry.article.id for entry in group.redundant],
                confidence_tier=group.founding_judgment.confidence_tier,
                allowed=group.canonical.id in allowed_ids,
                rationale=group.rationale(),
            )
            for group in groups
        ]

    # -- applying -------------------------------------------------------

    async def _delete_redundant(self, groups: List[DuplicateGroup], report: RunReport) -> None:
        first = True
        for group in groups:
            for entry in group.redundant:
                if not first and self.config.delete_delay_seconds:
                    await asyncio.sleep(self.config.delete_delay_seconds)
                first = False

                article_id = entry.article.id
                try:
                    await self._call_store(self.store.delete_article, article_id)
                except asyncio.TimeoutError:
                    report.failed_count += 1
                    report.failures.append(FailedAction(article_id=article_id, error="delete timed out"))
                    logger.warning("Delete of article %s timed out", article_id)
                    continue
                except Exception as e:
                    report.failed_count += 1
                    report.failures.append(FailedAction(article_id=article_id, error=str(e)))
                    logger.warning("Delete of article %s failed: %s", article_id, e)
                    continue

                report.deleted_count += 1
                report.backups.append(entry.article)
                logger.info(
                    "Deleted %s (duplicate of %s)", entry.article.label(), group.canonical.label()
                )

    async def _fill_missing_links(self, groups: List[DuplicateGroup], report: RunReport) -> None:
        """Copy the best redundant link onto canonical articles lacking one."""
        first = True
        for group in groups:
            canonical = group.canonical
            if canonical.has_link:
                report.skipped.append(SkippedArticle(article_id=canonical.id, reason="canonical-has-link"))
                continue

            donor = next((e.article for e in group.redundant if e.article.has_link), None)
            if donor is None:
                report.skipped.append(SkippedArticle(article_id=canonical.id, reason="no-link-available"))
                continue

            if not first and self.config.delete_delay_seconds:
                await asyncio.sleep(self.config.delete_delay_seconds)
            first = False

            try:
                await self._call_store(
                    self.store.update_article_field, canonical.id, "source_url", donor.source_url
                )
            except asyncio.TimeoutError:
                report.failed_count += 1
                report.failures.append(FailedAction(article_id=canonical.id, error="update timed out"))
                logger.warning("Link update of article %s timed out", canonical.id)
                continue
            except Exception as e:
                report.failed_count += 1
                report.failures.append(FailedAction(article_id=canonical.id, error=str(e)))
                logger.warning("Link update of article %s failed: %s", canonical.id, e)
                continue

            report.updated_count += 1
            report.backups.append(canonical)
            logger.info("Linked %s to %s (from %s)", canonical.label(), donor.source_url, donor.id)
