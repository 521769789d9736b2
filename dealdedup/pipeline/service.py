"""Entry points used by job triggers and the CLI."""

import asyncio
import logging
from typing import List, Optional

from ..config import Config, ConfigModel, resolve_confirmation_token
from ..db.articles import PostgresArticleStore
from ..db.store import ArticleStore
from ..errors import StoreError
from ..features import FeatureExtractor
from ..grouping import GroupingResolver
from ..models import (
    Article,
    PairJudgment,
    ResolutionStrategy,
    RunLimits,
    RunMode,
    RunReport,
    Window,
)
from ..safety import SafetyGate
from ..scoring import QualityScorer, build_similarity_scorer
from ..semantic import SemanticComparer, get_semantic_comparer
from .lock import RunLock
from .orchestrator import CleanupOrchestrator

logger = logging.getLogger(__name__)


class DuplicateCleanupService:
    """Duplicate detection and resolution over an article store."""

    def __init__(
        self,
        config: ConfigModel,
        store: ArticleStore,
        comparer: Optional[SemanticComparer] = None,
        lock: Optional[RunLock] = None,
        expected_token: Optional[str] = None,
    ) -> None:
        """
        Initialize cleanup service.

        Args:
            config: Loaded configuration
            store: Article store
            comparer: Semantic comparer for inconclusive pairs, if any
            lock: Run lock; pass the same lock to services that must not overlap
            expected_token: Confirmation token for apply; resolved from config when omitted
        """
        self.config = config
        self.store = store
        if expected_token is None:
            expected_token = resolve_confirmation_token(config)

        self.extractor = FeatureExtractor.from_config(config.detection)
        self.similarity_scorer = build_similarity_scorer(config.detection)
        self.quality_scorer = QualityScorer(config.quality)
        self.orchestrator = CleanupOrchestrator(
            store=store,
            extractor=self.extractor,
            similarity_scorer=self.similarity_scorer,
            resolver=GroupingResolver(self.quality_scorer),
            gate=SafetyGate(config.safety, expected_token),
            comparer=comparer,
            config=config.cleanup,
            max_date_gap_days=config.detection.max_date_gap_days,
            lock=lock,
        )

    @classmethod
    def from_config(cls, config: Config, lock: Optional[RunLock] = None) -> "DuplicateCleanupService":
        """Build a service over the configured Postgres store and LLM."""
        model = config.config
        store = PostgresArticleStore(config.get_db_config(), table=model.postgres.table)
        comparer = None
        if model.cleanup.semantic_enabled:
            comparer = get_semantic_comparer(
                config.get_llm_config(), timeout=model.cleanup.semantic_timeout_seconds
            )
        return cls(model, store, comparer=comparer, lock=lock)

    @property
    def last_report(self) -> Optional[RunReport]:
        """Report of the latest run, also after a cancelled run."""
        return self.orchestrator.last_report

    async def run_duplicate_cleanup(
        self,
        window: Window,
        mode: RunMode = RunMode.PREVIEW,
        limits: Optional[RunLimits] = None,
        confirmation_token: Optional[str] = None,
        resolution: ResolutionStrategy = ResolutionStrategy.DELETE,
    ) -> RunReport:
        """Detect duplicates in a window and preview or apply their resolution."""
        return await self.orchestrator.run(window, mode, limits, confirmation_token, resolution)

    async def preview_duplicates(self, window: Window, limits: Optional[RunLimits] = None) -> RunReport:
        """Plan for a window without changing anything."""
        return await self.orchestrator.run(window, RunMode.PREVIEW, limits)

    async def check_for_duplicates(self, candidate: Article, days: Optional[int] = None) -> List[PairJudgment]:
        """
        Compare a not-yet-stored article against recent articles.

        Args:
            candidate: Article about to be inserted
            days: Look-back window (defaults to ``cleanup.check_days``)

        Returns:
            Duplicate judgments, strongest first

        Raises:
            InvalidInputError: Bad look-back
            StoreError: The recent articles could not be fetched
        """
        window = Window.recent(self.config.cleanup.check_days if days is None else days)
        window.validate_params()

        timeout = self.config.cleanup.store_timeout_seconds
        try:
            existing = await asyncio.wait_for(
                asyncio.to_thread(self.store.list_articles, window), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise StoreError(f"Listing articles for {window.describe()} timed out after {timeout}s") from e

        max_gap = self.config.detection.max_date_gap_days
        candidate_features = self.extractor.extract(candidate)
        matches = []
        for article in existing:
            if candidate.id is not None and article.id == candidate.id:
                continue
            if abs((article.publication_date - candidate.publication_date).days) > max_gap:
                continue
            judgment = self.similarity_scorer.score(
                candidate_features, self.extractor.extract(article), candidate.title, article.title
            ).with_ids(candidate.id, article.id)
            if judgment.is_duplicate:
                matches.append(judgment)

        matches.sort(key=lambda j: (-j.similarity_score, j.article_b_id or 0))
        logger.info("Candidate %r matches %d existing articles", candidate.title[:60], len(matches))
        return matches

    def run_duplicate_cleanup_sync(self, *args, **kwargs) -> RunReport:
        """Synchronous wrapper for run_duplicate_cleanup."""
        return asyncio.run(self.run_duplicate_cleanup(*args, **kwargs))

    def preview_duplicates_sync(self, window: Window, limits: Optional[RunLimits] = None) -> RunReport:
        """Synchronous wrapper for preview_duplicates."""
        return asyncio.run(self.preview_duplicates(window, limits))

    def check_for_duplicates_sync(self, candidate: Article, days: Optional[int] = None) -> List[PairJudgment]:
        """Synchronous wrapper for check_for_duplicates."""
        return asyncio.run(self.check_for_duplicates(candidate, days))
