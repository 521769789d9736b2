"""Policy checks applied to a resolution plan before anything is changed."""

import hmac
import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from ..config import SafetyConfig
from ..models import (
    ConfidenceTier,
    DuplicateGroup,
    RunLimits,
    RunMode,
    SkippedArticle,
)

logger = logging.getLogger(__name__)

LIMIT_EXCEEDED = "limit-exceeded"
BELOW_MIN_CONFIDENCE = "below-min-confidence"


class GateResult(BaseModel):
    """Plan remaining after the safety rules, and what was cut."""

    allowed: List[DuplicateGroup] = Field(default_factory=list)
    skipped: List[SkippedArticle] = Field(default_factory=list)
    rejected_reasons: List[str] = Field(default_factory=list)
    rejected: bool = Field(False, description="Whole request refused (token check)")

    @property
    def allowed_count(self) -> int:
        return sum(len(group.redundant) for group in self.allowed)


class SafetyGate:
    """Caps blast radius and requires confirmation for destructive runs.

    Pure: never touches the store.
    """

    def __init__(self, config: Optional[SafetyConfig] = None, expected_token: Optional[str] = None) -> None:
        """
        Initialize safety gate.

        Args:
            config: Default limits
            expected_token: Token an apply request must present; None refuses every apply
        """
        self.config = config or SafetyConfig()
        self.expected_token = expected_token

    def _token_matches(self, token: Optional[str]) -> bool:
        if not self.expected_token or token is None:
            return False
        return hmac.compare_digest(token.encode("utf-8"), self.expected_token.encode("utf-8"))

    def filter(
        self,
        plan: List[DuplicateGroup],
        mode: RunMode,
        token: Optional[str] = None,
        limits: Optional[RunLimits] = None,
    ) -> GateResult:
        """
        Apply the safety rules to a plan.

        Args:
            plan: Groups produced by the grouping resolver
            mode: Preview or apply
            token: Confirmation token supplied by the caller
            limits: Per-run overrides of the configured limits

        Returns:
            Allowed groups, skipped articles and rejection reasons
        """
        limits = limits or RunLimits()

        if mode == RunMode.APPLY:
            if not self.expected_token:
                logger.warning("Apply refused: no confirmation token configured")
                return GateResult(
                    rejected=True,
                    rejected_reasons=["No confirmation token is configured; apply is disabled"],
                )
            if not self._token_matches(token):
                logger.warning("Apply refused: confirmation token missing or incorrect")
                return GateResult(
                    rejected=True,
                    rejected_reasons=["Confirmation token missing or incorrect"],
                )

        min_tier = limits.min_confidence_tier or self.config.min_confidence_tier
        max_groups = limits.max_groups if limits.max_groups is not None else self.config.max_groups
        max_deletions = (
            limits.max_deletions if limits.max_deletions is not None else self.config.max_deletions
        )

        result = GateResult()

        # Tiers are checked per redundant article, on its link to the canonical
        confident: List[DuplicateGroup] = []
        for group in plan:
            kept = [e for e in group.redundant if _meets(e.judgment.confidence_tier, min_tier)]
            weak = [e for e in group.redundant if not _meets(e.judgment.confidence_tier, min_tier)]
            if weak:
                weakest = min(weak, key=lambda e: e.judgment.similarity_score).judgment.confidence_tier
                if kept:
                    result.rejected_reasons.append(
                        f"Group {group.canonical.id}: {len(weak)} articles linked at "
                        f"{weakest.value} confidence are below the minimum {min_tier.value}"
                    )
                else:
                    result.rejected_reasons.append(
                        f"Group {group.canonical.id}: {weakest.value} confidence is below "
                        f"the minimum {min_tier.value}"
                    )
                result.skipped.extend(
                    SkippedArticle(article_id=entry.article.id, reason=BELOW_MIN_CONFIDENCE)
                    for entry in weak
                )
            if kept:
                confident.append(group if not weak else group.model_copy(update={"redundant": kept}))

        if max_groups is not None and len(confident) > max_groups:
            for group in confident[max_groups:]:
                result.skipped.extend(
                    SkippedArticle(article_id=entry.article.id, reason=LIMIT_EXCEEDED)
                    for entry in group.redundant
                )
            result.rejected_reasons.append(
                f"Group cap of {max_groups} reached; {len(confident) - max_groups} groups skipped"
            )
            confident = confident[:max_groups]

        remaining = max_deletions
        cut = 0
        for group in confident:
            kept = group.redundant[:remaining]
            for entry in group.redundant[remaining:]:
                result.skipped.append(SkippedArticle(article_id=entry.article.id, reason=LIMIT_EXCEEDED))
                cut += 1
            remaining -= len(kept)
            if kept:
                result.allowed.append(group.model_copy(update={"redundant": kept}))

        if cut:
            result.rejected_reasons.append(
                f"Deletion cap of {max_deletions} reached; {cut} articles skipped"
            )

        return result


def _meets(tier: ConfidenceTier, min_tier: ConfidenceTier) -> bool:
    return tier != ConfidenceTier.NONE and tier.at_least(min_tier)
