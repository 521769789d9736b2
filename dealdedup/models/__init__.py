"""Data models for the duplicate cleanup engine."""

from .article import Article
from .group import DuplicateGroup, RedundantEntry
from .judgment import ConfidenceTier, FeatureSet, PairJudgment
from .run import (
    FailedAction,
    GroupSummary,
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

__all__ = [
    "Article",
    "ConfidenceTier",
    "DuplicateGroup",
    "FailedAction",
    "FeatureSet",
    "GroupSummary",
    "PairJudgment",
    "RedundantEntry",
    "ResolutionStrategy",
    "RunLimits",
    "RunMode",
    "RunReport",
    "RunState",
    "RunStatus",
    "SkippedArticle",
    "Window",
    "WindowStrategy",
]
