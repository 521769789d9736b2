"""Duplicate grouping."""

from .resolver import GroupingResolver, UnionFind

__all__ = ["GroupingResolver", "UnionFind"]
