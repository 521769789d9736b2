"""Cluster duplicate judgments into groups with one canonical article each."""

import heapq
import logging
from itertools import count
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models import Article, DuplicateGroup, PairJudgment, RedundantEntry
from ..scoring.quality import QualityScorer, canonical_sort_key

logger = logging.getLogger(__name__)

# Article ID -> (judgment, neighbour ID) for every duplicate judgment touching it
Edges = Dict[int, List[Tuple[PairJudgment, int]]]


class UnionFind:
    """Union-find over article IDs with path compression and union by rank."""

    def __init__(self, elements: Iterable[int]) -> None:
        self.parent = {e: e for e in elements}
        self.rank = {e: 0 for e in self.parent}

    def find(self, x: int) -> int:
        if self.parent[x] != x:
            self.parent[x] = self.find(self.parent[x])
        return self.parent[x]

    def union(self, x: int, y: int) -> bool:
        """Union two elements. Returns True if they were in different sets."""
        px, py = self.find(x), self.find(y)
        if px == py:
            return False
        if self.rank[px] < self.rank[py]:
            px, py = py, px
        self.parent[py] = px
        if self.rank[px] == self.rank[py]:
            self.rank[px] += 1
        return True

    def components(self) -> Dict[int, List[int]]:
        """Members of every set, keyed by root, members sorted."""
        result: Dict[int, List[int]] = {}
        for element in sorted(self.parent):
            result.setdefault(self.find(element), []).append(element)
        return result


def _judgment_key(judgment: PairJudgment) -> Tuple[float, int, int]:
    ids = sorted((judgment.article_a_id, judgment.article_b_id))
    return (-judgment.similarity_score, ids[0], ids[1])


def widest_path_links(root: int, edges: Edges) -> Dict[int, PairJudgment]:
    """
    Weakest judgment on the strongest path from ``root`` to every reachable article.

    Widest-path search: among all paths of duplicate judgments from the root,
    the one whose weakest judgment scores highest decides the link.

    Args:
        root: Canonical article ID
        edges: Duplicate judgments by article

    Returns:
        Bottleneck judgment per article ID (root excluded)
    """
    links: Dict[int, PairJudgment] = {}
    visited = {root}
    heap: list = []
    tiebreak = count()

    def push(node: int, bottleneck: Optional[PairJudgment]) -> None:
        for judgment, neighbour in edges.get(node, ()):
            if neighbour in visited:
                continue
            link = judgment
            if bottleneck is not None and bottleneck.similarity_score < judgment.similarity_score:
                link = bottleneck
            heapq.heappush(heap, (-link.similarity_score, neighbour, _judgment_key(link), next(tiebreak), link))

    push(root, None)
    while heap:
        entry = heapq.heappop(heap)
        node, link = entry[1], entry[-1]
        if node in visited:
            continue
        visited.add(node)
        links[node] = link
        push(node, link)
    return links


class GroupingResolver:
    """Turn pairwise duplicate judgments into a resolution plan."""

    def __init__(self, quality_scorer: Optional[QualityScorer] = None) -> None:
        self.quality_scorer = quality_scorer or QualityScorer()

    def resolve(
        self,
        articles: Sequence[Article],
        judgments: Iterable[PairJudgment],
    ) -> List[DuplicateGroup]:
        """
        Group articles connected by duplicate judgments.

        Membership is transitive: A~B and B~C put A, B and C in one group even
        when A~C was never judged a duplicate. Within a group the article with
        the highest quality score is canonical, and each redundant article
        carries the weakest judgment on its strongest path to the canonical.

        Args:
            articles: Articles of the run window (must carry IDs)
            judgments: Pair judgments; non-duplicates are ignored

        Returns:
            Groups ordered by founding confidence, strongest first
        """
        by_id = {a.id: a for a in articles if a.id is not None}
        duplicates = [
            j for j in judgments
            if j.is_duplicate and j.article_a_id in by_id and j.article_b_id in by_id
        ]
        if not duplicates:
            return []

        uf = UnionFind(by_id)
        edges: Edges = {}
        for judgment in sorted(duplicates, key=_judgment_key):
            uf.union(judgment.article_a_id, judgment.article_b_id)
            edges.setdefault(judgment.article_a_id, []).append((judgment, judgment.article_b_id))
            edges.setdefault(judgment.article_b_id, []).append((judgment, judgment.article_a_id))

        groups = []
        for members in uf.components().values():
            if len(members) < 2:
                continue
            groups.append(self._build_group([by_id[m] for m in members], edges))

        groups.sort(key=lambda g: (-g.founding_judgment.similarity_score, g.canonical.id))
        logger.debug("Resolved %d duplicate groups from %d judgments", len(groups), len(duplicates))
        return groups

    def _build_group(self, members: List[Article], edges: Edges) -> DuplicateGroup:
        scores = {a.id: self.quality_scorer.score(a) for a in members}
        ranked = sorted(members, key=lambda a: canonical_sort_key(a, scores[a.id]))
        canonical = ranked[0]
        canonical_quality = scores[canonical.id]
        links = widest_path_links(canonical.id, edges)

        redundant = [
            RedundantEntry(
                article=article,
                judgment=links[article.id],
                quality=scores[article.id],
                quality_delta=canonical_quality - scores[article.id],
            )
            for article in ranked[1:]
        ]
        return DuplicateGroup(
            canonical=canonical,
            canonical_quality=canonical_quality,
            redundant=redundant,
        )
