"""In-memory article store for tests and local dry runs."""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

import pendulum

from ..errors import StoreError
from ..models import Article, Window, WindowStrategy
from .store import UPDATABLE_FIELDS, ArticleStore


class InMemoryArticleStore(ArticleStore):
    """Dict-backed article store.

    ``fail_list``, ``fail_delete`` and ``fail_update`` make the matching
    operations raise StoreError, to exercise failure handling.
    """

    def __init__(self, articles: Iterable[Article] = (), now: Optional[datetime] = None) -> None:
        self.articles: Dict[int, Article] = {}
        self.now = now
        self.fail_list = False
        self.fail_delete: Set[int] = set()
        self.fail_update: Set[int] = set()
        self.deleted: List[int] = []
        self.backup: List[Article] = []
        self.updates: List[tuple] = []
        self._next_id = 1
        for article in articles:
            self.add(article)

    def add(self, article: Article) -> Article:
        """Store an article, assigning an ID and timestamp when missing."""
        update: Dict[str, Any] = {}
        if article.id is None:
            update["id"] = self._next_id
        if article.created_at is None:
            update["created_at"] = self.now or pendulum.now("UTC")
        if update:
            article = article.model_copy(update=update)

        self.articles[article.id] = article
        self._next_id = max(self._next_id, article.id + 1)
        return article

    def list_articles(self, window: Window) -> List[Article]:
        if self.fail_list:
            raise StoreError("Store unavailable")

        if window.strategy == WindowStrategy.RECENT:
            now = self.now or pendulum.now("UTC")
            since = now - pendulum.duration(days=window.days)
            selected = [a for a in self.articles.values() if a.created_at and a.created_at >= since]
        else:
            selected = [
                a for a in self.articles.values()
                if window.start_date <= a.publication_date <= window.end_date
            ]
        return sorted(selected, key=lambda a: a.id)

    def delete_article(self, article_id: int) -> None:
        if article_id in self.fail_delete:
            raise StoreError(f"Failed to delete article {article_id}")
        if article_id not in self.articles:
            raise StoreError(f"Article {article_id} not found")
        self.backup.append(self.articles.pop(article_id))
        self.deleted.append(article_id)

    def update_article_field(self, article_id: int, field: str, value: Any) -> None:
        if article_id in self.fail_update:
            raise StoreError(f"Failed to update article {article_id}")
        if field not in UPDATABLE_FIELDS:
            raise StoreError(f"Field '{field}' cannot be updated")
        if article_id not in self.articles:
            raise StoreError(f"Article {article_id} not found")
        self.articles[article_id] = self.articles[article_id].model_copy(update={field: value})
        self.updates.append((article_id, field, value))
