"""Article store interface consumed by the cleanup engine."""

from abc import ABC, abstractmethod
from typing import Any, List

from ..models import Article, Window

UPDATABLE_FIELDS = ("source_url", "summary", "content", "source", "category", "publication_date")


class ArticleStore(ABC):
    """Abstract base class for article stores.

    Every method raises StoreError when the backend fails.
    """

    @abstractmethod
    def list_articles(self, window: Window) -> List[Article]:
        """
        List articles in a window.

        Args:
            window: Recency or publication-date range

        Returns:
            Articles ordered by ID
        """
        pass

    @abstractmethod
    def delete_article(self, article_id: int) -> None:
        """Delete one article."""
        pass

    @abstractmethod
    def update_article_field(self, article_id: int, field: str, value: Any) -> None:
        """Set one field of an article."""
        pass
