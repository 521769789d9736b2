"""Postgres-backed article store."""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pendulum
from psycopg import sql

from ..errors import StoreError
from ..models import Article, Window, WindowStrategy
from .connection import get_connection
from .store import UPDATABLE_FIELDS, ArticleStore

logger = logging.getLogger(__name__)

# Column names in the deals table, keyed by Article field
COLUMN_MAP = {
    "engagement_score": "upvotes",
    "publication_date": "date",
}

ARTICLE_COLUMNS = (
    "id", "date", "title", "summary", "content", "source", "source_url",
    "category", "upvotes", "created_at",
)


def parse_event_date(value: Any) -> date:
    """Event date from the TEXT ``date`` column (ISO strings in practice)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pendulum.parse(str(value).strip(), strict=False).date()


def to_column_value(field: str, value: Any) -> Any:
    """Value as stored in the deals table."""
    if field == "publication_date" and isinstance(value, date):
        return value.isoformat()
    return value


def row_to_article(row: Dict[str, Any]) -> Article:
    """Build an Article from a deals row."""
    return Article(
        id=row["id"],
        title=row["title"],
        summary=row.get("summary") or "",
        content=row.get("content") or "",
        publication_date=parse_event_date(row["date"]),
        source=row.get("source") or "",
        source_url=row.get("source_url"),
        category=row.get("category") or "",
        engagement_score=row.get("upvotes") or 0,
        created_at=row.get("created_at"),
    )


class PostgresArticleStore(ArticleStore):
    """Article store over the deals table."""

    def __init__(self, db_config: Dict[str, Any], table: str = "deals", backup_table: Optional[str] = None) -> None:
        """
        Initialize Postgres store.

        Args:
            db_config: Connection settings (see ``Config.get_db_config``)
            table: Table holding the articles
            backup_table: Table receiving deleted rows (defaults to ``<table>_backup``)
        """
        self.db_config = db_config
        self.table = sql.Identifier(table)
        self.backup_table = sql.Identifier(backup_table or f"{table}_backup")

    def list_articles(self, window: Window) -> List[Article]:
        """List articles in a window, ordered by ID."""
        if window.strategy == WindowStrategy.RECENT:
            since = pendulum.now("UTC").subtract(days=window.days)
            where = sql.SQL("created_at >= %s")
            params: tuple = (since,)
        else:
            # Event dates are ISO TEXT, so string comparison follows date order
            where = sql.SQL("date BETWEEN %s AND %s")
            params = (window.start_date.isoformat(), window.end_date.isoformat())

        query = sql.SQL("SELECT {columns} FROM {table} WHERE {where} ORDER BY id").format(
            columns=sql.SQL(", ").join(map(sql.Identifier, ARTICLE_COLUMNS)),
            table=self.table,
            where=where,
        )

        try:
            with get_connection(self.db_config) as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    rows = cur.fetchall()
        except Exception as e:
            raise StoreError(f"Failed to list articles for {window.describe()}: {e}") from e

        articles = []
        for row in rows:
            try:
                articles.append(row_to_article(row))
            except ValueError as e:
                # Rows that violate the model (e.g. blank titles) are left alone
                logger.warning("Skipping unreadable article %s: %s", row.get("id"), e)
        return articles

    def delete_article(self, article_id: int) -> None:
        """Copy one article into the backup table, then delete it, in one transaction."""
        columns = sql.SQL(", ").join(map(sql.Identifier, ARTICLE_COLUMNS))
        backup = sql.SQL(
            "INSERT INTO {backup} ({columns}) SELECT {columns} FROM {table} WHERE id = %s"
        ).format(backup=self.backup_table, columns=columns, table=self.table)
        delete = sql.SQL("DELETE FROM {table} WHERE id = %s").format(table=self.table)
        try:
            with get_connection(self.db_config) as conn:
                with conn.cursor() as cur:
                    cur.execute(backup, (article_id,))
                    if cur.rowcount == 0:
                        raise StoreError(f"Article {article_id} not found")
                    cur.execute(delete, (article_id,))
                conn.commit()
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to delete article {article_id}: {e}") from e

    def update_article_field(self, article_id: int, field: str, value: Any) -> None:
        """Set one field of an article."""
        if field not in UPDATABLE_FIELDS:
            raise StoreError(f"Field '{field}' cannot be updated")

        query = sql.SQL("UPDATE {table} SET {column} = %s WHERE id = %s").format(
            table=self.table,
            column=sql.Identifier(COLUMN_MAP.get(field, field)),
        )
        try:
            with get_connection(self.db_config) as conn:
                with conn.cursor() as cur:
                    cur.execute(query, (to_column_value(field, value), article_id))
                    updated = cur.rowcount
                conn.commit()
        except Exception as e:
            raise StoreError(f"Failed to update {field} of article {article_id}: {e}") from e

        if updated == 0:
            raise StoreError(f"Article {article_id} not found")
