"""Article model for deal news records."""

from datetime import date
from typing import Optional

from pydantic import Field, field_validator

from .base import DBModel


class Article(DBModel):
    """A news item describing one reported financial transaction."""

    title: str = Field(..., description="Article headline")
    summary: str = Field("", description="Short summary, may be empty before enrichment")
    content: str = Field("", description="Article body text")
    publication_date: date = Field(..., description="Date of the reported event")
    source: str = Field("", description="Publisher label")
    source_url: Optional[str] = Field(None, description="Link to the original story")
    category: str = Field("", description="Free-text classification")
    engagement_score: int = Field(0, description="Community upvotes", ge=0)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject blank titles."""
        if not v or not v.strip():
            raise ValueError("Article title must not be empty")
        return v

    @property
    def has_link(self) -> bool:
        """Whether the article carries a usable source URL."""
        return bool(self.source_url and self.source_url.strip())

    def label(self) -> str:
        """Short label used in logs and report rationale."""
        title = self.title if len(self.title) <= 60 else self.title[:57] + "..."
        return f'[{self.id}] "{title}"'
