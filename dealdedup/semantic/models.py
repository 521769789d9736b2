"""Data models for semantic comparison."""

from typing import Optional

from pydantic import BaseModel, Field


class SemanticVerdict(BaseModel):
    """Verdict returned by a semantic comparer for one article pair."""

    is_duplicate: bool = Field(..., description="Whether both articles report the same deal")
    rationale: str = Field("", description="Explanation from the comparer")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
