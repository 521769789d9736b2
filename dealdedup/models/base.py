"""Base model class for all stored records."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class DBModel(BaseModel):
    """Base model for records that live in the article store."""

    id: Optional[int] = Field(None, description="Primary key, assigned by the store")
    created_at: Optional[datetime] = Field(None, description="Ingestion timestamp")

    class Config:
        """Pydantic config."""

        from_attributes = True
        frozen = True
