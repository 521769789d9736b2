"""Shared fixtures for the cleanup engine tests."""

from datetime import date
from itertools import count

import pendulum
import pytest

from dealdedup.config import ConfigModel
from dealdedup.models import Article

NOW = pendulum.datetime(2024, 6, 24, 12, 0, tz="UTC")
TOKEN = "s3cret"


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_article():
    """Factory for articles with sequential IDs, ingested an hour before NOW."""
    ids = count(1)

    def factory(title, publication_date=date(2024, 6, 23), **fields):
        fields.setdefault("id", next(ids))
        fields.setdefault("created_at", NOW.subtract(hours=1))
        return Article(title=title, publication_date=publication_date, **fields)

    return factory


@pytest.fixture
def fast_config():
    """Config without pacing delays and with a known confirmation token."""
    return ConfigModel(
        cleanup={
            "batch_delay_seconds": 0,
            "delete_delay_seconds": 0,
            "store_timeout_seconds": 5,
            "semantic_timeout_seconds": 1,
        },
        safety={"confirmation_token": TOKEN, "confirmation_token_env": None},
        llm={"provider": "none"},
    )
