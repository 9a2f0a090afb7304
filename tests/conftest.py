"""Pytest fixtures to be used by all tests."""

from unittest.mock import MagicMock

import pytest

from spynl_dbaccess import Database, database as database_module
from spynl_queryfilter import QUERY, Sanitizer


@pytest.fixture
def sanitizer():
    """A sanitizer that only allows the logical query operators."""
    return Sanitizer({'query': QUERY.LOGICAL})


@pytest.fixture
def mongo_client(monkeypatch):
    """Replace MongoClient, so no server is needed."""
    client = MagicMock()
    monkeypatch.setattr(database_module, 'MongoClient', client)
    return client


@pytest.fixture
def database(mongo_client):
    return Database(
        'mongodb://localhost:27017',
        'test_db',
        ssl=False,
        max_limit=10,
        max_agg_limit=10,
        max_time_ms=1,
    )


@pytest.fixture
def collection(database):
    """A wrapped collection, pymongo_collection is a mock."""
    return database['users']
