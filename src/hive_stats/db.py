"""MongoDB helpers and atomic batch write utility.

Centralizes creation of Mongo clients, the index layout of the two stored
collections, and the batch writer used by both stores.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import certifi
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.operations import ReplaceOne

log = logging.getLogger(__name__)

WEEKLY_STATS = "weekly_stats"
PRICE_HISTORY = "price_history"


def get_client(uri: str, tls: bool = True) -> MongoClient:
    """Return a configured PyMongo MongoClient for the provided URI.

    Args:
        uri: MongoDB connection URI.
        tls: Connect over TLS using the certifi CA bundle (Atlas).

    Returns:
        Configured MongoClient instance.
    """
    options: dict[str, Any] = {
        "serverSelectionTimeoutMS": 30000,
        "socketTimeoutMS": 30000,
        "connectTimeoutMS": 30000,
    }
    if tls:
        options.update(tls=True, tlsCAFile=certifi.where())
    return MongoClient(uri, **options)


def get_db(
    client: MongoClient[dict[str, Any]],
    db_name: str,
) -> Database[dict[str, Any]]:
    """Return the named Database instance from a MongoClient.

    Args:
        client: PyMongo MongoClient.
        db_name: Database name.

    Returns:
        A Database object.
    """
    return client[db_name]


def ensure_indexes(db: Database[dict[str, Any]]) -> None:
    """Create the unique key indexes both stores rely on for upserts."""
    db[WEEKLY_STATS].create_index(
        [("year", ASCENDING), ("week", ASCENDING)], unique=True, name="year_week"
    )
    db[WEEKLY_STATS].create_index([("week_start", ASCENDING)], name="week_start")
    db[PRICE_HISTORY].create_index([("date", ASCENDING)], unique=True, name="date")
    db[PRICE_HISTORY].create_index(
        [("coin", ASCENDING), ("date", ASCENDING)], name="coin_date"
    )


def atomic_bulk_write(
    collection: Collection[dict[str, Any]],
    ops: Sequence[ReplaceOne],
    transactional: bool = True,
) -> int:
    """Apply a batch of replace-upserts as a single unit.

    With `transactional` the batch runs inside a multi-document transaction,
    so concurrent readers see either none or all of it and any failure rolls
    the whole batch back. Transactions need a replica set; without them the
    batch is a single ordered `bulk_write`, which stops at the first error.

    Errors are not swallowed: `PyMongoError` propagates to the caller.

    Args:
        collection: Target PyMongo collection.
        ops: Replace-upsert operations for the batch.
        transactional: Wrap the batch in a transaction.

    Returns:
        Number of operations in the batch.
    """
    if not ops:
        return 0

    if not transactional:
        collection.bulk_write(list(ops), ordered=True)
        return len(ops)

    client = collection.database.client
    with client.start_session() as session:
        session.with_transaction(
            lambda s: collection.bulk_write(list(ops), ordered=True, session=s)
        )
    log.debug("Committed %d ops to %s", len(ops), collection.name)
    return len(ops)
