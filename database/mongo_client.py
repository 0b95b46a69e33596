# database/mongo_client.py
"""
MongoDB client helpers for the stock price checker
Owns the connection settings and the indexes of the stocks collection
"""

import os, sys
from typing import Any, Tuple
from pymongo import MongoClient
from pymongo.collection import Collection

STOCKS_COLLECTION = "stocks"
SYMBOL_INDEX_NAME = "symbol_unique_idx"

def connect() -> Tuple[MongoClient, Any]:
    """
    Establishes connection to MongoDB and returns client and database handle

    Returns:
        Tuple[MongoClient, Database]: MongoDB client and database object

    Raises:
        RuntimeError: If a pytest run would target a non-test database
    """
    MONGO_URI = os.getenv('MONGO_URI', 'mongodb://localhost:27017/')
    if os.getenv("ENV") == "test":
        db_name = os.getenv("TEST_DB_NAME", "test_stock_price_checker")
    else:
        db_name = os.getenv("STOCK_DB", "stock_price_checker")
        # Safety: Prevent test code from accidentally hitting prod
        if "pytest" in sys.modules and "test" not in db_name.lower():
            raise RuntimeError(
                f"Refusing to use prod DB '{db_name}' during test run. "
                f"Set ENV=test or TEST_DB_NAME."
            )
    client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=15000, socketTimeoutMS=45000)
    db = client[db_name]
    return client, db


def initialize_indexes(db: Any) -> None:
    """
    Creates required indexes on collections

    CRITICAL: symbol must be unique. Concurrent first-time likes of the same
    symbol rely on this index to collapse into a single record.

    Args:
        db: MongoDB database handle

    Raises:
        OperationFailure: If index creation fails (e.g. duplicates already stored)
    """
    db[STOCKS_COLLECTION].create_index(
        [("symbol", 1)],
        name=SYMBOL_INDEX_NAME,
        unique=True,
    )


def get_stocks_collection(db: Any) -> Collection:
    """Returns the collection holding one {symbol, likes} document per symbol."""
    return db[STOCKS_COLLECTION]
