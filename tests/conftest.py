# tests/conftest.py
"""
Pytest configuration and shared fixtures for the stock price checker tests
Centralizes the in-memory stocks collection, the Flask client and quote stubs
"""

import os
import sys
import threading
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from pymongo.errors import DuplicateKeyError

# Ensure local imports resolve when running from repo root
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from shared.contracts import QuoteResult

# -------------------------------------------------------------------
# Environment helpers
# -------------------------------------------------------------------

@pytest.fixture(autouse=True)
def ensure_test_env(monkeypatch):
    """Keep any accidental DB access on the test database."""
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("TEST_DB_NAME", "test_stock_price_checker")
    monkeypatch.delenv("LOG_DIR", raising=False)
    yield

# -------------------------------------------------------------------
# In-memory stocks collection
# -------------------------------------------------------------------

class InMemoryStocksCollection:
    """
    Test double for the subset of pymongo.collection.Collection used by
    LikeLedger: find_one_and_update with $addToSet/$setOnInsert.
    Symbol uniqueness is enforced like the unique index would.
    """

    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.duplicate_key_failures = 0

    def find_one_and_update(self, filter, update, upsert=False, return_document=None, projection=None):
        symbol = filter["symbol"]
        with self._lock:
            if self.duplicate_key_failures:
                self.duplicate_key_failures -= 1
                # Simulate losing a creation race: the winner's record now exists
                self.docs.setdefault(symbol, {"symbol": symbol, "likes": []})
                raise DuplicateKeyError("E11000 duplicate key error collection: stocks index: symbol_unique_idx")
            doc = self.docs.get(symbol)
            if doc is None:
                if not upsert:
                    return None
                doc = {"symbol": symbol}
                for field, value in update.get("$setOnInsert", {}).items():
                    doc[field] = list(value)
                self.docs[symbol] = doc
            for field, value in update.get("$addToSet", {}).items():
                values = doc.setdefault(field, [])
                if value not in values:
                    values.append(value)
            return self._project(doc, projection)

    @staticmethod
    def _project(doc: Optional[Dict[str, Any]], projection) -> Optional[Dict[str, Any]]:
        if doc is None:
            return None
        if not projection:
            return {k: (list(v) if isinstance(v, list) else v) for k, v in doc.items()}
        return {k: list(v) if isinstance(v, list) else v for k, v in doc.items() if projection.get(k)}


@pytest.fixture
def stocks_collection() -> InMemoryStocksCollection:
    return InMemoryStocksCollection()

@pytest.fixture
def ledger(stocks_collection):
    from services.like_ledger import LikeLedger
    return LikeLedger(stocks_collection)

@pytest.fixture
def mock_db() -> MagicMock:
    return MagicMock()

# -------------------------------------------------------------------
# Quote stubs
# -------------------------------------------------------------------

@pytest.fixture
def quote_prices() -> Dict[str, Any]:
    """symbol -> price (float) or error reason (str) served by the stub fetcher."""
    return {
        "TSLA": 251.05,
        "GOLD": 17.43,
        "AMZN": 178.22,
        "T": 16.9,
        "MSFT": 420.5,
        "GOOG": 171.11,
        "NOPE": "Unknown symbol",
    }

@pytest.fixture
def stub_quote_fetcher(quote_prices):
    calls: List[str] = []

    def _fetch(symbol: str) -> QuoteResult:
        calls.append(symbol)
        value = quote_prices.get(symbol, "Invalid symbol")
        if isinstance(value, str):
            return QuoteResult(symbol=symbol, error=value)
        return QuoteResult(symbol=symbol, price=value)

    _fetch.calls = calls
    return _fetch

# -------------------------------------------------------------------
# Flask app and client fixtures
# -------------------------------------------------------------------

@pytest.fixture
def app(ledger, stub_quote_fetcher):
    from app import create_app
    flask_app = create_app(ledger=ledger, quote_fetcher=stub_quote_fetcher)
    flask_app.config["TESTING"] = True
    yield flask_app

@pytest.fixture
def client(app):
    return app.test_client()
