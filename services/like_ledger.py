# services/like_ledger.py

"""
Like ledger: one {symbol, likes} document per symbol, where likes is the set
of client identifiers that liked it.

Records are created lazily on first lookup. Find-or-create and the unique
append happen in a single find_one_and_update upsert, so concurrent likes of
an existing symbol never lose an update. The unique index on symbol
(database.mongo_client.initialize_indexes) resolves the remaining race of two
first-time upserts; the loser is retried as an update of the winner's record.
"""
import logging
from typing import Any, Dict
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

logger = logging.getLogger(__name__)


class LedgerUnavailableError(Exception):
    """Raised when the stocks collection cannot be read or written."""


class LikeLedger:
    def __init__(self, collection: Collection):
        self.collection = collection

    def record_like_and_get_count(self, symbol: str, like: bool, client_id: str) -> int:
        """
        Finds or creates the record for symbol, adds client_id to its likers
        when like is True, and returns the number of distinct likers after
        the update.

        Args:
            symbol: Normalized (uppercase) stock symbol
            like: Whether this request likes the symbol
            client_id: Identifier of the requesting client (its IP address)

        Raises:
            LedgerUnavailableError: On any storage failure
        """
        update = self._build_update(like, client_id)
        try:
            try:
                doc = self._upsert(symbol, update)
            except DuplicateKeyError:
                # Another request created the record between our match and insert
                logger.info(f"Concurrent creation of stock record for {symbol}; retrying as update")
                doc = self._upsert(symbol, update)
        except PyMongoError as e:
            logger.error(f"Like ledger failure for {symbol}: {e}")
            raise LedgerUnavailableError(f"Like storage failed for {symbol}") from e

        count = len((doc or {}).get("likes") or [])
        logger.debug(f"{symbol}: like={like} from {client_id}, likes now {count}")
        return count

    @staticmethod
    def _build_update(like: bool, client_id: str) -> Dict[str, Any]:
        if like:
            # $addToSet creates likes=[client_id] on insert and is a no-op for a repeat liker
            return {"$addToSet": {"likes": client_id}}
        return {"$setOnInsert": {"likes": []}}

    def _upsert(self, symbol: str, update: Dict[str, Any]) -> Dict[str, Any]:
        return self.collection.find_one_and_update(
            {"symbol": symbol},
            update,
            upsert=True,
            return_document=ReturnDocument.AFTER,
            projection={"likes": 1, "_id": 0},
        )
