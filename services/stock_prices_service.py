# services/stock_prices_service.py

"""
Stock price lookup orchestration for GET /api/stock-prices

For every requested symbol the quote lookup and the like ledger update are
independent, so all of them (up to four tasks) run concurrently in a thread
pool and are joined before the response is shaped. Quote failures arrive as
values on QuoteResult; ledger failures are exceptions and propagate from
future.result() to the route.
"""
import os
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Any, List
from shared.contracts import (
    OneSymbol,
    TwoSymbols,
    StockPricesRequest,
    QuoteResult,
    SymbolResult,
)
from helper_functions import build_single_response, build_pair_response
from services.like_ledger import LikeLedger

logger = logging.getLogger(__name__)

_MAX_WORKERS = int(os.getenv("STOCK_LOOKUP_MAX_WORKERS", "4"))

QuoteFetcher = Callable[[str], QuoteResult]


class StockPricesService:
    def __init__(self, ledger: LikeLedger, quote_fetcher: QuoteFetcher, max_workers: int = _MAX_WORKERS):
        self.ledger = ledger
        self.quote_fetcher = quote_fetcher
        self.max_workers = max_workers

    def lookup_symbols(self, symbols: List[str], like: bool, client_id: str) -> List[SymbolResult]:
        """
        Fetches quotes and records likes for all symbols concurrently.

        Returns:
            One SymbolResult per symbol, in the order given.

        Raises:
            LedgerUnavailableError: If any ledger update failed.
        """
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            quote_futures = [executor.submit(self.quote_fetcher, s) for s in symbols]
            like_futures = [
                executor.submit(self.ledger.record_like_and_get_count, s, like, client_id)
                for s in symbols
            ]
            results = []
            for symbol, quote_future, like_future in zip(symbols, quote_futures, like_futures):
                quote = quote_future.result()
                likes = like_future.result()
                results.append(SymbolResult(
                    stock=symbol,
                    price=quote.price if quote.ok else None,
                    likes=likes,
                    error=quote.error,
                ))
        return results

    def lookup(self, request: StockPricesRequest, like: bool, client_id: str) -> Dict[str, Any]:
        """
        Runs the lookup for a parsed request and shapes the JSON body.
        """
        if isinstance(request, OneSymbol):
            logger.info(f"Stock lookup {request.symbol} (like={like})")
            (result,) = self.lookup_symbols([request.symbol], like, client_id)
            return build_single_response(result)
        if isinstance(request, TwoSymbols):
            logger.info(f"Stock comparison {request.first}/{request.second} (like={like})")
            first, second = self.lookup_symbols(request.symbols, like, client_id)
            return build_pair_response(first, second)
        raise TypeError(f"Unsupported stock request type: {type(request).__name__}")
