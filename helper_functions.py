# helper_functions.py
import logging
from typing import Any, Dict, List, Optional
from pydantic import ValidationError
from shared.contracts import (
    OneSymbol,
    TwoSymbols,
    StockPricesRequest,
    SymbolResult,
    StockData,
    StockDataError,
    RelStockData,
    SingleStockResponse,
    SingleStockErrorResponse,
    PairStockResponse,
    ApiError,
)

# Use logger
logger = logging.getLogger(__name__)

PAIR_ERROR_MESSAGE = "External API error: one or more stocks could not be fetched"


class InvalidStockRequest(ValueError):
    """The query does not name exactly one or two stock symbols."""


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def parse_like_flag(value: Optional[str]) -> bool:
    """Only the literal string 'true' counts as a like."""
    return value == 'true'


def client_id_from_request(forwarded_for: Optional[str], remote_addr: Optional[str]) -> str:
    """
    Derives the liker identity: the first entry of X-Forwarded-For when the
    header is present, otherwise the peer address of the connection. A blank
    first entry counts as no header.
    """
    if forwarded_for:
        first = forwarded_for.split(',')[0].strip()
        if first:
            return first
    return remote_addr or ''


def parse_stock_prices_request(stocks: List[str]) -> StockPricesRequest:
    """
    Turns the repeated ?stock= query values into a request variant.

    Args:
        stocks: Raw values in query order (may be empty).

    Returns:
        OneSymbol or TwoSymbols with uppercased symbols, in request order.

    Raises:
        InvalidStockRequest: If, after dropping blank values, there are not
        exactly one or two symbols.
    """
    symbols = [normalize_symbol(s) for s in stocks if s and s.strip()]
    if len(symbols) == 1:
        return OneSymbol(symbol=symbols[0])
    if len(symbols) == 2:
        return TwoSymbols(first=symbols[0], second=symbols[1])
    if not symbols:
        raise InvalidStockRequest("Query parameter 'stock' is required")
    raise InvalidStockRequest(f"At most two stocks can be compared, got {len(symbols)}")


def build_single_response(result: SymbolResult) -> Dict[str, Any]:
    """
    Shapes the response for a one-symbol lookup. A failed quote yields only
    the reason and the symbol; price and likes are omitted.
    """
    if result.error is not None:
        return SingleStockErrorResponse(
            stockData=StockDataError(error=result.error, stock=result.stock)
        ).model_dump()
    return SingleStockResponse(
        stockData=StockData(stock=result.stock, price=result.price, likes=result.likes)
    ).model_dump()


def build_pair_response(first: SymbolResult, second: SymbolResult) -> Dict[str, Any]:
    """
    Shapes the response for a two-symbol comparison, in request order.
    Any failed quote discards both results in favour of a single error.
    """
    if first.error is not None or second.error is not None:
        logger.warning(
            f"Pair lookup {first.stock}/{second.stock} failed: "
            f"{first.stock}={first.error!r}, {second.stock}={second.error!r}"
        )
        return ApiError(error=PAIR_ERROR_MESSAGE).model_dump()
    try:
        payload = PairStockResponse(stockData=[
            RelStockData(stock=first.stock, price=first.price, rel_likes=first.likes - second.likes),
            RelStockData(stock=second.stock, price=second.price, rel_likes=second.likes - first.likes),
        ])
    except ValidationError as e:
        logger.error(f"Pair response for {first.stock}/{second.stock} failed contract validation: {e}")
        raise
    return payload.model_dump()
