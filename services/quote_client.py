# services/quote_client.py
"""
Client for the upstream stock quote proxy.

GET {QUOTE_API_URL}/v1/stock/{symbol}/quote answers either
    { "symbol": "MSFT", "latestPrice": 300.0, ... }
or reports a bad symbol while still returning 200, as
    { "error": "Unknown symbol" }  or the bare JSON string "Invalid symbol".

fetch_quote never raises: every failure is folded into QuoteResult.error
and logged here.
"""

import os
import math
import logging
import requests
from shared.contracts import QuoteResult

logger = logging.getLogger(__name__)

QUOTE_API_URL = os.getenv("QUOTE_API_URL", "https://stock-price-checker-proxy.freecodecamp.rocks")
_TIMEOUT = float(os.getenv("QUOTE_HTTP_TIMEOUT_SECONDS", "10.0"))

HTTP_ERROR_REASON = "External API error or invalid stock symbol"
NETWORK_ERROR_REASON = "Network error or failed to fetch price"

def quote_url(symbol: str) -> str:
    return f"{QUOTE_API_URL}/v1/stock/{symbol}/quote"

def fetch_quote(symbol: str) -> QuoteResult:
    """
    Fetches the latest price for an already-uppercased symbol.

    Args:
        symbol: The stock symbol, e.g. "MSFT".

    Returns:
        QuoteResult with a float price, or with an error reason when the
        transport failed or the proxy rejected the symbol.
    """
    url = quote_url(symbol)
    try:
        resp = requests.get(url, timeout=_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.error(f"Network or fetch error for {symbol}: {e}")
        return QuoteResult(symbol=symbol, error=NETWORK_ERROR_REASON)

    if not 200 <= resp.status_code < 300:
        logger.error(f"Error fetching price for {symbol}: HTTP status {resp.status_code}, Response: {resp.text}")
        return QuoteResult(symbol=symbol, error=HTTP_ERROR_REASON)

    try:
        data = resp.json()
    except ValueError as e:
        logger.error(f"Undecodable quote payload for {symbol}: {e}")
        return QuoteResult(symbol=symbol, error=NETWORK_ERROR_REASON)

    # The proxy answers some unknown symbols with a bare string body
    if isinstance(data, str):
        logger.error(f"External API reported error for {symbol}: {data}")
        return QuoteResult(symbol=symbol, error=data)

    if not isinstance(data, dict):
        logger.error(f"Unexpected quote payload type for {symbol}: {type(data).__name__}")
        return QuoteResult(symbol=symbol, error=HTTP_ERROR_REASON)

    if data.get("error"):
        logger.error(f"External API reported error for {symbol}: {data['error']}")
        return QuoteResult(symbol=symbol, error=str(data["error"]))

    latest_price = data.get("latestPrice")
    try:
        price = float(latest_price)
    except (TypeError, ValueError):
        logger.error(f"Quote payload for {symbol} has no usable latestPrice: {latest_price!r}")
        return QuoteResult(symbol=symbol, error=HTTP_ERROR_REASON)

    # float() accepts "NaN"/"Infinity", which jsonify cannot encode as JSON
    if not math.isfinite(price):
        logger.error(f"Quote payload for {symbol} has a non-finite latestPrice: {latest_price!r}")
        return QuoteResult(symbol=symbol, error=HTTP_ERROR_REASON)

    return QuoteResult(symbol=str(data.get("symbol") or symbol), price=price)
