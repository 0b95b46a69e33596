# shared/contracts.py
"""
This module defines the Pydantic models that serve as the formal data contracts
for the stock price checker: the result of a quote lookup, the per-symbol
lookup result, the parsed request variants and the JSON response bodies of
GET /api/stock-prices.
"""

from typing import List, Literal, Optional, TypeAlias, Union
from pydantic import BaseModel, Field

# --- Contract 1: Quote lookup ---
class QuoteResult(BaseModel):
    """Outcome of one upstream quote lookup. Exactly one of price/error is set."""
    symbol: str
    price: Optional[float] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# --- Contract 2: Per-symbol lookup result ---
class SymbolResult(BaseModel):
    """Quote and like ledger results combined for one requested symbol."""
    stock: str
    price: Optional[float] = None # None exactly when the quote failed
    likes: int = 0
    error: Optional[str] = None


# --- Contract 3: Parsed request, tagged by arity ---
class OneSymbol(BaseModel):
    kind: Literal['one'] = 'one'
    symbol: str

class TwoSymbols(BaseModel):
    kind: Literal['two'] = 'two'
    first: str
    second: str

    @property
    def symbols(self) -> List[str]:
        return [self.first, self.second]

StockPricesRequest: TypeAlias = Union[OneSymbol, TwoSymbols]


# --- Contract 4: Response bodies ---
class StockData(BaseModel):
    stock: str
    price: float
    likes: int

class StockDataError(BaseModel):
    error: str
    stock: str

class RelStockData(BaseModel):
    stock: str
    price: float
    rel_likes: int

class SingleStockResponse(BaseModel):
    stockData: StockData

class SingleStockErrorResponse(BaseModel):
    stockData: StockDataError

class PairStockResponse(BaseModel):
    stockData: List[RelStockData] = Field(..., min_length=2, max_length=2)

class ApiError(BaseModel):
    """Top-level error body."""
    error: str
