"""Engine components: id resolution, typed fetch, outcome routing, export."""

from .expression import ExpressionEvaluator, compile_expression
from .fetcher import FetchResult, Found, KeyFetcher, NotFound, StoreError
from .records import FetchOutcome, Record, Relationship, Transfer
from .thread_pool import ThreadPoolManager

__all__ = [
    "ExpressionEvaluator",
    "FetchOutcome",
    "FetchResult",
    "Found",
    "KeyFetcher",
    "NotFound",
    "Record",
    "Relationship",
    "StoreError",
    "ThreadPoolManager",
    "Transfer",
    "compile_expression",
]
