"""Feed reconciliation engine: match, decide, mutate, report."""

from __future__ import annotations

from .events import ProgressEvent, ProgressEventType
from .executor import (
    CreateResult,
    IncompleteCreateError,
    MutationExecutor,
    UpdateResult,
    nothing_to_push,
    price_unchanged,
    stock_unchanged,
    validate_prices,
)
from .gateway import CatalogGateway
from .matcher import (
    CatalogMatcher,
    MatchCache,
    QueryTier,
    SearchQuery,
    build_search_query,
    normalize_text,
)
from .options import OptionSchema, capacity_of, derive_options
from .pipeline import ReconciliationPipeline, SyncReport
from .responses import GraphQLResult, normalize_response
from .retry import BackoffPolicy, retry_async
from .stats import GroupError, PipelineStats

__all__ = [
    "BackoffPolicy",
    "CatalogGateway",
    "CatalogMatcher",
    "CreateResult",
    "GraphQLResult",
    "GroupError",
    "IncompleteCreateError",
    "MatchCache",
    "MutationExecutor",
    "OptionSchema",
    "PipelineStats",
    "ProgressEvent",
    "ProgressEventType",
    "QueryTier",
    "ReconciliationPipeline",
    "SearchQuery",
    "SyncReport",
    "UpdateResult",
    "build_search_query",
    "capacity_of",
    "derive_options",
    "normalize_response",
    "normalize_text",
    "nothing_to_push",
    "price_unchanged",
    "retry_async",
    "stock_unchanged",
    "validate_prices",
]
