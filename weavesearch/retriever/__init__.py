"""
Retriever - Airweave search with optional LLM enhancement

Key Components:
- AirweaveClient: Outbound search call, never raises
- normalizer: Maps arbitrary Airweave payloads to SearchResults
- QueryEnhancer: LLM query rewrite, re-rank and summary with fallbacks
- SearchService: Facade combining the above with the ResultWriter

Pipeline:
1. Rewrite the user query (optional)
2. Search the collection with the rewritten query
3. Re-rank the hits (optional)
4. Summarize the top hits (optional)
"""

from .airweave_client import (
    AirweaveClient,
    AirweaveError,
    ConnectionStatus,
    MalformedResponseError,
    NotConfiguredError,
    TransportError,
    UpstreamError,
)
from .enhancer import QueryEnhancer
from .output_writer import ResultWriter
from .search_service import SearchService

__all__ = [
    "AirweaveClient",
    "AirweaveError",
    "ConnectionStatus",
    "MalformedResponseError",
    "NotConfiguredError",
    "TransportError",
    "UpstreamError",
    "QueryEnhancer",
    "ResultWriter",
    "SearchService",
]
