"""
weavesearch Schemas

Canonical search records and their text rendering.
"""

from .search import (
    SearchMode,
    SearchQuery,
    SearchResult,
    SearchResponse,
    QueryEnhancement,
    ResultSummary,
    EnhancedSearchResult,
)
from .templates import render_search_report, render_result, REPORT_TEMPLATE

__all__ = [
    "SearchMode",
    "SearchQuery",
    "SearchResult",
    "SearchResponse",
    "QueryEnhancement",
    "ResultSummary",
    "EnhancedSearchResult",
    "render_search_report",
    "render_result",
    "REPORT_TEMPLATE",
]
