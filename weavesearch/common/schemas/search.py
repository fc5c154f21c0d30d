"""
Search Schemas

Canonical records exchanged between the Airweave gateway, the LLM
enhancement stages and the terminal front end. All of them are value
objects scoped to a single query.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchMode(str, Enum):
    """Airweave search types"""
    HYBRID = "hybrid"
    SEMANTIC = "semantic"
    KEYWORD = "keyword"


class SearchQuery(BaseModel):
    """A single user query, fixed once built"""
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1)
    search_mode: SearchMode = Field(default=SearchMode.HYBRID)
    limit: int = Field(default=10, gt=0)

    @field_validator("text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query text must not be blank")
        return value


class SearchResult(BaseModel):
    """
    Canonical search hit, normalized from whatever Airweave returned.

    content and id are always populated; score defaults to 1.0.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    content: str = Field(..., min_length=1)
    source: str = "notion"
    source_type: str = "notion"
    score: float = 1.0
    metadata: Optional[Dict[str, Any]] = None
    url: Optional[str] = None
    title: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SearchResponse(BaseModel):
    """Tagged outcome of one search call; failures carry an error and no results"""
    success: bool
    query: str
    enhanced_query: Optional[str] = None
    search_type: SearchMode = SearchMode.HYBRID
    results: List[SearchResult] = Field(default_factory=list)
    total_results: int = 0
    processing_time: Optional[float] = Field(default=None, description="Milliseconds")
    error: Optional[str] = None

    @classmethod
    def failure(cls, query: SearchQuery, error: str) -> "SearchResponse":
        return cls(
            success=False,
            query=query.text,
            search_type=query.search_mode,
            results=[],
            total_results=0,
            error=error,
        )


class QueryEnhancement(BaseModel):
    """LLM rewrite of a user query"""
    original_query: str
    enhanced_query: str
    keywords: List[str] = Field(default_factory=list)
    intent: str = "search"

    @classmethod
    def identity(cls, query: str) -> "QueryEnhancement":
        """Fallback when enhancement is unavailable or fails"""
        return cls(original_query=query, enhanced_query=query, keywords=[], intent="search")

    @property
    def changed(self) -> bool:
        return self.enhanced_query != self.original_query


class ResultSummary(BaseModel):
    """LLM synthesis of the top results"""
    summary: str
    key_points: List[str] = Field(default_factory=list)
    relevant_topics: List[str] = Field(default_factory=list)

    @classmethod
    def placeholder(cls, text: str) -> "ResultSummary":
        return cls(summary=text, key_points=[], relevant_topics=[])


class EnhancedSearchResult(BaseModel):
    """Output of the enhance → search → re-rank → summarize pipeline"""
    enhancement: QueryEnhancement
    results: List[SearchResult] = Field(default_factory=list)
    summary: ResultSummary
