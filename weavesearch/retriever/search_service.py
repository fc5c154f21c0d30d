"""
Search Service

Facade used by the terminal front end: builds queries from configuration
defaults, runs plain or enhanced searches and saves the output.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from ..common.config import AppConfig
from ..common.schemas import (
    QueryEnhancement,
    ResultSummary,
    SearchMode,
    SearchQuery,
    SearchResponse,
    SearchResult,
)
from .airweave_client import AirweaveClient
from .enhancer import QueryEnhancer
from .output_writer import ResultWriter

logger = logging.getLogger("weavesearch.retriever.search_service")


class SearchService:
    """Plain and LLM-enhanced search over one Airweave collection."""

    def __init__(
        self,
        config: AppConfig,
        gateway: Optional[AirweaveClient] = None,
        enhancer: Optional[QueryEnhancer] = None,
        writer: Optional[ResultWriter] = None,
    ):
        self._config = config
        self.gateway = gateway or AirweaveClient(config.airweave)
        self.enhancer = enhancer or QueryEnhancer(config.llm)
        self.writer = writer or ResultWriter(config.search.output_dir)

    @property
    def output_dir(self) -> Path:
        return self.writer.output_dir

    def build_query(
        self,
        text: str,
        search_mode: Optional[SearchMode] = None,
        limit: Optional[int] = None,
    ) -> SearchQuery:
        return SearchQuery(
            text=text,
            search_mode=search_mode or SearchMode(self._config.search.search_type),
            limit=limit or self._config.search.max_results,
        )

    async def search(
        self,
        text: str,
        search_mode: Optional[SearchMode] = None,
        limit: Optional[int] = None,
    ) -> SearchResponse:
        """Single Airweave search with configuration defaults"""
        return await self.gateway.search(self.build_query(text, search_mode, limit))

    async def enhanced_search(
        self,
        text: str,
        search_mode: Optional[SearchMode] = None,
        limit: Optional[int] = None,
    ) -> Tuple[SearchResponse, QueryEnhancement, ResultSummary]:
        """
        Run the full enhancement pipeline.

        The returned response is the gateway's response for the enhanced
        query, with its results replaced by the re-ranked list.
        """
        responses: List[SearchResponse] = []

        async def search_fn(query_text: str) -> List[SearchResult]:
            response = await self.gateway.search(self.build_query(query_text, search_mode, limit))
            responses.append(response)
            return response.results

        outcome = await self.enhancer.enhanced_search(text, search_fn)

        response = responses[-1].model_copy(
            update={
                "query": text,
                "enhanced_query": outcome.enhancement.enhanced_query,
                "results": outcome.results,
                "total_results": len(outcome.results),
            }
        )
        return response, outcome.enhancement, outcome.summary

    def save(
        self,
        query: str,
        response: SearchResponse,
        enhancement: Optional[QueryEnhancement] = None,
        summary: Optional[ResultSummary] = None,
        fmt: Optional[str] = None,
    ) -> Path:
        return self.writer.save(
            query,
            response,
            enhancement=enhancement,
            summary=summary,
            fmt=fmt or self._config.search.output_format,
        )
