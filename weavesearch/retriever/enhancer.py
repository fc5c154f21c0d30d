"""
Query Enhancer

LLM-backed refinement around a search call:

1. enhance_query: rewrite the user query for semantic search
2. (caller's search function runs with the enhanced query)
3. rerank_results: reorder the hits by relevance
4. summarize_results: summary, key points and topics of the top hits

Every stage is optional. With no LLM configured, or when a call fails or
returns unusable text, the stage returns its input (or a placeholder), so
the plain search result is always complete.
"""

import asyncio
import functools
import logging
from typing import Awaitable, Callable, List, Optional

from ..common.config import LLMConfig
from ..common.llm_client import LLMClient, TextGenerator
from ..common.llm_utils import (
    extract_index_list,
    extract_json_object,
    order_by_indices,
    string_list,
)
from ..common.schemas import (
    EnhancedSearchResult,
    QueryEnhancement,
    ResultSummary,
    SearchResult,
)

logger = logging.getLogger("weavesearch.retriever.enhancer")

SearchFn = Callable[[str], Awaitable[List[SearchResult]]]

SUMMARY_LIMIT = 5
SUMMARY_CONTENT_CHARS = 500
RERANK_CONTENT_CHARS = 200

NO_RESULTS_SUMMARY = "No results to summarize."
EMPTY_SUMMARY = "Unable to generate summary."
FAILED_SUMMARY = "Failed to generate summary."


ENHANCE_SYSTEM = "You are a search query optimization expert."

ENHANCE_PROMPT = """Enhance the following search query for better semantic search results in a Notion knowledge base.

User Query: "{query}"

Instructions:
1. Analyze the user's intent
2. Expand the query with relevant synonyms and related terms
3. Add context that might help find relevant Notion pages
4. Keep the enhanced query concise but comprehensive

Return your response in this exact JSON format (no markdown, just plain JSON):
{{
  "original_query": "the original query",
  "enhanced_query": "the optimized query for semantic search",
  "keywords": ["key", "terms", "extracted"],
  "intent": "brief description of user intent"
}}

JSON response only:"""


RERANK_SYSTEM = "You are a relevance ranking expert."

RERANK_PROMPT = """Re-rank the following search results based on their relevance to the query: "{query}"

Results (in order of original ranking):
{results}

Return ONLY a JSON array of indices in order of most relevant to least relevant.
Example: [2, 0, 3, 1, 4]

Response:"""


SUMMARY_SYSTEM = "You are a knowledge synthesis expert."

SUMMARY_PROMPT = """Summarize the following search results related to the query: "{query}"

Search Results:
{results}

Instructions:
1. Provide a concise summary of the information found
2. Extract 3-5 key points
3. Identify relevant topics or themes

Return your response in this exact JSON format:
{{
  "summary": "A concise summary of the search results",
  "key_points": ["Point 1", "Point 2", "Point 3"],
  "relevant_topics": ["Topic 1", "Topic 2"]
}}

JSON response only:"""


class QueryEnhancer:
    """
    Runs the optional LLM stages of a search.

    The provider and its key are read from the passed LLMConfig on every
    call. Without an injected client, an LLMClient is built on first use and
    rebuilt whenever the provider, key or model changes.
    """

    def __init__(
        self,
        config: LLMConfig,
        llm_client: Optional[TextGenerator] = None,
    ):
        """
        Initialize the enhancer.

        Args:
            config: LLM settings (shared, may change between queries)
            llm_client: Fixed text generator, bypassing provider selection
        """
        self._config = config
        self._injected = llm_client
        self._client: Optional[TextGenerator] = None
        self._client_key: Optional[tuple] = None

    @property
    def provider(self) -> str:
        return self._config.provider

    def is_configured(self) -> bool:
        """The active provider has an API key"""
        return bool(self._config.active_api_key())

    def _get_client(self) -> TextGenerator:
        if self._injected is not None:
            return self._injected

        key = (self._config.provider, self._config.active_api_key(), self._config.active_model())
        if self._client is None or key != self._client_key:
            self._client = LLMClient.from_config(self._config)
            self._client_key = key
        return self._client

    async def _generate(self, prompt: str, system: str, max_tokens: int = 1024) -> str:
        """One LLM call, off the event loop"""
        client = self._get_client()
        loop = asyncio.get_running_loop()
        call = functools.partial(
            client.generate,
            prompt,
            system=system,
            max_tokens=max_tokens,
            timeout=self._config.timeout,
        )
        return await loop.run_in_executor(None, call)

    async def enhance_query(self, query: str) -> QueryEnhancement:
        """
        Rewrite a query for better semantic recall.

        Returns the identity enhancement when unconfigured or on any failure.
        """
        if not self.is_configured():
            logger.info("AI enhancement not configured, using original query")
            return QueryEnhancement.identity(query)

        try:
            raw = await self._generate(ENHANCE_PROMPT.format(query=query), ENHANCE_SYSTEM, max_tokens=512)
            data = extract_json_object(raw)
        except Exception as e:
            logger.warning("Query enhancement failed: %s", e)
            return QueryEnhancement.identity(query)

        enhanced = data.get("enhanced_query")
        intent = data.get("intent")
        return QueryEnhancement(
            original_query=query,
            enhanced_query=enhanced.strip() if isinstance(enhanced, str) and enhanced.strip() else query,
            keywords=string_list(data.get("keywords")),
            intent=str(intent) if intent else "search",
        )

    async def rerank_results(self, results: List[SearchResult], query: str) -> List[SearchResult]:
        """
        Reorder results by LLM-judged relevance.

        The output is always a permutation of the input: nothing is dropped
        or duplicated whatever the model answers.
        """
        if not self.is_configured() or len(results) < 2:
            return results

        listing = "\n".join(
            f"[{i}] Score: {r.score:.4f}, Content: {r.content[:RERANK_CONTENT_CHARS]}"
            for i, r in enumerate(results)
        )

        try:
            raw = await self._generate(
                RERANK_PROMPT.format(query=query, results=listing), RERANK_SYSTEM, max_tokens=256
            )
            indices = extract_index_list(raw)
        except Exception as e:
            logger.warning("Re-ranking failed: %s", e)
            return results

        order = order_by_indices(len(results), indices)
        return [results[i] for i in order]

    async def summarize_results(self, results: List[SearchResult], query: str) -> ResultSummary:
        """Summarize the top results; placeholder summary on any failure"""
        if not self.is_configured() or not results:
            return ResultSummary.placeholder(NO_RESULTS_SUMMARY)

        context = "\n\n".join(
            f"[{i}] Source: {r.source}\nContent: {r.content[:SUMMARY_CONTENT_CHARS]}"
            for i, r in enumerate(results[:SUMMARY_LIMIT], 1)
        )

        try:
            raw = await self._generate(SUMMARY_PROMPT.format(query=query, results=context), SUMMARY_SYSTEM)
            data = extract_json_object(raw)
        except Exception as e:
            logger.warning("Summarization failed: %s", e)
            return ResultSummary.placeholder(FAILED_SUMMARY)

        summary = data.get("summary")
        return ResultSummary(
            summary=str(summary) if summary else EMPTY_SUMMARY,
            key_points=string_list(data.get("key_points")),
            relevant_topics=string_list(data.get("relevant_topics")),
        )

    async def enhanced_search(self, query: str, search_fn: SearchFn) -> EnhancedSearchResult:
        """
        Full pipeline, strictly sequential:
        enhance → search_fn(enhanced query) → re-rank → summarize.
        """
        enhancement = await self.enhance_query(query)

        results = await search_fn(enhancement.enhanced_query)

        if results:
            results = await self.rerank_results(results, query)

        summary = await self.summarize_results(results, query)

        return EnhancedSearchResult(enhancement=enhancement, results=results, summary=summary)
