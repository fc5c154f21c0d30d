"""
Tests for QueryEnhancer

The LLM is a Mock whose generate() returns canned text or raises.
"""

from unittest.mock import AsyncMock, Mock

import pytest


def _llm_config(provider="google", key="g-key"):
    from weavesearch.common.config import LLMConfig

    config = LLMConfig(provider=provider)
    setattr(config, f"{provider}_api_key", key)
    return config


def _results(n):
    from weavesearch.common.schemas import SearchResult

    return [
        SearchResult(id=f"r{i}", content=f"Content number {i}", source="notion", score=1.0 - i / 10)
        for i in range(n)
    ]


def _enhancer(response=None, error=None, config=None):
    from weavesearch.retriever.enhancer import QueryEnhancer

    llm = Mock()
    llm.is_available = True
    if error is not None:
        llm.generate.side_effect = error
    else:
        llm.generate.return_value = response
    return QueryEnhancer(config or _llm_config(), llm_client=llm), llm


class TestConfiguration:

    def test_configured_follows_active_provider_key(self):
        from weavesearch.retriever.enhancer import QueryEnhancer

        config = _llm_config("openai", "sk-1")
        enhancer = QueryEnhancer(config)
        assert enhancer.is_configured() is True

        config.provider = "anthropic"
        assert enhancer.is_configured() is False

        config.anthropic_api_key = "ant-1"
        assert enhancer.is_configured() is True

    def test_unconfigured_builds_no_client(self):
        from weavesearch.retriever.enhancer import QueryEnhancer
        from weavesearch.common.config import LLMConfig

        enhancer = QueryEnhancer(LLMConfig(provider="google"))
        assert enhancer.is_configured() is False
        assert enhancer._client is None


class TestEnhanceQuery:

    @pytest.mark.asyncio
    async def test_unconfigured_returns_identity_without_call(self):
        from weavesearch.common.config import LLMConfig
        from weavesearch.common.schemas import QueryEnhancement

        enhancer, llm = _enhancer('{"enhanced_query": "x"}', config=LLMConfig(provider="openai"))

        result = await enhancer.enhance_query("team offsite")

        assert result == QueryEnhancement.identity("team offsite")
        assert result.intent == "search"
        llm.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_parses_json_with_preamble(self):
        enhancer, _ = _enhancer(
            'Sure! Here you go:\n{"original_query": "offsite", '
            '"enhanced_query": "team offsite planning agenda venue", '
            '"keywords": ["offsite", "agenda"], "intent": "find planning docs"}'
        )

        result = await enhancer.enhance_query("offsite")

        assert result.original_query == "offsite"
        assert result.enhanced_query == "team offsite planning agenda venue"
        assert result.keywords == ["offsite", "agenda"]
        assert result.intent == "find planning docs"

    @pytest.mark.asyncio
    async def test_missing_fields_fall_back(self):
        enhancer, _ = _enhancer('{"keywords": "budget"}')

        result = await enhancer.enhance_query("budget")

        assert result.enhanced_query == "budget"
        assert result.keywords == ["budget"]
        assert result.intent == "search"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        "I cannot help with that.",
        '{"enhanced_query": "broken',
        "{not json at all}",
        "",
    ])
    async def test_unusable_response_returns_identity(self, response):
        from weavesearch.common.schemas import QueryEnhancement

        enhancer, _ = _enhancer(response)

        assert await enhancer.enhance_query("q") == QueryEnhancement.identity("q")

    @pytest.mark.asyncio
    async def test_transport_failure_returns_identity(self, caplog):
        import logging
        from weavesearch.common.schemas import QueryEnhancement

        enhancer, _ = _enhancer(error=ConnectionError("network down"))

        with caplog.at_level(logging.WARNING, logger="weavesearch.retriever.enhancer"):
            result = await enhancer.enhance_query("q")

        assert result == QueryEnhancement.identity("q")
        assert "Query enhancement failed" in caplog.text

    @pytest.mark.asyncio
    async def test_unavailable_client_returns_identity(self):
        from weavesearch.common.schemas import QueryEnhancement

        enhancer, _ = _enhancer(error=RuntimeError("LLM client is not available"))

        assert await enhancer.enhance_query("q") == QueryEnhancement.identity("q")


class TestRerank:

    @pytest.mark.asyncio
    async def test_reorders_by_model_indices(self):
        enhancer, _ = _enhancer("[2, 0, 1]")
        results = _results(3)

        ranked = await enhancer.rerank_results(results, "q")

        assert [r.id for r in ranked] == ["r2", "r0", "r1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        "[3, 1, 0, 2, 4]",           # valid permutation
        "[4, 4, 1]",                 # subset with repeats
        "[9, 7, 12]",                # all out of range
        "[1, 99, 0]",                # partially out of range
        "Order: [2, 1] then [0]",    # first span only
        "no idea",                   # unparsable
        "[1,,2]",                    # malformed array
        "[-1, 2]",                   # negative index
    ])
    async def test_output_is_permutation_of_input(self, response):
        enhancer, _ = _enhancer(response)
        results = _results(5)

        ranked = await enhancer.rerank_results(results, "q")

        assert sorted(r.id for r in ranked) == sorted(r.id for r in results)
        assert len(ranked) == len(results)

    @pytest.mark.asyncio
    async def test_subset_appends_missing_in_original_order(self):
        enhancer, _ = _enhancer("[3, 3, 1]")

        ranked = await enhancer.rerank_results(_results(5), "q")

        assert [r.id for r in ranked] == ["r3", "r1", "r0", "r2", "r4"]

    @pytest.mark.asyncio
    async def test_failure_keeps_input_order(self):
        enhancer, _ = _enhancer(error=TimeoutError("slow"))
        results = _results(4)

        assert await enhancer.rerank_results(results, "q") == results

    @pytest.mark.asyncio
    async def test_single_result_skips_llm(self):
        enhancer, llm = _enhancer("[0]")
        results = _results(1)

        assert await enhancer.rerank_results(results, "q") == results
        llm.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_prompt_lists_rank_score_and_excerpt(self):
        enhancer, llm = _enhancer("[1, 0]")

        await enhancer.rerank_results(_results(2), "budget")

        prompt = llm.generate.call_args.args[0]
        assert '"budget"' in prompt
        assert "[0] Score: 1.0000, Content: Content number 0" in prompt
        assert "[1] Score: 0.9000, Content: Content number 1" in prompt


class TestSummarize:

    @pytest.mark.asyncio
    async def test_parses_summary(self):
        enhancer, _ = _enhancer(
            '```json\n{"summary": "Offsite is in May.", "key_points": ["May 12", "Lisbon"], '
            '"relevant_topics": ["events"]}\n```'
        )

        summary = await enhancer.summarize_results(_results(2), "offsite")

        assert summary.summary == "Offsite is in May."
        assert summary.key_points == ["May 12", "Lisbon"]
        assert summary.relevant_topics == ["events"]

    @pytest.mark.asyncio
    async def test_empty_results_placeholder(self):
        enhancer, llm = _enhancer("{}")

        summary = await enhancer.summarize_results([], "q")

        assert summary.summary == "No results to summarize."
        assert summary.key_points == []
        llm.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_unconfigured_placeholder(self):
        from weavesearch.common.config import LLMConfig

        enhancer, llm = _enhancer("{}", config=LLMConfig(provider="anthropic"))

        summary = await enhancer.summarize_results(_results(3), "q")

        assert summary.summary == "No results to summarize."
        assert summary.key_points == []
        assert summary.relevant_topics == []
        llm.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_placeholder(self):
        enhancer, _ = _enhancer(error=ValueError("quota exceeded"))

        summary = await enhancer.summarize_results(_results(3), "q")

        assert summary.summary == "Failed to generate summary."
        assert summary.key_points == []
        assert summary.relevant_topics == []

    @pytest.mark.asyncio
    async def test_no_json_placeholder(self):
        enhancer, _ = _enhancer("The results talk about offsites.")

        summary = await enhancer.summarize_results(_results(1), "q")

        assert summary.summary == "Failed to generate summary."

    @pytest.mark.asyncio
    async def test_missing_summary_field(self):
        enhancer, _ = _enhancer('{"key_points": ["a"]}')

        summary = await enhancer.summarize_results(_results(1), "q")

        assert summary.summary == "Unable to generate summary."
        assert summary.key_points == ["a"]

    @pytest.mark.asyncio
    async def test_prompt_uses_top_five_truncated(self):
        from weavesearch.common.schemas import SearchResult

        enhancer, llm = _enhancer('{"summary": "s"}')
        results = [SearchResult(id=str(i), content=f"{i}" + "x" * 800) for i in range(7)]

        await enhancer.summarize_results(results, "q")

        prompt = llm.generate.call_args.args[0]
        assert "[5] Source: notion" in prompt
        assert "[6] Source" not in prompt
        assert "x" * 500 not in prompt
        assert "0" + "x" * 499 in prompt


class TestEnhancedSearch:

    @pytest.mark.asyncio
    async def test_stages_run_in_order(self):
        from weavesearch.retriever.enhancer import QueryEnhancer

        responses = [
            '{"enhanced_query": "expanded query", "keywords": ["k"], "intent": "i"}',
            "[1, 0]",
            '{"summary": "done", "key_points": [], "relevant_topics": []}',
        ]
        llm = Mock()
        llm.generate.side_effect = responses
        enhancer = QueryEnhancer(_llm_config(), llm_client=llm)
        results = _results(2)
        search_fn = AsyncMock(return_value=results)

        outcome = await enhancer.enhanced_search("query", search_fn)

        search_fn.assert_awaited_once_with("expanded query")
        assert outcome.enhancement.enhanced_query == "expanded query"
        assert [r.id for r in outcome.results] == ["r1", "r0"]
        assert outcome.summary.summary == "done"
        assert llm.generate.call_count == 3
        # re-rank and summary are asked about the user's own words
        assert '"query"' in llm.generate.call_args_list[1].args[0]
        assert '"query"' in llm.generate.call_args_list[2].args[0]

    @pytest.mark.asyncio
    async def test_role_goes_to_system_instruction(self):
        from weavesearch.retriever.enhancer import (
            ENHANCE_SYSTEM,
            RERANK_SYSTEM,
            SUMMARY_SYSTEM,
            QueryEnhancer,
        )

        llm = Mock()
        llm.generate.side_effect = ['{"enhanced_query": "e"}', "[1, 0]", '{"summary": "s"}']
        enhancer = QueryEnhancer(_llm_config(), llm_client=llm)

        await enhancer.enhanced_search("q", AsyncMock(return_value=_results(2)))

        systems = [call.kwargs["system"] for call in llm.generate.call_args_list]
        assert systems == [ENHANCE_SYSTEM, RERANK_SYSTEM, SUMMARY_SYSTEM]
        for call in llm.generate.call_args_list:
            assert "You are" not in call.args[0]

    @pytest.mark.asyncio
    async def test_unconfigured_passes_through(self):
        from weavesearch.common.config import LLMConfig
        from weavesearch.retriever.enhancer import QueryEnhancer

        llm = Mock()
        enhancer = QueryEnhancer(LLMConfig(provider="google"), llm_client=llm)
        results = _results(3)
        search_fn = AsyncMock(return_value=results)

        outcome = await enhancer.enhanced_search("original", search_fn)

        search_fn.assert_awaited_once_with("original")
        assert outcome.enhancement.enhanced_query == "original"
        assert outcome.enhancement.keywords == []
        assert outcome.results == results
        assert outcome.summary.summary == "No results to summarize."
        llm.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_all_llm_calls_failing_keeps_search_result(self):
        enhancer, llm = _enhancer(error=RuntimeError("boom"))
        results = _results(3)

        outcome = await enhancer.enhanced_search("q", AsyncMock(return_value=results))

        assert outcome.enhancement.enhanced_query == "q"
        assert outcome.results == results
        assert outcome.summary.summary == "Failed to generate summary."
        # enhance, re-rank and summarize each attempted once
        assert llm.generate.call_count == 3

    @pytest.mark.asyncio
    async def test_empty_results_skip_rerank(self):
        enhancer, llm = _enhancer('{"enhanced_query": "e"}')

        outcome = await enhancer.enhanced_search("q", AsyncMock(return_value=[]))

        assert outcome.results == []
        assert outcome.summary.summary == "No results to summarize."
        assert llm.generate.call_count == 1
