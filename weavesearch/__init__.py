"""
weavesearch

Terminal search over an Airweave collection with optional LLM enhancement.

Philosophy:
- The Airweave search alone always produces a complete answer
- LLM stages (query rewrite, re-rank, summary) are additive and fall back
  to their input on any failure
- Unknown response shapes are normalized, never rejected

Usage:
    from weavesearch.common import load_config
    from weavesearch.retriever import AirweaveClient, QueryEnhancer, SearchService
"""

__version__ = "0.1.0"
