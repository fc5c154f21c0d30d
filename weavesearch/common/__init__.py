"""
weavesearch Common Module

Shared infrastructure: configuration, LLM access and schemas.
"""

from .config import AppConfig, load_config
from .llm_client import LLMClient, TextGenerator

__all__ = [
    "AppConfig",
    "load_config",
    "LLMClient",
    "TextGenerator",
]
