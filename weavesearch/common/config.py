"""
Configuration Management for weavesearch

Loads configuration from a .env file and environment variables.
Credentials may be missing at load time; they can be set later from the
terminal with /set, so nothing here fails on an incomplete setup.
"""

import math
import os
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger("weavesearch.common.config")

DEFAULT_API_URL = "https://api.airweave.ai"
DEFAULT_OUTPUT_DIR = "outputs"

LLM_PROVIDERS = ("google", "openai", "anthropic")
SEARCH_TYPES = ("hybrid", "semantic", "keyword")
OUTPUT_FORMATS = ("json", "text")
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

# Env var holding the key for each provider (first name is the canonical one)
PROVIDER_KEY_ENV = {
    "google": ("GOOGLE_GENERATIVE_AI_API_KEY", "GOOGLE_API_KEY", "GEMINI_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
}


@dataclass
class AirweaveConfig:
    """Airweave search API configuration"""
    api_key: str = ""
    collection_id: str = ""
    api_url: str = DEFAULT_API_URL
    timeout: float = 30.0


@dataclass
class LLMConfig:
    """LLM provider configuration shared by all enhancement stages"""
    provider: str = "google"
    google_api_key: str = ""
    google_model: str = "gemini-2.5-flash"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-haiku-20240307"
    timeout: float = 30.0

    def active_api_key(self) -> str:
        """Key of the currently selected provider ("" if unknown provider)"""
        return getattr(self, f"{self.provider}_api_key", "") or ""

    def active_model(self) -> str:
        return getattr(self, f"{self.provider}_model", "") or ""


@dataclass
class SearchConfig:
    """Search defaults and output settings"""
    search_type: str = "hybrid"
    max_results: int = 10
    output_format: str = "json"
    output_dir: str = DEFAULT_OUTPUT_DIR


@dataclass
class AppConfig:
    """Main weavesearch configuration"""
    airweave: AirweaveConfig = field(default_factory=AirweaveConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    log_level: str = "WARNING"


def _choice(env_var: str, allowed: tuple, fallback: str) -> str:
    """Read a lowercase enum-like value, warning and falling back if invalid"""
    raw = os.getenv(env_var)
    if not raw:
        return fallback
    value = raw.strip().lower()
    if value not in allowed:
        logger.warning('Invalid %s "%s", falling back to "%s"', env_var, raw, fallback)
        return fallback
    return value


def _positive_int(env_var: str, fallback: int) -> int:
    raw = os.getenv(env_var)
    if not raw:
        return fallback
    try:
        value = int(raw)
    except ValueError:
        logger.warning('Invalid %s "%s", falling back to %d', env_var, raw, fallback)
        return fallback
    if value <= 0:
        logger.warning("%s must be positive, falling back to %d", env_var, fallback)
        return fallback
    return value


def _positive_float(env_var: str, fallback: float) -> float:
    raw = os.getenv(env_var)
    if not raw:
        return fallback
    try:
        value = float(raw)
    except ValueError:
        logger.warning('Invalid %s "%s", falling back to %s', env_var, raw, fallback)
        return fallback
    if not math.isfinite(value) or value <= 0:
        logger.warning("%s must be positive, falling back to %s", env_var, fallback)
        return fallback
    return value


def _first_env(names: tuple) -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return ""


def load_config(env_file: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from a .env file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. .env file (env_file, or ./.env when omitted)
    3. Default values
    """
    load_dotenv(dotenv_path=env_file or Path.cwd() / ".env", override=False)

    config = AppConfig()

    config.airweave.api_key = os.getenv("AIRWEAVE_API_KEY", "")
    config.airweave.collection_id = os.getenv("AIRWEAVE_COLLECTION_ID", "")
    config.airweave.api_url = (os.getenv("AIRWEAVE_API_URL") or DEFAULT_API_URL).rstrip("/")
    config.airweave.timeout = _positive_float("AIRWEAVE_TIMEOUT", config.airweave.timeout)

    config.llm.provider = _choice("LLM_PROVIDER", LLM_PROVIDERS, "google")
    config.llm.google_api_key = _first_env(PROVIDER_KEY_ENV["google"])
    config.llm.openai_api_key = _first_env(PROVIDER_KEY_ENV["openai"])
    config.llm.anthropic_api_key = _first_env(PROVIDER_KEY_ENV["anthropic"])
    if os.getenv("GOOGLE_MODEL"):
        config.llm.google_model = os.getenv("GOOGLE_MODEL")
    if os.getenv("OPENAI_MODEL"):
        config.llm.openai_model = os.getenv("OPENAI_MODEL")
    if os.getenv("ANTHROPIC_MODEL"):
        config.llm.anthropic_model = os.getenv("ANTHROPIC_MODEL")
    config.llm.timeout = _positive_float("LLM_TIMEOUT", config.llm.timeout)

    config.search.search_type = _choice("DEFAULT_SEARCH_TYPE", SEARCH_TYPES, "hybrid")
    config.search.max_results = _positive_int("MAX_RESULTS", config.search.max_results)
    config.search.output_format = _choice("DEFAULT_OUTPUT_FORMAT", OUTPUT_FORMATS, "json")
    config.search.output_dir = os.getenv("OUTPUT_DIR") or DEFAULT_OUTPUT_DIR

    config.log_level = _choice("LOG_LEVEL", LOG_LEVELS, "warning").upper()

    return config


def missing_settings(config: AppConfig) -> List[str]:
    """Names of the environment variables still needed for a full setup"""
    missing = []
    if not config.airweave.api_key:
        missing.append("AIRWEAVE_API_KEY")
    if not config.airweave.collection_id:
        missing.append("AIRWEAVE_COLLECTION_ID")

    key_env = PROVIDER_KEY_ENV.get(config.llm.provider)
    if key_env and not config.llm.active_api_key():
        missing.append(key_env[0])

    return missing


def mask_secret(value: str) -> str:
    """Mask a secret for display"""
    if not value:
        return "(not set)"
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}{'*' * 8}{value[-4:]}"


def describe_config(config: AppConfig) -> List[str]:
    """Human-readable (masked) configuration lines"""
    return [
        f"Airweave API Key: {mask_secret(config.airweave.api_key)}",
        f"Collection ID: {config.airweave.collection_id or '(not set)'}",
        f"API URL: {config.airweave.api_url}",
        f"LLM Provider: {config.llm.provider} ({config.llm.active_model()})",
        f"LLM API Key: {mask_secret(config.llm.active_api_key())}",
        f"Search Type: {config.search.search_type}",
        f"Max Results: {config.search.max_results}",
        f"Output Format: {config.search.output_format}",
        f"Output Folder: {config.search.output_dir}",
    ]
