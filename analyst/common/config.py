"""
Configuration Management for Analyst

Loads configuration from ~/.analyst/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("analyst.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".analyst"
CONFIG_PATH = CONFIG_DIR / "config.json"

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./analyst.db"


@dataclass
class LLMConfig:
    """Language-model provider configuration"""
    provider: str = "ollama"
    model: str = "qwen2.5:3b-instruct"
    ollama_base_url: str = "http://localhost:11434"
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""
    timeout: float = 60.0


@dataclass
class EmbeddingConfig:
    """Embedding model configuration"""
    mode: str = "ollama"  # ollama | openai | femb
    model: str = "nomic-embed-text"


@dataclass
class DatabaseConfig:
    """Tabular/vector store configuration"""
    url: str = DEFAULT_DATABASE_URL
    echo: bool = False


@dataclass
class RetrieverConfig:
    """Similarity retriever configuration"""
    topk: int = 5
    min_similarity: float = 0.4


@dataclass
class PlannerConfig:
    """Structured query planner configuration"""
    default_group_limit: int = 10
    strict_operators: bool = False  # reject unknown filter operators instead of degrading


@dataclass
class AnalystConfig:
    """Main Analyst configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    retriever: RetrieverConfig = field(default_factory=RetrieverConfig)
    planner: PlannerConfig = field(default_factory=PlannerConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_llm_config(data: dict) -> LLMConfig:
    llm_data = data.get("llm", {})
    return LLMConfig(
        provider=llm_data.get("provider", "ollama"),
        model=llm_data.get("model", "qwen2.5:3b-instruct"),
        ollama_base_url=llm_data.get("ollama_base_url", "http://localhost:11434"),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        openai_api_key=llm_data.get("openai_api_key", ""),
        google_api_key=llm_data.get("google_api_key", ""),
        timeout=llm_data.get("timeout", 60.0),
    )


def _parse_embedding_config(data: dict) -> EmbeddingConfig:
    embedding_data = data.get("embedding", {})
    return EmbeddingConfig(
        mode=embedding_data.get("mode", "ollama"),
        model=embedding_data.get("model", "nomic-embed-text"),
    )


def _parse_database_config(data: dict) -> DatabaseConfig:
    database_data = data.get("database", {})
    return DatabaseConfig(
        url=database_data.get("url", DEFAULT_DATABASE_URL),
        echo=database_data.get("echo", False),
    )


def _parse_retriever_config(data: dict) -> RetrieverConfig:
    retriever_data = data.get("retriever", {})
    return RetrieverConfig(
        topk=retriever_data.get("topk", 5),
        min_similarity=retriever_data.get("min_similarity", 0.4),
    )


def _parse_planner_config(data: dict) -> PlannerConfig:
    planner_data = data.get("planner", {})
    return PlannerConfig(
        default_group_limit=planner_data.get("default_group_limit", 10),
        strict_operators=planner_data.get("strict_operators", False),
    )


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> AnalystConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.analyst/config.json)
    3. Default values
    """
    config = AnalystConfig()

    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.embedding = _parse_embedding_config(data)
            config.database = _parse_database_config(data)
            config.retriever = _parse_retriever_config(data)
            config.planner = _parse_planner_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # LLM env var overrides (track env-sourced keys so secrets are never saved)
    _env_llm_map = {
        "ANALYST_LLM_PROVIDER": "provider",
        "ANALYST_LLM_MODEL": "model",
        "OLLAMA_BASE_URL": "ollama_base_url",
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "OPENAI_API_KEY": "openai_api_key",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    if os.getenv("EMBEDDING_MODE"):
        config.embedding.mode = os.getenv("EMBEDDING_MODE")
    if os.getenv("EMBEDDING_MODEL"):
        config.embedding.model = os.getenv("EMBEDDING_MODEL")

    if os.getenv("ANALYST_DATABASE_URL"):
        config.database.url = os.getenv("ANALYST_DATABASE_URL")

    if os.getenv("ANALYST_TOPK"):
        config.retriever.topk = int(os.getenv("ANALYST_TOPK"))
    if os.getenv("ANALYST_MIN_SIMILARITY"):
        config.retriever.min_similarity = float(os.getenv("ANALYST_MIN_SIMILARITY"))

    if os.getenv("ANALYST_STRICT_OPERATORS"):
        config.planner.strict_operators = _env_flag(os.getenv("ANALYST_STRICT_OPERATORS"))

    return config


def save_config(config: AnalystConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    llm_section = {
        "provider": config.llm.provider,
        "model": config.llm.model,
        "ollama_base_url": config.llm.ollama_base_url,
        "anthropic_api_key": config.llm.anthropic_api_key,
        "openai_api_key": config.llm.openai_api_key,
        "google_api_key": config.llm.google_api_key,
        "timeout": config.llm.timeout,
    }
    for key in ("anthropic_api_key", "openai_api_key", "google_api_key"):
        if key in env_sourced:
            llm_section[key] = ""

    data = {
        "llm": llm_section,
        "embedding": {
            "mode": config.embedding.mode,
            "model": config.embedding.model,
        },
        "database": {
            "url": config.database.url,
            "echo": config.database.echo,
        },
        "retriever": {
            "topk": config.retriever.topk,
            "min_similarity": config.retriever.min_similarity,
        },
        "planner": {
            "default_group_limit": config.planner.default_group_limit,
            "strict_operators": config.planner.strict_operators,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)
