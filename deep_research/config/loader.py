"""Configuration loader with Pydantic validation and env var expansion."""

import logging
import os
import re
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..exceptions import ConfigurationError
from ..settings import (
    ANTHROPIC_API_KEY,
    CONCURRENCY_LIMIT,
    CONTEXT_SIZE,
    DEFAULT_BREADTH,
    DEFAULT_DEPTH,
    FIRECRAWL_API_KEY,
    FIRECRAWL_BASE_URL,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    OPENAI_DEFAULT_MODEL,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
    OPENROUTER_DEFAULT_MODEL,
    SEARCH_MAX_RESULTS,
    SEARCH_TIMEOUT_MS,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "models.yaml"


class GeneratorConfig(BaseModel):
    """Configuration for the structured-generation backend."""

    backend: Literal["openrouter", "openai", "anthropic", "mock"] = "openrouter"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.7
    timeout: float = 120.0
    context_size: int = Field(default=CONTEXT_SIZE, gt=0)


class SearchConfig(BaseModel):
    """Configuration for the web search backend."""

    backend: Literal["firecrawl", "mock"] = "firecrawl"
    api_key: str | None = None
    base_url: str | None = None
    timeout_ms: int = Field(default=SEARCH_TIMEOUT_MS, gt=0)
    max_results: int = Field(default=SEARCH_MAX_RESULTS, gt=0)
    max_retries: int = Field(default=0, ge=0)  # 0 = single attempt per query


class ResearchConfig(BaseModel):
    """Defaults and bounds for research invocations."""

    breadth: int = Field(default=DEFAULT_BREADTH, ge=1)
    depth: int = Field(default=DEFAULT_DEPTH, ge=0)
    concurrency_limit: int = Field(default=CONCURRENCY_LIMIT, ge=1)
    num_learnings: int = Field(default=3, ge=1)
    max_breadth: int | None = Field(default=10, ge=1)
    max_depth: int | None = Field(default=5, ge=0)
    content_token_budget: int = Field(default=25000, gt=0)
    report_token_budget: int = Field(default=150000, gt=0)


class ChunkerConfig(BaseModel):
    """Configuration for token estimation and trimming."""

    use_tiktoken: bool = True
    encoding_name: str = "o200k_base"
    chars_per_token: float = Field(default=4.0, gt=0)
    min_chunk_size: int = Field(default=140, gt=0)


class ProfileConfig(BaseModel):
    """Configuration profile containing all backend configs."""

    generator: GeneratorConfig = GeneratorConfig()
    search: SearchConfig = SearchConfig()
    research: ResearchConfig = ResearchConfig()
    chunker: ChunkerConfig = ChunkerConfig()


class ConfigFile(BaseModel):
    """Root configuration file structure."""

    profiles: dict[str, ProfileConfig]


def expand_env_vars(value: str) -> str:
    """Expand ${VAR} references in a string with environment variables.

    Unknown variables are left untouched.

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars expanded
    """
    if not isinstance(value, str):
        return value

    pattern = r"\$\{([^}]+)\}"

    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return re.sub(pattern, replacer, value)


def expand_env_vars_recursive(data):
    """Recursively expand env vars in nested dict/list structures."""
    if isinstance(data, dict):
        return {k: expand_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def _drop_unresolved(data):
    # "${VAR}" left over after expansion means the variable is unset
    if isinstance(data, dict):
        return {k: _drop_unresolved(v) for k, v in data.items()}
    if isinstance(data, str) and re.fullmatch(r"\$\{[^}]+\}", data):
        return None
    return data


def read_config_file(config_path: Path) -> ConfigFile:
    """Read, expand and validate a YAML config file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
    """
    with open(config_path) as f:
        raw_data = yaml.safe_load(f) or {}

    expanded_data = _drop_unresolved(expand_env_vars_recursive(raw_data))
    return ConfigFile(**expanded_data)


def load_config_from_yaml(config_path: Path, profile_name: str) -> ProfileConfig:
    """Load one profile from a YAML file.

    Args:
        config_path: Path to config YAML file
        profile_name: Name of profile to load

    Returns:
        ProfileConfig for the requested profile

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
        KeyError: If profile doesn't exist
    """
    config_file = read_config_file(config_path)

    if profile_name not in config_file.profiles:
        available = ", ".join(config_file.profiles.keys())
        raise KeyError(
            f"Profile '{profile_name}' not found. Available profiles: {available}"
        )

    return config_file.profiles[profile_name]


def load_config_from_env() -> ProfileConfig:
    """Load configuration from environment variables (fallback mode).

    The generator backend is chosen explicitly with ``GENERATOR_BACKEND``
    (default ``openrouter``); API keys come from the usual variables.
    """
    backend = os.environ.get("GENERATOR_BACKEND", "openrouter")

    if backend == "openai":
        generator = GeneratorConfig(
            backend="openai",
            model=OPENAI_DEFAULT_MODEL,
            api_key=OPENAI_API_KEY,
            base_url=OPENAI_BASE_URL,
        )
    elif backend == "anthropic":
        generator = GeneratorConfig(backend="anthropic", api_key=ANTHROPIC_API_KEY)
    elif backend == "mock":
        generator = GeneratorConfig(backend="mock")
    else:
        generator = GeneratorConfig(
            backend="openrouter",
            model=OPENROUTER_DEFAULT_MODEL,
            api_key=OPENROUTER_API_KEY,
            base_url=OPENROUTER_BASE_URL,
        )

    search = SearchConfig(
        backend="mock" if backend == "mock" else "firecrawl",
        api_key=FIRECRAWL_API_KEY,
        base_url=FIRECRAWL_BASE_URL,
    )

    return ProfileConfig(generator=generator, search=search)


def list_profiles(config_path: Path | None = None) -> dict[str, ProfileConfig]:
    """Return every profile defined in the config file."""
    return read_config_file(config_path or DEFAULT_CONFIG_PATH).profiles


def load_config(
    profile: str | None = None,
    config_path: Path | None = None,
) -> ProfileConfig:
    """Load configuration from YAML file or environment variables.

    Tries the YAML config file first and falls back to environment variables
    if the file doesn't exist or cannot be parsed.

    Args:
        profile: Profile name to load. If None, uses RESEARCH_PROFILE env var
                or "default".
        config_path: Path to config file. If None, uses the bundled models.yaml.

    Returns:
        ProfileConfig with all backend configurations

    Raises:
        ConfigurationError: If the requested profile doesn't exist
    """
    if profile is None:
        profile = os.environ.get("RESEARCH_PROFILE", "default")

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.warning(f"Config file {config_path} not found, using environment variables")
        return load_config_from_env()

    try:
        return load_config_from_yaml(config_path, profile)
    except KeyError as e:
        raise ConfigurationError(e.args[0]) from e
    except (yaml.YAMLError, ValidationError, TypeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Falling back to environment variables...")
        return load_config_from_env()
