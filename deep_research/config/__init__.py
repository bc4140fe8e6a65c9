"""Configuration system for generator, search and research settings."""

from .loader import (
    load_config,
    load_config_from_env,
    load_config_from_yaml,
    list_profiles,
    ProfileConfig,
    GeneratorConfig,
    SearchConfig,
    ResearchConfig,
    ChunkerConfig,
)
from .factory import (
    MockLLMProvider,
    MockSearchProvider,
    create_generator,
    create_search_provider,
    create_context_estimator,
    create_engine,
    create_synthesizer,
    create_from_profile,
)

__all__ = [
    # Loader
    "load_config",
    "load_config_from_env",
    "load_config_from_yaml",
    "list_profiles",
    "ProfileConfig",
    "GeneratorConfig",
    "SearchConfig",
    "ResearchConfig",
    "ChunkerConfig",
    # Factory
    "MockLLMProvider",
    "MockSearchProvider",
    "create_generator",
    "create_search_provider",
    "create_context_estimator",
    "create_engine",
    "create_synthesizer",
    "create_from_profile",
]
