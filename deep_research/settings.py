"""Configuration settings for the deep research agent."""

import logging
import os
from dotenv import load_dotenv

load_dotenv()

# Logging setup
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

# Firecrawl (search + scrape)
FIRECRAWL_API_KEY = os.getenv("FIRECRAWL_KEY")
FIRECRAWL_BASE_URL = os.getenv("FIRECRAWL_BASE_URL", "https://api.firecrawl.dev")

# OpenRouter
# Any OpenAI-compatible model with JSON schema output works, e.g.:
# - openai/gpt-4o-mini (fast, cheap)
# - deepseek/deepseek-r1 (reasoning)
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_DEFAULT_MODEL = os.getenv("OPENROUTER_DEFAULT_MODEL", "openai/gpt-4o-mini")

# OpenAI (direct API or a self-hosted compatible endpoint)
OPENAI_API_KEY = os.getenv("OPENAI_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_ENDPOINT", "https://api.openai.com/v1")
OPENAI_DEFAULT_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Anthropic (direct API)
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_DEFAULT_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-5-haiku-20241022")

# Input budget of the generation model, in tokens
CONTEXT_SIZE = int(os.getenv("CONTEXT_SIZE", "128000"))

# Research defaults
DEFAULT_BREADTH = 4
DEFAULT_DEPTH = 2
CONCURRENCY_LIMIT = int(os.getenv("FIRECRAWL_CONCURRENCY", "2"))

# Search settings
SEARCH_TIMEOUT_MS = 15000
SEARCH_MAX_RESULTS = 5
RETRY_BACKOFF_FACTOR = 2.0
