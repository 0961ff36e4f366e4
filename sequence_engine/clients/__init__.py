"""External API clients: language model, research service."""

from sequence_engine.clients.llm import (
    LanguageModel,
    AnthropicModel,
    ModelCallError,
    parse_json_response,
)
from sequence_engine.clients.research import research_company, ResearchError
