"""
LLM module - Language model integration.

This module handles all LLM interactions:
- Prompt construction
- API calls to Groq
- Response parsing
- Error handling for LLM failures
"""
from companion.llm.client import LLMClient, LLMError, parse_insights

__all__ = [
    "LLMClient",
    "LLMError",
    "parse_insights",
]
