"""
Prompts module - LLM prompt templates.

Prompts are stored as separate Python files so prompt changes show up as
their own diffs.
"""
from companion.llm.prompts.companion_prompts import (
    build_patient_memory_blocks,
    build_system_prompt,
)
from companion.llm.prompts.insights_prompts import (
    get_insights_system_prompt,
    get_insights_user_prompt,
)

__all__ = [
    "build_patient_memory_blocks",
    "build_system_prompt",
    "get_insights_system_prompt",
    "get_insights_user_prompt",
]
