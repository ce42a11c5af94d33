"""
LLM Module
==========

Pluggable generator interfaces.
"""

from sqlguard.llm.base import LLMInterface
from sqlguard.llm.mock import MockLLM
from sqlguard.llm.openai import OpenAIChatLLM

__all__ = [
    "LLMInterface",
    "MockLLM",
    "OpenAIChatLLM",
]
