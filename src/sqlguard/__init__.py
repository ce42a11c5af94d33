"""
SQLGuard
========

Query governance for natural-language-to-SQL: a read-only policy sandbox,
a bounded retry controller and a bounded tool-use agent loop.
"""

from sqlguard.models import (
    AgentStep,
    CandidateQuery,
    ErrorKind,
    ErrorRecord,
    LLMResponse,
    QueryResult,
    ValidationVerdict,
    VerificationResult,
    VerificationStatus,
)
from sqlguard.exceptions import (
    ExecutionError,
    GenerationError,
    GovernanceError,
    PolicyViolationError,
    SchemaError,
)
from sqlguard.sandbox import PolicyValidator
from sqlguard.context import RequestContext
from sqlguard.retry import RetryController
from sqlguard.agent import ToolUseAgent
from sqlguard.service import QueryService
from sqlguard.llm import LLMInterface, MockLLM, OpenAIChatLLM

__version__ = "0.1.0"

__all__ = [
    # Models
    "AgentStep",
    "CandidateQuery",
    "ErrorKind",
    "ErrorRecord",
    "LLMResponse",
    "QueryResult",
    "ValidationVerdict",
    "VerificationResult",
    "VerificationStatus",
    # Errors
    "GovernanceError",
    "PolicyViolationError",
    "GenerationError",
    "ExecutionError",
    "SchemaError",
    # Governance
    "PolicyValidator",
    "RequestContext",
    "RetryController",
    "ToolUseAgent",
    "QueryService",
    # LLM
    "LLMInterface",
    "MockLLM",
    "OpenAIChatLLM",
]
