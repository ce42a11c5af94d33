"""
Data Models
===========

Core data structures shared by the policy validator and both orchestrators.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class VerificationStatus(Enum):
    """Status of a single policy check."""

    PASSED = "passed"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Recoverable error classes recorded in the error history."""

    POLICY_VIOLATION = "policy_violation"
    GENERATION_FAILURE = "generation_failure"
    EXECUTION_FAILURE = "execution_failure"


@dataclass
class VerificationResult:
    """Result of a single verifier in the policy chain."""

    verifier_name: str
    status: VerificationStatus
    message: str
    details: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ValidationVerdict:
    """Outcome of validating one candidate query."""

    valid: bool
    message: str
    rule: Optional[str] = None


@dataclass(frozen=True)
class CandidateQuery:
    """Query text produced by the generator for a given attempt."""

    text: str
    attempt: int


@dataclass(frozen=True)
class ErrorRecord:
    """Single entry in the error history."""

    attempt: int
    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return f"Attempt {self.attempt}: {self.message}"


@dataclass
class AgentStep:
    """One Thought/Action/Observation cycle of the tool-use loop."""

    text: str
    action: Optional[str] = None
    action_input: Optional[str] = None
    observation: Optional[str] = None


@dataclass
class QueryResult:
    """
    Result aggregate returned to the transport layer.

    Created with only ``original_query`` set; the owning orchestrator fills
    in the remaining fields once it reaches a terminal state.
    """

    original_query: str
    agent_mode: bool = False
    generated_query: str = ""
    is_valid: bool = False
    validation_message: str = ""
    rows: Optional[list[dict[str, Any]]] = None
    final_answer: str = ""
    error_message: Optional[str] = None
    attempt_count: int = 0
    error_history: list[ErrorRecord] = field(default_factory=list)
    elapsed_time: float = 0.0
    reasoning_trace: Optional[list[AgentStep]] = None

    @property
    def succeeded(self) -> bool:
        return self.error_message is None

    @property
    def retried(self) -> bool:
        """True when the request succeeded after more than one attempt."""
        return self.succeeded and self.attempt_count > 1


@dataclass
class LLMResponse:
    """Response from an LLM call."""

    content: str
    model: str
    tokens_used: int = 0
