"""
Exceptions
==========

Error hierarchy for query governance. Every recoverable error carries the
``ErrorKind`` it is recorded under in the error history.
"""

from sqlguard.models import ErrorKind


class GovernanceError(Exception):
    """Base exception for all governance errors."""

    kind: ErrorKind = ErrorKind.GENERATION_FAILURE


class PolicyViolationError(GovernanceError):
    """Raised when a candidate query is rejected by the policy validator."""

    kind = ErrorKind.POLICY_VIOLATION

    def __init__(self, message: str, rule: str | None = None) -> None:
        self.rule = rule
        super().__init__(message)


class GenerationError(GovernanceError):
    """Raised when the generator fails or returns an unusable response."""

    kind = ErrorKind.GENERATION_FAILURE


class ExecutionError(GovernanceError):
    """Raised when the data engine rejects or fails to run a query."""

    kind = ErrorKind.EXECUTION_FAILURE


class SchemaError(Exception):
    """Raised when schema metadata cannot be retrieved."""
