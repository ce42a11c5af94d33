"""
Base Verifier Classes
=====================

Abstract base class and the ordered verification chain.
"""

from abc import ABC, abstractmethod

import structlog

from sqlguard.models import VerificationResult, VerificationStatus

logger = structlog.get_logger(__name__)


class Verifier(ABC):
    """Base class for all policy verifiers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this verifier."""
        pass

    @abstractmethod
    def verify(self, sql: str, context: dict) -> VerificationResult:
        """
        Verify the SQL against this verifier's rule.

        Args:
            sql: The SQL query to verify
            context: Additional context (unused by the built-in rules)

        Returns:
            VerificationResult indicating pass/fail with details
        """
        pass

    def passed(self, message: str) -> VerificationResult:
        return VerificationResult(
            verifier_name=self.name,
            status=VerificationStatus.PASSED,
            message=message,
        )

    def failed(self, sql: str, message: str, **details) -> VerificationResult:
        logger.warning(
            "Blocked query",
            rule=self.name,
            reason=message,
            query=sql[:100],
        )
        return VerificationResult(
            verifier_name=self.name,
            status=VerificationStatus.FAILED,
            message=message,
            details=details,
        )


class VerificationChain:
    """Runs verifiers in a fixed precedence order, collecting results."""

    def __init__(self, verifiers: list[Verifier] | None = None) -> None:
        """
        Initialize the verification chain.

        Args:
            verifiers: Verifiers in precedence order. Defaults to the
                read-only policy chain.
        """
        if verifiers is not None:
            self.verifiers = verifiers
        else:
            # Lazy import to avoid circular imports
            from sqlguard.verifiers.keywords import (
                BlockedKeywordVerifier,
                DeleteVerifier,
                UpdateVerifier,
            )
            from sqlguard.verifiers.safety import InjectionVerifier
            from sqlguard.verifiers.statement import (
                EmptyQueryVerifier,
                ReadOnlyVerifier,
                SingleStatementVerifier,
            )

            self.verifiers = [
                EmptyQueryVerifier(),
                BlockedKeywordVerifier(),
                UpdateVerifier(),
                DeleteVerifier(),
                InjectionVerifier(),
                ReadOnlyVerifier(),
                SingleStatementVerifier(),
            ]

    def run(self, sql: str, context: dict) -> tuple[bool, list[VerificationResult]]:
        """
        Run verifiers in order. Returns (all_passed, results).

        The first failure short-circuits the remaining verifiers.

        Args:
            sql: The SQL query to verify
            context: Additional context for verification

        Returns:
            Tuple of (success, list of verification results)
        """
        results = []

        for verifier in self.verifiers:
            result = verifier.verify(sql, context)
            results.append(result)

            if result.status == VerificationStatus.FAILED:
                return False, results

        return True, results
