"""
Statement Shape Verifiers
=========================

Checks on the overall statement: non-empty, read-only, single statement.
"""

import re

from sqlguard.models import VerificationResult
from sqlguard.verifiers.base import Verifier


class EmptyQueryVerifier(Verifier):
    """Rejects empty or whitespace-only queries."""

    @property
    def name(self) -> str:
        return "EmptyQueryVerifier"

    def verify(self, sql: str, context: dict) -> VerificationResult:
        if not sql or not sql.strip():
            return self.failed(sql or "", "SQL query cannot be empty")
        return self.passed("Query is not empty")


class ReadOnlyVerifier(Verifier):
    """Only statements starting with SELECT are allowed."""

    @property
    def name(self) -> str:
        return "ReadOnlyVerifier"

    def verify(self, sql: str, context: dict) -> VerificationResult:
        if not sql.strip().upper().startswith("SELECT"):
            return self.failed(
                sql,
                "Security Policy: Only SELECT queries are allowed for data analysis. "
                "No data modification operations permitted.",
            )
        return self.passed("Query is read-only")


class SingleStatementVerifier(Verifier):
    """Rejects a semicolon followed by another token."""

    _CHAINED = re.compile(r";\s*\w+")

    @property
    def name(self) -> str:
        return "SingleStatementVerifier"

    def verify(self, sql: str, context: dict) -> VerificationResult:
        if self._CHAINED.search(sql):
            return self.failed(
                sql,
                "Security Alert: Multiple SQL statements detected. "
                "Only single SELECT queries are allowed.",
            )
        return self.passed("Single statement")
