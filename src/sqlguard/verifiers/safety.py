"""
Injection Verifier
==================

Rejects common SQL injection shapes on the query's textual surface.
"""

import re

from sqlguard.models import VerificationResult
from sqlguard.verifiers.base import Verifier


class InjectionVerifier(Verifier):
    """Rejects the first matching injection pattern, in declaration order."""

    INJECTION_PATTERNS = [
        (r";\s*DROP\b", "SQL injection attempt with DROP command"),
        (r";\s*DELETE\b", "SQL injection attempt with DELETE command"),
        (r";\s*UPDATE\b", "SQL injection attempt with UPDATE command"),
        (r";\s*INSERT\b", "SQL injection attempt with INSERT command"),
        (r"'\s*OR\s*'.*'", "SQL injection with OR condition"),
        (r"'\s*AND\s*'.*'", "SQL injection with AND condition"),
        (r"\bUNION\b.*\bSELECT\b", "SQL injection with UNION SELECT"),
        (r"--\s*$", "SQL comment injection attempt"),
        (r"/\*.*\*/", "SQL block comment injection"),
    ]

    def __init__(self) -> None:
        self._patterns = [
            (re.compile(pattern, re.IGNORECASE | re.MULTILINE), description)
            for pattern, description in self.INJECTION_PATTERNS
        ]

    @property
    def name(self) -> str:
        return "InjectionVerifier"

    def verify(self, sql: str, context: dict) -> VerificationResult:
        """
        Verify SQL does not contain an injection pattern.

        Args:
            sql: SQL query to validate
            context: Additional context (unused for this verifier)

        Returns:
            VerificationResult with PASSED or FAILED status
        """
        for pattern, description in self._patterns:
            if pattern.search(sql):
                return self.failed(
                    sql,
                    f"Security Alert: {description} detected. "
                    "Malicious queries are blocked for security.",
                    pattern=description,
                )

        return self.passed("No injection patterns detected")
