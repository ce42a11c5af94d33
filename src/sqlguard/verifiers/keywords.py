"""
Keyword Verifiers
=================

Whole-word keyword rules: the structural/administrative blocklist and the
row-modification (UPDATE / DELETE) checks.
"""

import re

from sqlguard.models import VerificationResult
from sqlguard.verifiers.base import Verifier


BLOCKED_KEYWORDS = [
    "DROP",
    "TRUNCATE",
    "ALTER",
    "CREATE",
    "INSERT",
    "EXEC",
    "EXECUTE",
    "SP_",
    "XP_",
    "OPENROWSET",
    "BULK",
    "BACKUP",
    "RESTORE",
    "GRANT",
    "REVOKE",
    "SHUTDOWN",
    "KILL",
    "DBCC",
    "RECONFIGURE",
    "MERGE",
    "CALL",
]


def _word(keyword: str) -> str:
    return rf"\b{re.escape(keyword)}\b"


class BlockedKeywordVerifier(Verifier):
    """Rejects queries containing a blocked keyword as a whole word."""

    def __init__(self, keywords: list[str] | None = None) -> None:
        self.keywords = keywords or BLOCKED_KEYWORDS
        self._patterns = [
            (keyword, re.compile(_word(keyword), re.IGNORECASE))
            for keyword in self.keywords
        ]

    @property
    def name(self) -> str:
        return "BlockedKeywordVerifier"

    def verify(self, sql: str, context: dict) -> VerificationResult:
        for keyword, pattern in self._patterns:
            if pattern.search(sql):
                return self.failed(
                    sql,
                    f"Security Alert: Prohibited operation '{keyword}' detected. "
                    "Only safe SELECT queries are allowed for data analysis.",
                    keyword=keyword,
                )

        return self.passed("No prohibited keywords detected")


class _ModificationVerifier(Verifier):
    """
    Rejects a row-modification statement.

    The statement is never allowed; whether a WHERE clause follows only
    selects which of the two messages is reported.
    """

    keyword: str
    missing_where_message: str
    not_allowed_message: str

    def __init__(self) -> None:
        self._keyword = re.compile(_word(self.keyword), re.IGNORECASE)
        self._guarded = re.compile(
            rf"{_word(self.keyword)}.*\bWHERE\b", re.IGNORECASE | re.DOTALL
        )

    def verify(self, sql: str, context: dict) -> VerificationResult:
        if not self._keyword.search(sql):
            return self.passed(f"No {self.keyword} statement detected")

        if not self._guarded.search(sql):
            return self.failed(sql, self.missing_where_message, has_where=False)
        return self.failed(sql, self.not_allowed_message, has_where=True)


class UpdateVerifier(_ModificationVerifier):
    keyword = "UPDATE"
    missing_where_message = (
        "Security Alert: UPDATE statements must include a WHERE clause "
        "to prevent accidental data modification."
    )
    not_allowed_message = (
        "Security Alert: Data modification (UPDATE) is not allowed. "
        "Use SELECT statements for data analysis only."
    )

    @property
    def name(self) -> str:
        return "UpdateVerifier"


class DeleteVerifier(_ModificationVerifier):
    keyword = "DELETE"
    missing_where_message = (
        "Security Alert: DELETE statements must include a WHERE clause "
        "to prevent accidental data loss."
    )
    not_allowed_message = (
        "Security Alert: Data deletion (DELETE) is not allowed. "
        "Use SELECT statements for data analysis only."
    )

    @property
    def name(self) -> str:
        return "DeleteVerifier"
