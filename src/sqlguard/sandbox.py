"""
Policy Validator
================

Layered text-pattern sandbox deciding whether a candidate query may reach
the executor. Validation runs on the query's textual surface only; it is not
a SQL parser.
"""

from sqlguard.models import ValidationVerdict, VerificationStatus
from sqlguard.verifiers.base import VerificationChain

SUCCESS_MESSAGE = "Query passed security validation - safe to execute"


class PolicyValidator:
    """
    Accepts or rejects query text.

    Rules run in a fixed precedence order and the first failing rule
    determines the verdict:

    1. empty query
    2. blocked structural/administrative keyword
    3. UPDATE (with or without WHERE)
    4. DELETE (with or without WHERE)
    5. injection patterns
    6. statement must start with SELECT
    7. multiple statements
    """

    def __init__(self, chain: VerificationChain | None = None) -> None:
        self.chain = chain or VerificationChain()

    def validate(self, sql: str | None) -> ValidationVerdict:
        """Return exactly one verdict for the given query text."""
        passed, results = self.chain.run(sql or "", {})
        if passed:
            return ValidationVerdict(valid=True, message=SUCCESS_MESSAGE)

        failure = next(r for r in results if r.status == VerificationStatus.FAILED)
        return ValidationVerdict(
            valid=False,
            message=failure.message,
            rule=failure.verifier_name,
        )
