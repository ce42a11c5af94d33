"""
Verifiers Module
================

Ordered policy rules making up the read-only sandbox.
"""

from sqlguard.verifiers.base import Verifier, VerificationChain
from sqlguard.verifiers.keywords import (
    BLOCKED_KEYWORDS,
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

__all__ = [
    "Verifier",
    "VerificationChain",
    "BLOCKED_KEYWORDS",
    "BlockedKeywordVerifier",
    "UpdateVerifier",
    "DeleteVerifier",
    "InjectionVerifier",
    "EmptyQueryVerifier",
    "ReadOnlyVerifier",
    "SingleStatementVerifier",
]
