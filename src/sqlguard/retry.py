"""
Retry Controller
================

Bounded regenerate/validate/execute loop with exponential backoff.
"""

import json
import re
import time
from enum import Enum
from typing import Any, Callable

import structlog

from sqlguard.context import RequestContext
from sqlguard.database.executor import QueryExecutor
from sqlguard.database.schema import analyze_schema
from sqlguard.exceptions import GenerationError, GovernanceError, PolicyViolationError
from sqlguard.llm.base import LLMInterface
from sqlguard.models import CandidateQuery, ErrorKind, ErrorRecord, QueryResult
from sqlguard.sandbox import PolicyValidator

logger = structlog.get_logger(__name__)


class RetryState(Enum):
    GENERATING = "generating"
    VALIDATING = "validating"
    EXECUTING = "executing"
    SUMMARIZING = "summarizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# Error kind recorded for exceptions that are not GovernanceErrors
_STATE_ERROR_KINDS = {
    RetryState.GENERATING: ErrorKind.GENERATION_FAILURE,
    RetryState.VALIDATING: ErrorKind.POLICY_VIOLATION,
    RetryState.EXECUTING: ErrorKind.EXECUTION_FAILURE,
    RetryState.SUMMARIZING: ErrorKind.GENERATION_FAILURE,
}

# (substrings, hint) pairs, matched against the error history
CORRECTIVE_ACTIONS = [
    (
        ("no such column", "column"),
        "- CRITICAL: Verify all column names exactly match the schema - do not guess or abbreviate",
    ),
    (
        ("no such table", "object"),
        "- CRITICAL: Check table names against the schema",
    ),
    (
        ("foreign key", "relationship"),
        "- CRITICAL: Validate JOIN relationships and foreign key column names",
    ),
    (
        ("syntax", "Syntax"),
        "- CRITICAL: Review SQL syntax - ensure proper FROM, JOIN, WHERE clause structure",
    ),
    (
        ("Validation", "validation"),
        "- CRITICAL: Ensure only SELECT statements - no INSERT, UPDATE, DELETE, DROP allowed",
    ),
]

DEFAULT_CORRECTIVE_ACTION = "- Carefully review all syntax and schema references"

# SQLite's error for TOP N never names TOP; matched against the failed query text
TOP_CORRECTIVE_ACTION = "- CRITICAL: Use LIMIT N instead of TOP N - this is SQLite, not SQL Server"
_TOP_CLAUSE = re.compile(r"\bTOP\s+\d+", re.IGNORECASE)


def get_corrective_actions(
    errors: list[ErrorRecord], failed_queries: list[str] | None = None
) -> str:
    """Derive targeted hints from the recorded messages and failed query texts."""
    actions = [
        hint
        for needles, hint in CORRECTIVE_ACTIONS
        if any(needle in error.message for error in errors for needle in needles)
    ]
    if any(_TOP_CLAUSE.search(sql) for sql in failed_queries or []):
        actions.insert(0, TOP_CORRECTIVE_ACTION)
    return "\n".join(actions) if actions else DEFAULT_CORRECTIVE_ACTION


def clean_sql(llm_output: str) -> str:
    """Strip Markdown code fences from generator output."""
    sql = llm_output.strip()
    if sql[:6].lower() == "```sql":
        sql = sql[6:]
    elif sql.startswith("```"):
        sql = sql[3:]
    if sql.endswith("```"):
        sql = sql[:-3]
    return sql.strip()


class RetryController:
    """
    Orchestrates generator -> validator -> executor -> summarizer.

    Every attempt is conditioned on the full error history. Failures of any
    kind are recorded and retried after an exponentially growing delay until
    the attempt budget is spent.
    """

    SYSTEM_PROMPT_TEMPLATE = """You are an intelligent SQL Agent. This is attempt {attempt}/{max_attempts} for generating SQL.

Database Schema:
{schema}

INTELLIGENT SCHEMA ANALYSIS:
{analysis}

QUERY: {query}
{error_context}

LEARNING FROM ERRORS:
- If previous attempts had column name errors, double-check exact column names in schema
- If syntax errors occurred, ensure SQLite compatibility (LIMIT not TOP, etc.)
- If relationship errors happened, verify foreign key connections carefully
- If validation failed, ensure only SELECT statements

CORRECTIVE ACTIONS:
{corrective_actions}

SQLITE REQUIREMENTS:
- Use LIMIT N syntax (NOT TOP N)
- Use double quotes for identifiers that are reserved words
- Use date('now') for the current date
- Join syntax: FROM table_a a JOIN table_b b ON a.id = b.table_a_id

Generate improved SQL taking into account all previous errors. Return ONLY the SQL query."""

    SUMMARY_SYSTEM_PROMPT = (
        "You are a data analyst who explains database query results in clear, "
        "natural language. Provide concise summaries that highlight key insights "
        "and patterns in the data."
    )

    SUMMARY_PROMPT_TEMPLATE = """Query: {query}

Results: {results}

Please provide a brief, insightful summary of these results."""

    def __init__(
        self,
        llm: LLMInterface,
        executor: QueryExecutor,
        validator: PolicyValidator | None = None,
        summarizer: LLMInterface | None = None,
        backoff_base: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the controller.

        Args:
            llm: Generator for candidate queries
            executor: Data engine for validated queries
            validator: Policy validator (defaults to the read-only policy)
            summarizer: Generator for the final answer (defaults to ``llm``)
            backoff_base: Delay in seconds before the second attempt
            sleep: Blocking delay function, injectable for tests
        """
        self.llm = llm
        self.executor = executor
        self.validator = validator or PolicyValidator()
        self.summarizer = summarizer or llm
        self.backoff_base = backoff_base
        self.sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        """Delay after failed attempt ``attempt`` (1-based)."""
        return self.backoff_base * 2 ** (attempt - 1)

    def _generate(
        self,
        request: str,
        context: RequestContext,
        errors: list[ErrorRecord],
        failed_queries: list[str],
        attempt: int,
        max_attempts: int,
    ) -> CandidateQuery:
        error_context = ""
        if errors:
            numbered = "\n".join(f"{i}. {error}" for i, error in enumerate(errors, 1))
            error_context = f"\nPREVIOUS ERRORS TO AVOID:\n{numbered}"

        system_prompt = self.SYSTEM_PROMPT_TEMPLATE.format(
            attempt=attempt,
            max_attempts=max_attempts,
            schema=context.schema,
            analysis=analyze_schema(context.schema),
            query=request,
            error_context=error_context,
            corrective_actions=get_corrective_actions(errors, failed_queries),
        )
        response = self.llm.generate(
            f"Generate corrected SQL for attempt {attempt}: {request}",
            system_prompt=system_prompt,
            temperature=0.1 + attempt * 0.05,
        )

        sql = clean_sql(response.content or "")
        if not sql:
            raise GenerationError(f"No SQL query generated on attempt {attempt}")
        return CandidateQuery(text=sql, attempt=attempt)

    def _summarize(self, request: str, rows: list[dict[str, Any]]) -> str:
        """Best-effort natural-language answer; never raises."""
        fallback = f"Query executed successfully. Found {len(rows)} results."
        if rows:
            results = f"Found {len(rows)} results: " + json.dumps(
                rows[:3], indent=2, default=str
            )
        else:
            results = "No results found"

        try:
            response = self.summarizer.generate(
                self.SUMMARY_PROMPT_TEMPLATE.format(query=request, results=results),
                system_prompt=self.SUMMARY_SYSTEM_PROMPT,
                temperature=0.3,
            )
            answer = response.content.strip()
        except Exception:
            logger.warning("Failed to generate natural language response", exc_info=True)
            return fallback

        return answer or fallback

    def run_with_retry(
        self,
        request: str,
        context: RequestContext,
        max_attempts: int = 4,
    ) -> QueryResult:
        """
        Turn a natural-language request into executed, summarized results.

        Args:
            request: The user's question in natural language
            context: Per-request context holding the schema
            max_attempts: Attempt budget (at least 1)

        Returns:
            QueryResult; on exhaustion ``error_message`` is set and the full
            error history is attached
        """
        max_attempts = max(1, max_attempts)
        result = QueryResult(original_query=request)
        start = time.perf_counter()
        errors: list[ErrorRecord] = []
        failed_queries: list[str] = []
        candidate: CandidateQuery | None = None
        last_error: Exception | None = None
        log = logger.bind(query=request[:100], max_attempts=max_attempts)

        for attempt in range(1, max_attempts + 1):
            state = RetryState.GENERATING
            log.info("Retry attempt", attempt=attempt)
            try:
                candidate = self._generate(
                    request, context, errors, failed_queries, attempt, max_attempts
                )
                log.info("Generated SQL", attempt=attempt, sql=candidate.text)

                state = RetryState.VALIDATING
                verdict = self.validator.validate(candidate.text)
                if not verdict.valid:
                    raise PolicyViolationError(
                        f"Validation failed: {verdict.message}", rule=verdict.rule
                    )

                state = RetryState.EXECUTING
                rows = self.executor.execute(candidate.text)

                state = RetryState.SUMMARIZING
                answer = self._summarize(request, rows)
            except Exception as e:
                kind = e.kind if isinstance(e, GovernanceError) else _STATE_ERROR_KINDS[state]
                errors.append(
                    ErrorRecord(
                        attempt=attempt,
                        kind=kind,
                        message=f"{type(e).__name__} - {e}",
                    )
                )
                if state != RetryState.GENERATING:
                    failed_queries.append(candidate.text)
                last_error = e
                log.warning("Attempt failed", attempt=attempt, kind=kind.value, error=str(e))

                if attempt < max_attempts:
                    delay = self.backoff_delay(attempt)
                    log.info("Backing off", delay_seconds=delay, next_attempt=attempt + 1)
                    self.sleep(delay)
                continue

            log.info(
                "Retry succeeded",
                state=RetryState.SUCCEEDED.value,
                attempt=attempt,
                row_count=len(rows),
            )
            result.generated_query = candidate.text
            result.is_valid = True
            result.validation_message = verdict.message
            result.rows = rows
            result.final_answer = answer
            result.attempt_count = attempt
            result.error_history = errors
            result.elapsed_time = time.perf_counter() - start
            return result

        log.error("Retry budget exhausted", state=RetryState.FAILED.value)
        result.generated_query = candidate.text if candidate else ""
        result.is_valid = False
        result.validation_message = f"Failed validation on attempt {max_attempts}"
        result.final_answer = f"Unable to answer the question after {max_attempts} attempts."
        result.error_message = f"Failed after {max_attempts} attempts. Last error: {last_error}"
        result.attempt_count = max_attempts
        result.error_history = errors
        result.elapsed_time = time.perf_counter() - start
        return result
