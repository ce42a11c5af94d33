"""
API Schemas
===========

Pydantic models for API request/response validation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from sqlguard.models import QueryResult


class QueryRequest(BaseModel):
    """Request body for a governed natural-language query."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Natural language question to answer from the database",
        examples=["Show me all premium customers"],
    )
    agent_mode: bool = Field(
        default=False,
        description="Use the tool-use agent loop instead of the retry controller",
    )
    max_attempts: int | None = Field(
        default=None,
        ge=1,
        le=10,
        description="Attempt budget for the retry controller (default: 4)",
    )
    max_steps: int | None = Field(
        default=None,
        ge=1,
        le=50,
        description="Step budget for the agent loop (default: 10)",
    )


class ErrorKindEnum(str, Enum):
    """Recoverable error classes."""

    POLICY_VIOLATION = "policy_violation"
    GENERATION_FAILURE = "generation_failure"
    EXECUTION_FAILURE = "execution_failure"


class ErrorRecordResponse(BaseModel):
    """Single error history entry."""

    attempt: int = Field(..., description="Attempt (or step) that failed")
    kind: ErrorKindEnum = Field(..., description="Error class")
    message: str = Field(..., description="Recorded error message")


class AgentStepResponse(BaseModel):
    """Single reasoning trace entry."""

    text: str = Field(..., description="Model output for this step")
    action: str | None = Field(None, description="Requested tool")
    action_input: str | None = Field(None, description="Tool input")
    observation: str | None = Field(None, description="System-supplied observation")


class QueryResponse(BaseModel):
    """Response body carrying the full result aggregate."""

    original_query: str = Field(..., description="Original natural language query")
    agent_mode: bool = Field(..., description="Whether the agent loop was used")
    generated_query: str = Field("", description="Last generated SQL")
    is_valid: bool = Field(..., description="Whether the SQL passed policy validation")
    validation_message: str = Field("", description="Policy validator message")
    rows: list[dict[str, Any]] | None = Field(None, description="Execution result rows")
    final_answer: str = Field("", description="Natural language answer")
    error_message: str | None = Field(None, description="Set when the attempt budget ran out")
    attempt_count: int = Field(..., description="Attempts or steps consumed")
    is_retry_success: bool = Field(..., description="Succeeded after more than one attempt")
    error_history: list[ErrorRecordResponse] = Field(default_factory=list)
    elapsed_time: float = Field(..., description="Orchestrator time in seconds")
    reasoning_trace: list[AgentStepResponse] | None = Field(
        None,
        description="Agent reasoning trace (agent mode only)",
    )
    request_id: str = Field(..., description="Unique request identifier")
    processing_time_ms: float = Field(..., description="Processing time in milliseconds")

    @classmethod
    def from_result(
        cls, result: QueryResult, request_id: str, processing_time_ms: float
    ) -> "QueryResponse":
        trace = None
        if result.reasoning_trace is not None:
            trace = [
                AgentStepResponse(
                    text=step.text,
                    action=step.action,
                    action_input=step.action_input,
                    observation=step.observation,
                )
                for step in result.reasoning_trace
            ]

        return cls(
            original_query=result.original_query,
            agent_mode=result.agent_mode,
            generated_query=result.generated_query,
            is_valid=result.is_valid,
            validation_message=result.validation_message,
            rows=result.rows,
            final_answer=result.final_answer,
            error_message=result.error_message,
            attempt_count=result.attempt_count,
            is_retry_success=result.retried,
            error_history=[
                ErrorRecordResponse(
                    attempt=error.attempt,
                    kind=ErrorKindEnum(error.kind.value),
                    message=error.message,
                )
                for error in result.error_history
            ],
            elapsed_time=result.elapsed_time,
            reasoning_trace=trace,
            request_id=request_id,
            processing_time_ms=processing_time_ms,
        )


class SchemaResponse(BaseModel):
    """Database schema description."""

    schema_text: str = Field(..., description="Human-readable schema description")


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(..., description="Overall health status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual component health checks",
    )


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(..., description="Whether the service is ready to handle requests")
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual readiness checks",
    )


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    request_id: str | None = Field(None, description="Request ID if available")
    details: dict[str, Any] | None = Field(None, description="Additional error details")
