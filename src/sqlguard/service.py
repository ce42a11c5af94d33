"""
Query Service
=============

Boundary facade: picks the orchestrator for a request and builds the
per-request context. Governance outcomes always come back as data.
"""

import structlog

from sqlguard.agent import ToolUseAgent
from sqlguard.context import RequestContext
from sqlguard.database.executor import QueryExecutor
from sqlguard.database.schema import SchemaProvider
from sqlguard.llm.base import LLMInterface
from sqlguard.models import QueryResult
from sqlguard.retry import RetryController
from sqlguard.sandbox import PolicyValidator

logger = structlog.get_logger(__name__)


class QueryService:
    """Shared collaborators plus the two orchestrators built on them."""

    def __init__(
        self,
        llm: LLMInterface,
        executor: QueryExecutor,
        schema_provider: SchemaProvider,
        agent_llm: LLMInterface | None = None,
        max_attempts: int = 4,
        max_steps: int = 10,
        backoff_base: float = 0.5,
        observation_limit: int = 2000,
    ) -> None:
        """
        Initialize the service.

        Args:
            llm: Generator for the retry controller and summaries
            executor: Data engine
            schema_provider: Source of schema text
            agent_llm: Generator for the tool-use loop (defaults to ``llm``)
            max_attempts: Default attempt budget
            max_steps: Default step budget
            backoff_base: Retry backoff base delay in seconds
            observation_limit: Maximum length of a run_sql observation
        """
        validator = PolicyValidator()
        self.executor = executor
        self.schema_provider = schema_provider
        self.max_attempts = max_attempts
        self.max_steps = max_steps
        self.retry_controller = RetryController(
            llm=llm,
            executor=executor,
            validator=validator,
            backoff_base=backoff_base,
        )
        self.tool_agent = ToolUseAgent(
            llm=agent_llm or llm,
            executor=executor,
            validator=validator,
            observation_limit=observation_limit,
        )

    def answer(
        self,
        query: str,
        agent_mode: bool = False,
        max_attempts: int | None = None,
        max_steps: int | None = None,
    ) -> QueryResult:
        """
        Answer a natural-language question.

        Raises:
            SchemaError: if the schema cannot be read before the retry
                controller starts
        """
        context = RequestContext(self.schema_provider)

        if agent_mode:
            logger.info("Running tool-use loop", query=query[:100])
            return self.tool_agent.run_tool_loop(
                query, context, max_steps=max_steps or self.max_steps
            )

        # The generation prompt needs the schema; fail before the loop starts
        schema = context.schema
        logger.info("Running retry controller", query=query[:100], schema_chars=len(schema))
        return self.retry_controller.run_with_retry(
            query, context, max_attempts=max_attempts or self.max_attempts
        )

    def close(self) -> None:
        """Close each distinct generator once."""
        closed = []
        for llm in (self.retry_controller.llm, self.tool_agent.llm):
            if not any(llm is seen for seen in closed):
                llm.close()
                closed.append(llm)
