"""
Tool-Use Agent
==============

ReAct-style loop: the model reasons and requests tools, the system runs the
tools and supplies the observations.
"""

import json
import re
import time
from enum import Enum

import structlog

from sqlguard.context import RequestContext
from sqlguard.database.executor import QueryExecutor
from sqlguard.database.schema import extract_table_names, filter_schema_for_tables
from sqlguard.llm.base import LLMInterface
from sqlguard.models import AgentStep, ErrorKind, ErrorRecord, QueryResult
from sqlguard.retry import clean_sql
from sqlguard.sandbox import PolicyValidator

logger = structlog.get_logger(__name__)

FINAL_ANSWER_MARKER = "Final Answer:"
THOUGHT_MARKER = "Thought:"
OBSERVATION_MARKER = "Observation:"
TRUNCATION_MARKER = "... (truncated)"
TIMEOUT_ANSWER = "Agent timed out after maximum steps."
FORMAT_CORRECTION = "Invalid format. Please use Thought, Action, Action Input."

_ACTION = re.compile(r"Action:\s*(.+?)\r?\nAction Input:\s*(.+)", re.DOTALL)
_FINAL_ANSWER = re.compile(r"Final Answer:\s*(.+)", re.DOTALL)


class AgentState(Enum):
    THINKING = "thinking"
    ACTING = "acting"
    OBSERVING = "observing"
    DONE = "done"
    TIMED_OUT = "timed_out"


class ToolUseAgent:
    """
    Bounded step loop interleaving model output with tool observations.

    Tools:
    - list_tables: comma-joined table names
    - get_schema: schema sections for comma-separated table names
    - run_sql: validated, then executed; rows serialized as JSON
    """

    SYSTEM_PROMPT = "You are a helpful SQL agent."

    INSTRUCTIONS = """You are a smart SQL Agent. You have access to the following tools:
- list_tables(): Returns a list of all tables in the database.
- get_schema(table_names): Returns the schema for the specified tables (comma separated).
- run_sql(query): Executes a SQL query and returns the results (JSON format).

Use the following format:
Question: the input question
Thought: you should always think about what to do
Action: the action to take, should be one of [list_tables, get_schema, run_sql]
Action Input: the input to the action
Observation: the result of the action
... (this Thought/Action/Action Input/Observation can repeat N times)
Thought: I now know the final answer
Final Answer: the final answer to the original input question
"""

    def __init__(
        self,
        llm: LLMInterface,
        executor: QueryExecutor,
        validator: PolicyValidator | None = None,
        observation_limit: int = 2000,
    ) -> None:
        self.llm = llm
        self.executor = executor
        self.validator = validator or PolicyValidator()
        self.observation_limit = observation_limit

    def truncate(self, observation: str) -> str:
        if len(observation) > self.observation_limit:
            return observation[: self.observation_limit] + TRUNCATION_MARKER
        return observation

    def run_tool_loop(
        self,
        request: str,
        context: RequestContext,
        max_steps: int = 10,
    ) -> QueryResult:
        """
        Answer a request by letting the model call tools.

        Args:
            request: The user's question in natural language
            context: Per-request context holding the schema provider
            max_steps: Step budget

        Returns:
            QueryResult with ``reasoning_trace`` populated. Running out of
            steps is a normal outcome with a fixed timeout answer.
        """
        result = QueryResult(original_query=request, agent_mode=True)
        start = time.perf_counter()
        trace: list[AgentStep] = []
        run = _ToolRun(self, context)
        transcript = f"{self.INSTRUCTIONS}\nQuestion: {request}\n"
        log = logger.bind(query=request[:100], max_steps=max_steps)

        for step in range(1, max_steps + 1):
            try:
                completion = self.llm.generate(
                    transcript,
                    system_prompt=self.SYSTEM_PROMPT,
                    stop=[OBSERVATION_MARKER],
                    temperature=0,
                ).content
            except Exception as e:
                log.warning("Agent generation failed", step=step, error=str(e))
                observation = f"Error: {e}"
                run.record_error(step, ErrorKind.GENERATION_FAILURE, str(e))
                trace.append(AgentStep(text="", observation=observation))
                transcript += f"\n{OBSERVATION_MARKER} {observation}\n"
                continue

            transcript += completion + "\n"

            if FINAL_ANSWER_MARKER in completion:
                match = _FINAL_ANSWER.search(completion)
                answer = match.group(1).strip() if match else completion.strip()
                trace.append(AgentStep(text=completion))
                log.info("Agent finished", state=AgentState.DONE.value, steps=step)
                return run.finish(result, answer, trace, step, start)

            action_match = _ACTION.search(completion)
            if action_match:
                action = action_match.group(1).strip()
                action_input = action_match.group(2).strip()
                observation = run.dispatch(step, action, action_input)

                trace.append(
                    AgentStep(
                        text=completion,
                        action=action,
                        action_input=action_input,
                        observation=observation,
                    )
                )
                transcript += f"\n{OBSERVATION_MARKER} {observation}\n"
                log.info("Agent step", state=AgentState.OBSERVING.value, step=step, action=action)
            elif THOUGHT_MARKER not in completion:
                trace.append(AgentStep(text=completion, observation=FORMAT_CORRECTION))
                transcript += f"\n{OBSERVATION_MARKER} {FORMAT_CORRECTION}\n"
                log.info("Agent output malformed", step=step)
            else:
                trace.append(AgentStep(text=completion))

        log.warning("Agent timed out", state=AgentState.TIMED_OUT.value, steps=max_steps)
        return run.finish(result, TIMEOUT_ANSWER, trace, max_steps, start)


class _ToolRun:
    """Tool dispatch and bookkeeping for a single request."""

    def __init__(self, agent: ToolUseAgent, context: RequestContext) -> None:
        self.agent = agent
        self.context = context
        self.errors: list[ErrorRecord] = []
        self.last_sql = ""
        self.last_verdict = None
        self.last_rows = None

    def record_error(self, step: int, kind: ErrorKind, message: str) -> None:
        self.errors.append(ErrorRecord(attempt=step, kind=kind, message=message))

    def dispatch(self, step: int, action: str, action_input: str) -> str:
        """Run one tool. Failures become error observations."""
        try:
            if action == "list_tables":
                return ", ".join(extract_table_names(self.context.schema))
            if action == "get_schema":
                return filter_schema_for_tables(self.context.schema, action_input)
            if action == "run_sql":
                return self.run_sql(step, action_input)
            return f"Error: Unknown action '{action}'"
        except Exception as e:
            logger.warning("Tool failed", action=action, error=str(e))
            self.record_error(step, getattr(e, "kind", ErrorKind.EXECUTION_FAILURE), str(e))
            return f"Error: {e}"

    def run_sql(self, step: int, action_input: str) -> str:
        sql = clean_sql(action_input)
        verdict = self.agent.validator.validate(sql)
        self.last_sql = sql
        self.last_verdict = verdict
        self.last_rows = None
        if not verdict.valid:
            self.record_error(step, ErrorKind.POLICY_VIOLATION, verdict.message)
            return f"Error: Query validation failed. {verdict.message}"

        rows = self.agent.executor.execute(sql)
        self.last_rows = rows
        return self.agent.truncate(json.dumps(rows, default=str))

    def finish(
        self,
        result: QueryResult,
        answer: str,
        trace: list[AgentStep],
        steps: int,
        start: float,
    ) -> QueryResult:
        result.generated_query = self.last_sql
        if self.last_verdict is not None:
            result.is_valid = self.last_verdict.valid
            result.validation_message = self.last_verdict.message
        result.rows = self.last_rows
        result.final_answer = answer
        result.attempt_count = steps
        result.error_history = self.errors
        result.reasoning_trace = trace
        result.elapsed_time = time.perf_counter() - start
        return result
