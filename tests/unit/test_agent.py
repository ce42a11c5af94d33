"""
Unit Tests for ToolUseAgent
===========================

Tests for the tool-use reasoning loop.
"""

import json

from sqlguard.agent import (
    FORMAT_CORRECTION,
    TIMEOUT_ANSWER,
    TRUNCATION_MARKER,
    ToolUseAgent,
)
from sqlguard.llm.mock import MockLLM
from sqlguard.models import ErrorKind

REQUEST = "How many customers are there?"


def action(name: str, action_input: str) -> str:
    return f"Thought: I should use {name}.\nAction: {name}\nAction Input: {action_input}"


class TestAgentFinish:
    """Tests for how the loop ends."""

    def test_immediate_final_answer(self, executor, context) -> None:
        llm = MockLLM(script=["Thought: I now know the final answer\nFinal Answer: 42"])
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        assert result.agent_mode is True
        assert result.final_answer == "42"
        assert len(result.reasoning_trace) == 1
        assert result.attempt_count == 1
        assert result.generated_query == ""
        assert result.rows is None
        assert result.error_message is None
        assert executor.queries == []

    def test_generation_uses_stop_sequence(self, executor, context) -> None:
        llm = MockLLM(script=["Final Answer: done"])
        ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        call = llm.calls[0]
        assert call["stop"] == ["Observation:"]
        assert call["temperature"] == 0
        assert call["prompt"].endswith(f"Question: {REQUEST}\n")
        assert "list_tables" in call["prompt"]

    def test_timeout(self, executor, context) -> None:
        llm = MockLLM(script=["Thought: still thinking"])
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context, max_steps=3)

        assert result.final_answer == TIMEOUT_ANSWER
        assert result.attempt_count == 3
        assert len(result.reasoning_trace) == 3
        assert result.error_message is None
        assert len(llm.calls) == 3

    def test_answer_after_query(self, executor, context) -> None:
        llm = MockLLM(
            script=[
                action("run_sql", "SELECT COUNT(*) AS n FROM customers"),
                "Thought: I now know the final answer\nFinal Answer: There is 1 customer.",
            ]
        )
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        assert result.final_answer == "There is 1 customer."
        assert result.generated_query == "SELECT COUNT(*) AS n FROM customers"
        assert result.is_valid is True
        assert result.rows == [{"id": 1, "name": "Alice"}]
        assert result.attempt_count == 2
        assert len(result.reasoning_trace) == 2


class TestAgentTools:
    """Tests for tool dispatch and observations."""

    def test_list_tables(self, executor, context) -> None:
        llm = MockLLM(script=[action("list_tables", "none"), "Final Answer: three"])
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        step = result.reasoning_trace[0]
        assert step.action == "list_tables"
        assert step.observation == "customers, orders, products"
        assert "Observation: customers, orders, products" in llm.calls[1]["prompt"]

    def test_get_schema_filters_tables(self, executor, context) -> None:
        llm = MockLLM(script=[action("get_schema", "orders"), "Final Answer: ok"])
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        observation = result.reasoning_trace[0].observation
        assert observation.startswith("[TABLE] orders")
        assert "customer_id" in observation
        assert "[TABLE] customers" not in observation

    def test_get_schema_unknown_table(self, executor, context) -> None:
        llm = MockLLM(script=[action("get_schema", "invoices"), "Final Answer: ok"])
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        assert result.reasoning_trace[0].observation == "No matching tables found in schema."

    def test_run_sql_returns_json_rows(self, executor, context) -> None:
        llm = MockLLM(script=[action("run_sql", "SELECT * FROM customers"), "Final Answer: ok"])
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        observation = result.reasoning_trace[0].observation
        assert json.loads(observation) == [{"id": 1, "name": "Alice"}]
        assert executor.queries == ["SELECT * FROM customers"]

    def test_run_sql_strips_fences(self, executor, context) -> None:
        llm = MockLLM(
            script=[action("run_sql", "```sql\nSELECT * FROM orders\n```"), "Final Answer: ok"]
        )
        ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        assert executor.queries == ["SELECT * FROM orders"]

    def test_blocked_query_never_executed(self, executor, context) -> None:
        llm = MockLLM(script=[action("run_sql", "DROP TABLE customers"), "Final Answer: no"])
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        observation = result.reasoning_trace[0].observation
        assert observation.startswith("Error: Query validation failed. ")
        assert "'DROP'" in observation
        assert executor.queries == []
        assert result.is_valid is False
        assert result.generated_query == "DROP TABLE customers"
        assert result.error_history[0].kind == ErrorKind.POLICY_VIOLATION
        assert result.error_history[0].attempt == 1

    def test_observation_truncated(self, executor, context) -> None:
        executor.rows = [{"id": i, "name": "x" * 20} for i in range(50)]
        llm = MockLLM(script=[action("run_sql", "SELECT * FROM customers"), "Final Answer: ok"])
        agent = ToolUseAgent(llm, executor, observation_limit=100)
        result = agent.run_tool_loop(REQUEST, context)

        observation = result.reasoning_trace[0].observation
        assert observation.endswith(TRUNCATION_MARKER)
        assert len(observation) == 100 + len(TRUNCATION_MARKER)

    def test_short_observation_untouched(self, executor) -> None:
        agent = ToolUseAgent(MockLLM(), executor, observation_limit=100)
        assert agent.truncate("short") == "short"

    def test_execution_error_observed(self, failing_executor, context) -> None:
        llm = MockLLM(
            script=[action("run_sql", "SELECT total_spent FROM customers"), "Final Answer: ok"]
        )
        result = ToolUseAgent(llm, failing_executor).run_tool_loop(REQUEST, context)

        observation = result.reasoning_trace[0].observation
        assert observation == "Error: SQL execution failed: no such column: total_spent"
        assert result.error_history[0].kind == ErrorKind.EXECUTION_FAILURE
        assert result.final_answer == "ok"

    def test_unknown_action(self, executor, context) -> None:
        llm = MockLLM(script=[action("drop_everything", "now"), "Final Answer: ok"])
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        assert result.reasoning_trace[0].observation == (
            "Error: Unknown action 'drop_everything'"
        )
        assert executor.queries == []


class TestAgentFormat:
    """Tests for malformed model output and generator failures."""

    def test_format_correction(self, executor, context) -> None:
        llm = MockLLM(script=["I am not sure what to do.", "Final Answer: ok"])
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        assert result.reasoning_trace[0].observation == FORMAT_CORRECTION
        assert f"Observation: {FORMAT_CORRECTION}" in llm.calls[1]["prompt"]

    def test_thought_without_action(self, executor, context) -> None:
        llm = MockLLM(script=["Thought: let me think", "Final Answer: ok"])
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        step = result.reasoning_trace[0]
        assert step.action is None
        assert step.observation is None
        assert result.attempt_count == 2

    def test_generator_failure_survived(self, executor, context) -> None:
        llm = MockLLM(script=[RuntimeError("rate limited"), "Final Answer: ok"])
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        assert result.final_answer == "ok"
        assert result.reasoning_trace[0].observation == "Error: rate limited"
        assert result.error_history[0].kind == ErrorKind.GENERATION_FAILURE

    def test_schema_fetched_once(self, executor, context, schema_provider) -> None:
        llm = MockLLM(
            script=[
                action("list_tables", "none"),
                action("get_schema", "customers"),
                action("get_schema", "orders"),
                "Final Answer: ok",
            ]
        )
        ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        assert schema_provider.calls == 1


class TestAgentAggregate:
    """Tests for the fields taken from the last run_sql call."""

    def test_rejected_query_clears_earlier_rows(self, executor, context) -> None:
        llm = MockLLM(
            script=[
                action("run_sql", "SELECT * FROM customers"),
                action("run_sql", "DELETE FROM customers"),
                "Final Answer: done",
            ]
        )
        result = ToolUseAgent(llm, executor).run_tool_loop(REQUEST, context)

        assert result.generated_query == "DELETE FROM customers"
        assert result.is_valid is False
        assert result.rows is None
        assert executor.queries == ["SELECT * FROM customers"]

    def test_failed_execution_clears_earlier_rows(self, executor, context) -> None:
        llm = MockLLM(
            script=[
                action("run_sql", "SELECT * FROM customers"),
                action("run_sql", "SELECT total_spent FROM customers"),
                "Final Answer: done",
            ]
        )
        agent = ToolUseAgent(llm, executor)
        original_execute = executor.execute

        def execute(sql: str):
            if "total_spent" in sql:
                executor.error = "SQL execution failed: no such column: total_spent"
            return original_execute(sql)

        executor.execute = execute
        result = agent.run_tool_loop(REQUEST, context)

        assert result.generated_query == "SELECT total_spent FROM customers"
        assert result.is_valid is True
        assert result.rows is None
