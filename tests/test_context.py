"""Tests for invocation state, agents and the agent registry."""

import unittest

import pytest

from agenturn.agents import AgentRegistry, LlmAgent
from agenturn.config import RunConfig
from agenturn.context import CallbackContext, InvocationContext, InvocationCostManager, ReadonlyContext
from agenturn.exceptions import LlmCallsLimitExceededError, NoChatLLMConfigError
from agenturn.tool import BaseTool, FunctionTool

from helpers import ScriptedLlm, make_context


def build_tree():
    c = LlmAgent("c")
    b = LlmAgent("b", sub_agents=[c])
    d = LlmAgent("d")
    root = LlmAgent("root", model=ScriptedLlm(), sub_agents=[b, d])
    return root, b, c, d


# ---------------------------------------------------------------------------
# InvocationContext
# ---------------------------------------------------------------------------


class TestInvocationContext:
    def test_defaults(self):
        root, *_ = build_tree()
        ctx = make_context(root)

        assert ctx.invocation_id.startswith("e-")
        assert ctx.branch == "root"
        assert ctx.end_invocation is False
        assert ctx.llm_call_count == 0
        assert ctx.run_config == RunConfig()

    def test_child_context_shares_invocation_state(self):
        root, b, c, _ = build_tree()
        ctx = make_context(root, state={"k": "v"})
        ctx.end_invocation = True

        child = ctx.create_child_context(b)
        grandchild = child.create_child_context(c)

        assert child.agent is b
        assert child.branch == "root.b"
        assert grandchild.branch == "root.b.c"
        assert child.invocation_id == ctx.invocation_id
        assert child.registry is ctx.registry
        assert child.event_log is ctx.event_log
        assert child.state is ctx.state
        assert child.run_config is ctx.run_config
        assert child.end_invocation is False

    def test_child_context_shares_llm_call_counter(self):
        root, b, *_ = build_tree()
        ctx = make_context(root)
        child = ctx.create_child_context(b)

        ctx.increment_llm_call_count()
        child.increment_llm_call_count()

        assert ctx.llm_call_count == 2
        assert child.llm_call_count == 2


class TestInvocationCostManager:
    def test_limit(self):
        manager = InvocationCostManager()
        config = RunConfig(max_llm_calls=2)
        manager.increment_and_enforce_llm_calls_limit(config)
        manager.increment_and_enforce_llm_calls_limit(config)
        with pytest.raises(LlmCallsLimitExceededError) as exc_info:
            manager.increment_and_enforce_llm_calls_limit(config)
        assert exc_info.value.limit == 2
        assert "2" in str(exc_info.value)

    def test_non_positive_limit_disables_check(self):
        manager = InvocationCostManager()
        for _ in range(5):
            manager.increment_and_enforce_llm_calls_limit(RunConfig(max_llm_calls=0))
        assert manager.llm_call_count == 5


class TestCallbackContext:
    def test_state_is_read_only_and_writes_go_to_delta(self):
        root, *_ = build_tree()
        ctx = make_context(root, state={"a": 1})
        callback_context = CallbackContext(ctx)

        with pytest.raises(TypeError):
            callback_context.state["a"] = 2
        callback_context.set_state("a", 2)

        assert ctx.state == {"a": 1}
        assert callback_context.actions.state_delta == {"a": 2}
        assert callback_context.invocation_context is ctx

    def test_readonly_context(self):
        root, b, *_ = build_tree()
        child = make_context(root).create_child_context(b)
        readonly = ReadonlyContext(child)

        assert readonly.agent_name == "b"
        assert readonly.branch == "root.b"
        assert readonly.invocation_id == child.invocation_id


# ---------------------------------------------------------------------------
# Agent tree
# ---------------------------------------------------------------------------


class TestAgentTree:
    def test_parent_links_and_root(self):
        root, b, c, d = build_tree()
        assert c.parent_agent is b
        assert c.root_agent is root
        assert root.find_agent("c") is c
        assert b.find_sub_agent("d") is None
        assert root.find_agent("missing") is None

    def test_agent_cannot_have_two_parents(self):
        child = LlmAgent("child")
        LlmAgent("first", sub_agents=[child])
        with pytest.raises(ValueError):
            LlmAgent("second", sub_agents=[child])

    def test_invalid_names(self):
        with pytest.raises(ValueError):
            LlmAgent("not valid")
        with pytest.raises(ValueError):
            LlmAgent("user")

    def test_model_is_inherited(self):
        root, b, c, _ = build_tree()
        assert c.canonical_model is root.model

    def test_missing_model(self):
        with pytest.raises(NoChatLLMConfigError):
            _ = LlmAgent("orphan").canonical_model

    def test_callables_become_function_tools(self):
        def ping() -> str:
            return "pong"

        tool = FunctionTool(ping, name="ping2")
        agent = LlmAgent("a", tools=[ping, tool])
        tools = agent.canonical_tools
        assert all(isinstance(t, BaseTool) for t in tools)
        assert [t.name for t in tools] == ["ping", "ping2"]
        assert tools[1] is tool

    def test_callables_are_wrapped_once(self):
        def ping() -> str:
            return "pong"

        agent = LlmAgent("a", tools=[ping])

        first, second = agent.canonical_tools, agent.canonical_tools
        assert first[0] is second[0]
        assert first is not second

    def test_callbacks_normalized_to_lists(self):
        def callback(*args):
            return None

        agent = LlmAgent("a", before_model_callback=callback, after_tool_callback=[callback, callback])
        assert agent.canonical_before_model_callbacks == [callback]
        assert agent.canonical_after_model_callbacks == []
        assert len(agent.canonical_after_tool_callbacks) == 2


class TestAgentRegistry:
    def test_indexes_whole_tree(self):
        root, b, c, d = build_tree()
        registry = AgentRegistry.from_root(root)

        assert registry.names() == ["root", "b", "c", "d"]
        assert registry.get("c") is c
        assert registry.get("missing") is None
        assert "d" in registry
        assert len(registry) == 4

    def test_duplicate_name_keeps_first_in_depth_first_order(self):
        first = LlmAgent("dup")
        second = LlmAgent("dup")
        root = LlmAgent("root", sub_agents=[LlmAgent("a", sub_agents=[first]), second])

        registry = AgentRegistry.from_root(root)

        assert registry.get("dup") is first


class TestInstructionProviders(unittest.IsolatedAsyncioTestCase):
    async def test_string_instruction_needs_rendering(self):
        agent = LlmAgent("a", instruction="Hello {{ name }}")
        ctx = ReadonlyContext(make_context(LlmAgent("r", model=ScriptedLlm())))
        self.assertEqual(await agent.canonical_instruction(ctx), ("Hello {{ name }}", False))

    async def test_async_provider_is_used_verbatim(self):
        async def provider(ctx: ReadonlyContext) -> str:
            return f"You are {ctx.agent_name} {{{{ not a template }}}}"

        agent = LlmAgent("a", model=ScriptedLlm(), instruction=provider)
        ctx = ReadonlyContext(make_context(agent))

        instruction, from_provider = await agent.canonical_instruction(ctx)

        self.assertEqual(instruction, "You are a {{ not a template }}")
        self.assertTrue(from_provider)


if __name__ == '__main__':
    unittest.main()
