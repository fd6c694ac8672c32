"""End-to-end tests for the Runner: event logging, state and multi-turn conversations."""

import tempfile
import unittest

import yaml
from pydantic import BaseModel

from agenturn.agents import LlmAgent
from agenturn.config import AgentTurnConfig, OpenAIChatConfig, ChatLLMType, RunConfig
from agenturn.llm import OpenAIModel, get_model_call_logger, reset_model_call_logger
from agenturn.runner import Runner
from agenturn.tool import ToolContext
from agenturn.types import StreamingMode

from helpers import ScriptedLlm, call_response, collect, partial_text, text_response


class Verdict(BaseModel):
    approved: bool


class TestRunner(unittest.IsolatedAsyncioTestCase):

    async def test_events_are_logged_with_the_user_message(self):
        llm = ScriptedLlm(text_response("Hello!"))
        runner = Runner(LlmAgent("root", model=llm))

        events = await collect(runner.run("Hi"))

        logged = runner.event_log.events
        self.assertEqual([e.author for e in logged], ["user", "root"])
        self.assertEqual(logged[0].content.text, "Hi")
        self.assertEqual(logged[1].id, events[0].id)
        self.assertEqual(logged[0].invocation_id, logged[1].invocation_id)

    async def test_partial_events_are_not_logged(self):
        llm = ScriptedLlm([partial_text("Hel"), partial_text("lo"), text_response("Hello")])
        runner = Runner(LlmAgent("root", model=llm), RunConfig(streaming_mode=StreamingMode.SSE))

        events = await collect(runner.run("Hi"))

        self.assertEqual(len(events), 3)
        self.assertEqual(len(runner.event_log), 2)

    async def test_second_turn_sees_the_conversation(self):
        llm = ScriptedLlm(text_response("Paris"), text_response("About 2 million"))
        runner = Runner(LlmAgent("root", model=llm))

        await collect(runner.run("Capital of France?"))
        await collect(runner.run("Population?"))

        second_request = llm.requests[1]
        self.assertEqual([c.text for c in second_request.contents],
                         ["Capital of France?", "Paris", "Population?"])
        self.assertEqual([c.role for c in second_request.contents], ["user", "model", "user"])

    async def test_tool_round_trip_reaches_the_model(self):
        def count_words(text: str, tool_context: ToolContext) -> dict:
            words = len(text.split())
            tool_context.set_state("last_count", words)
            return {"words": words}

        llm = ScriptedLlm(call_response("count_words", {"text": "one two three"}), text_response("3 words"))
        runner = Runner(LlmAgent("root", model=llm, tools=[count_words]))

        await collect(runner.run("Count: one two three"))

        contents = llm.requests[1].contents
        self.assertEqual(contents[1].parts[0].function_call.name, "count_words")
        # client-side ids never reach the model
        self.assertIsNone(contents[1].parts[0].function_call.id)
        self.assertEqual(contents[2].parts[0].function_response.response, {"words": 3})
        self.assertEqual(runner.state["last_count"], 3)

    async def test_initial_state_and_output_key(self):
        llm = ScriptedLlm(text_response('{"approved": true}'))
        agent = LlmAgent(
            "reviewer",
            model=llm,
            instruction="Review for {{ team }}.",
            output_schema=Verdict,
            output_key="verdict",
        )
        runner = Runner(agent)

        await collect(runner.run("Please review", state={"team": "infra"}))

        self.assertIn("Review for infra.", llm.requests[0].system_instruction)
        self.assertEqual(runner.state["verdict"], {"approved": True})

    async def test_transfer_state_and_log(self):
        llm_root = ScriptedLlm(call_response("transfer_to_agent", {"agent_name": "billing"}))
        llm_billing = ScriptedLlm(text_response("Your invoice is paid."))
        billing = LlmAgent("billing", "Invoices", model=llm_billing, output_key="billing_answer")
        root = LlmAgent("root", model=llm_root, sub_agents=[billing])
        runner = Runner(root)

        events = await collect(runner.run("Is my invoice paid?"))

        self.assertEqual(events[-1].author, "billing")
        self.assertEqual(runner.state["billing_answer"], "Your invoice is paid.")
        self.assertEqual(len(runner.event_log), 4)
        billing_contents = llm_billing.requests[0].contents
        self.assertEqual(billing_contents[0].text, "Is my invoice paid?")
        self.assertEqual(billing_contents[1].parts[0].text, "For context:")

    async def test_branch_starts_at_the_root_agent(self):
        llm_root = ScriptedLlm(call_response("transfer_to_agent", {"agent_name": "sub_a"}))
        sub_a = LlmAgent("sub_a", model=ScriptedLlm(text_response("done")))
        runner = Runner(LlmAgent("root", model=llm_root, sub_agents=[sub_a]))

        events = await collect(runner.run("hi"))

        self.assertEqual([(e.author, e.branch) for e in events],
                         [("root", "root"), ("root", "root"), ("sub_a", "root.sub_a")])
        self.assertIsNone(runner.event_log.events[0].branch)


class TestRunnerFromConfig(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.log_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        reset_model_call_logger()
        self.log_dir.cleanup()

    async def test_model_and_ledger_from_config(self):
        config = AgentTurnConfig(
            chat_llm=OpenAIChatConfig(type=ChatLLMType.OpenAI, model="gpt-4o-mini", api_key="sk-test"),
            run=RunConfig(max_llm_calls=3),
            log_directory=self.log_dir.name,
        )
        agent = LlmAgent("root")

        runner = Runner.from_config(agent, config)

        self.assertIsInstance(agent.model, OpenAIModel)
        self.assertEqual(runner.run_config.max_llm_calls, 3)
        self.assertIsNotNone(get_model_call_logger())

    async def test_ledger_records_calls(self):
        config = AgentTurnConfig(log_directory=self.log_dir.name)
        llm = ScriptedLlm(call_response("transfer_to_agent", {"agent_name": "helper"}))
        helper = LlmAgent("helper", model=ScriptedLlm(text_response("done")))
        runner = Runner.from_config(LlmAgent("root", model=llm, sub_agents=[helper]), config)

        events = await collect(runner.run("go"))

        ledger = get_model_call_logger()
        calls = ledger.get_calls(events[0].invocation_id)
        self.assertEqual([call.agent_name for call in calls], ["root", "helper"])
        self.assertEqual(calls[0].response.function_calls, ["transfer_to_agent"])
        self.assertIn("transfer_to_agent", calls[0].request.tools)

        path = ledger.dump_to_file("ledger.yaml")
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        self.assertEqual(len(data["invocations"][0]["calls"]), 2)
        self.assertEqual(data["invocations"][0]["calls"][1]["response"]["text"], "done")

    async def test_no_ledger_without_log_directory(self):
        llm = ScriptedLlm(text_response("ok"))
        runner = Runner.from_config(LlmAgent("root", model=llm), AgentTurnConfig())

        await collect(runner.run("hi"))

        self.assertIsNone(get_model_call_logger())


if __name__ == '__main__':
    unittest.main()
