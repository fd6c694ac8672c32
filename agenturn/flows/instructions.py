from typing import AsyncGenerator

from agenturn.context import InvocationContext, ReadonlyContext
from agenturn.events import Event
from agenturn.flows.processor import BaseRequestProcessor
from agenturn.llm import ModelRequest
from agenturn.template import render_instruction


class InstructionsRequestProcessor(BaseRequestProcessor):
    """Adds the global instruction of the root agent and the agent's own instruction.

    String instructions are jinja2 templates rendered against the session
    state; instructions returned by a provider are used verbatim.
    """

    async def run(self, invocation_context: InvocationContext, request: ModelRequest) -> AsyncGenerator[Event, None]:
        agent = invocation_context.agent
        readonly_context = ReadonlyContext(invocation_context)
        root_agent = agent.root_agent

        if hasattr(root_agent, "canonical_global_instruction") and root_agent.global_instruction:
            instruction, from_provider = await root_agent.canonical_global_instruction(readonly_context)
            if not from_provider:
                instruction = render_instruction(instruction, readonly_context)
            request.append_instructions([instruction])

        if hasattr(agent, "canonical_instruction") and agent.instruction:
            instruction, from_provider = await agent.canonical_instruction(readonly_context)
            if not from_provider:
                instruction = render_instruction(instruction, readonly_context)
            request.append_instructions([instruction])
        return
        yield
