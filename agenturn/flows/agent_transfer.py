from typing import TYPE_CHECKING, AsyncGenerator

from agenturn.context import InvocationContext
from agenturn.events import Event
from agenturn.flows.processor import BaseRequestProcessor
from agenturn.llm import ModelRequest
from agenturn.tool import TRANSFER_TO_AGENT_TOOL_NAME, ToolContext, transfer_to_agent_tool

if TYPE_CHECKING:
    from agenturn.agents.base import BaseAgent


class AgentTransferRequestProcessor(BaseRequestProcessor):
    """Lets the model hand the conversation to another agent of the tree."""

    async def run(self, invocation_context: InvocationContext, request: ModelRequest) -> AsyncGenerator[Event, None]:
        agent = invocation_context.agent
        targets = get_transfer_targets(agent)
        if not targets:
            return

        request.append_instructions([build_target_agents_instructions(agent, targets)])
        await transfer_to_agent_tool.process_request(ToolContext(invocation_context), request)
        return
        yield


def get_transfer_targets(agent: 'BaseAgent') -> list['BaseAgent']:
    targets = list(agent.sub_agents)
    parent = agent.parent_agent
    if parent is None:
        return targets
    if not getattr(agent, "disallow_transfer_to_parent", False):
        targets.append(parent)
    if not getattr(agent, "disallow_transfer_to_peers", False):
        targets.extend(peer for peer in parent.sub_agents if peer.name != agent.name)
    return targets


def _build_target_agent_info(target: 'BaseAgent') -> str:
    return f"Agent name: {target.name}\nAgent description: {target.description}"


def build_target_agents_instructions(agent: 'BaseAgent', targets: list['BaseAgent']) -> str:
    lines = "\n\n".join(_build_target_agent_info(target) for target in targets)
    instructions = f"""You have a list of other agents to transfer to:

{lines}

If you are the best to answer the question according to your description, you can answer it.

If another agent is better for answering the question according to its description, call `{TRANSFER_TO_AGENT_TOOL_NAME}` function to transfer the question to that agent. When transferring, do not generate any text other than the function call.
"""
    if agent.parent_agent is not None and not getattr(agent, "disallow_transfer_to_parent", False):
        instructions += (
            f"\nYour parent agent is {agent.parent_agent.name}. If neither the other agents nor you are best "
            f"for answering the question according to the descriptions, transfer to your parent agent.\n"
        )
    return instructions
