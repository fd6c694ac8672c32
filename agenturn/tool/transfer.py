from agenturn.tool.base import FunctionTool
from agenturn.tool.context import ToolContext


def transfer_to_agent(agent_name: str, tool_context: ToolContext) -> dict:
    """Transfer the question to another agent.

    Use this when another agent is better suited to answer the user's
    question, according to that agent's description.

    Args:
        agent_name: the exact name of the agent to transfer to.
    """
    tool_context.transfer_to_agent(agent_name)
    return {"transferred_to": agent_name}


TRANSFER_TO_AGENT_TOOL_NAME = transfer_to_agent.__name__

transfer_to_agent_tool = FunctionTool(transfer_to_agent)
