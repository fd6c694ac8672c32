import logging

from agenturn.agents.base import BaseAgent

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Name index over a whole agent tree, built once per invocation.

    Transfers resolve through this index instead of walking the live tree, so
    a transfer target can be any agent in the tree, not only a child.
    """

    def __init__(self, agents: dict[str, BaseAgent]):
        self._agents = agents

    @classmethod
    def from_root(cls, root: BaseAgent) -> 'AgentRegistry':
        agents: dict[str, BaseAgent] = {}
        stack = [root]
        while stack:
            agent = stack.pop()
            if agent.name in agents:
                # first agent in depth-first order keeps the name
                logger.warning(f"Duplicate agent name {agent.name} in the agent tree, keeping the first one")
            else:
                agents[agent.name] = agent
            stack.extend(reversed(agent.sub_agents))
        return cls(agents)

    def get(self, name: str) -> BaseAgent | None:
        return self._agents.get(name)

    def names(self) -> list[str]:
        return list(self._agents)

    def __contains__(self, name: str) -> bool:
        return name in self._agents

    def __len__(self) -> int:
        return len(self._agents)
