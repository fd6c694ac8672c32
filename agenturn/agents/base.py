from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, AsyncGenerator, Optional

from agenturn.events import Event

if TYPE_CHECKING:
    from agenturn.context import InvocationContext


class BaseAgent(ABC):
    """A node in the agent tree.

    Sub-agents are adopted on construction; an agent can have only one parent.
    """

    def __init__(
            self,
            name: str,
            description: str = "",
            sub_agents: list['BaseAgent'] | None = None,
    ):
        if not name.isidentifier():
            raise ValueError(f"Agent name must be a valid identifier, got {name!r}")
        if name == "user":
            raise ValueError("Agent name cannot be 'user', it is reserved for end-user input")
        self.name = name
        self.description = description
        self.parent_agent: Optional['BaseAgent'] = None
        self.sub_agents: list['BaseAgent'] = []
        for sub_agent in sub_agents or []:
            self.add_sub_agent(sub_agent)

    def add_sub_agent(self, agent: 'BaseAgent') -> None:
        if agent.parent_agent is not None:
            raise ValueError(
                f"Agent {agent.name} already has a parent agent {agent.parent_agent.name}, "
                f"cannot add it to {self.name}"
            )
        agent.parent_agent = self
        self.sub_agents.append(agent)

    @property
    def root_agent(self) -> 'BaseAgent':
        agent = self
        while agent.parent_agent is not None:
            agent = agent.parent_agent
        return agent

    def find_agent(self, name: str) -> Optional['BaseAgent']:
        """Depth-first search of this agent and its descendants."""
        if self.name == name:
            return self
        return self.find_sub_agent(name)

    def find_sub_agent(self, name: str) -> Optional['BaseAgent']:
        for sub_agent in self.sub_agents:
            if found := sub_agent.find_agent(name):
                return found
        return None

    @abstractmethod
    def run(self, invocation_context: 'InvocationContext') -> AsyncGenerator[Event, None]:
        """Run this agent's turn, yielding every event it produces."""
        pass

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r})"
