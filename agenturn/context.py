"""Invocation-scoped state for the turn loop.

An invocation starts with one user message and ends with a final response.
It may span several agents (through transfers) and several cycles per agent.
Every agent reached through a transfer runs in a child context that shares
the invocation id, the cost manager, the agent registry, the event log and
the session state of its parent, but owns its own ``end_invocation`` flag.
"""

import logging
import uuid
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from agenturn.config.run import RunConfig
from agenturn.events import EventActions, EventLog
from agenturn.exceptions import LlmCallsLimitExceededError
from agenturn.types import Content, StreamingMode

if TYPE_CHECKING:
    from agenturn.agents.base import BaseAgent
    from agenturn.agents.registry import AgentRegistry

logger = logging.getLogger(__name__)


def new_invocation_id() -> str:
    return f"e-{uuid.uuid4()}"


class InvocationCostManager:
    """Counts model calls across the whole delegation tree and enforces the limit."""

    def __init__(self):
        self._number_of_llm_calls = 0

    @property
    def llm_call_count(self) -> int:
        return self._number_of_llm_calls

    def increment_and_enforce_llm_calls_limit(self, run_config: RunConfig | None) -> None:
        self._number_of_llm_calls += 1
        if run_config and run_config.max_llm_calls > 0 and self._number_of_llm_calls > run_config.max_llm_calls:
            raise LlmCallsLimitExceededError(run_config.max_llm_calls)


class InvocationContext:
    def __init__(
            self,
            *,
            agent: 'BaseAgent',
            registry: 'AgentRegistry',
            invocation_id: str | None = None,
            branch: str | None = None,
            run_config: RunConfig | None = None,
            user_content: Content | None = None,
            event_log: EventLog | None = None,
            state: dict[str, Any] | None = None,
            cost_manager: InvocationCostManager | None = None,
    ):
        self.agent = agent
        self.registry = registry
        self.invocation_id = invocation_id or new_invocation_id()
        # the agent running at the top of the invocation owns the first path segment
        self.branch = branch or agent.name
        self.run_config = run_config or RunConfig()
        self.user_content = user_content
        self.event_log = event_log if event_log is not None else EventLog()
        self.state: dict[str, Any] = state if state is not None else {}
        self.end_invocation = False
        self._cost_manager = cost_manager or InvocationCostManager()

    @property
    def streaming_mode(self) -> StreamingMode:
        return self.run_config.streaming_mode

    @property
    def llm_call_count(self) -> int:
        return self._cost_manager.llm_call_count

    def increment_llm_call_count(self) -> None:
        """Count one model call; raises LlmCallsLimitExceededError past the limit."""
        self._cost_manager.increment_and_enforce_llm_calls_limit(self.run_config)

    def create_child_context(self, agent: 'BaseAgent') -> 'InvocationContext':
        """Derive the context a transferred-to agent runs in."""
        return InvocationContext(
            agent=agent,
            registry=self.registry,
            invocation_id=self.invocation_id,
            branch=f"{self.branch}.{agent.name}",
            run_config=self.run_config,
            user_content=self.user_content,
            event_log=self.event_log,
            state=self.state,
            cost_manager=self._cost_manager,
        )


class ReadonlyContext:
    """Read-only view handed to instruction providers and tool listings."""

    def __init__(self, invocation_context: InvocationContext):
        self._invocation_context = invocation_context

    @property
    def invocation_id(self) -> str:
        return self._invocation_context.invocation_id

    @property
    def agent_name(self) -> str:
        return self._invocation_context.agent.name

    @property
    def branch(self) -> str:
        return self._invocation_context.branch

    @property
    def state(self) -> Mapping[str, Any]:
        return MappingProxyType(self._invocation_context.state)


class CallbackContext(ReadonlyContext):
    """Context handed to interceptors.

    Interceptors communicate with the loop only through ``actions``, the
    actions object of the event being built, and ``state``, whose writes are
    recorded as a state delta on those actions.
    """

    def __init__(self, invocation_context: InvocationContext, event_actions: EventActions | None = None):
        super().__init__(invocation_context)
        self.actions = event_actions if event_actions is not None else EventActions()

    def set_state(self, key: str, value: Any) -> None:
        self.actions.state_delta[key] = value

    @property
    def invocation_context(self) -> InvocationContext:
        return self._invocation_context
