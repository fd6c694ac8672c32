import logging
from contextlib import aclosing
from typing import Any, AsyncGenerator

from agenturn.agents import AgentRegistry, BaseAgent, LlmAgent
from agenturn.config import AgentTurnConfig, RunConfig
from agenturn.context import InvocationContext, new_invocation_id
from agenturn.events import Event, EventLog
from agenturn.llm import ModelFactory, initialize_model_call_logger
from agenturn.types import Content

logger = logging.getLogger(__name__)


class Runner:
    """Drives an agent tree for one conversation.

    The runner owns the conversation's event log and session state. Each call
    to ``run`` is one invocation: the user message is logged, the root agent
    runs, and every non-partial event is logged (with its state delta applied)
    before it reaches the caller.
    """

    def __init__(self, agent: BaseAgent, run_config: RunConfig | None = None):
        self.agent = agent
        self.run_config = run_config or RunConfig()
        self.event_log = EventLog()
        self.state: dict[str, Any] = {}

    @classmethod
    def from_config(cls, agent: BaseAgent, config: AgentTurnConfig) -> 'Runner':
        if config.log_directory:
            initialize_model_call_logger(config.log_directory)
        if isinstance(agent, LlmAgent) and agent.model is None and config.chat_llm is not None:
            agent.model = ModelFactory.build(config.chat_llm)
        return cls(agent, run_config=config.run)

    async def run(
            self,
            user_message: str | Content,
            state: dict[str, Any] | None = None,
    ) -> AsyncGenerator[Event, None]:
        if isinstance(user_message, str):
            user_message = Content.from_text(user_message, role="user")
        if state:
            self.state.update(state)

        invocation_id = new_invocation_id()
        root_agent = self.agent.root_agent
        invocation_context = InvocationContext(
            agent=self.agent,
            registry=AgentRegistry.from_root(root_agent),
            invocation_id=invocation_id,
            branch=self.agent.name,
            run_config=self.run_config,
            user_content=user_message,
            event_log=self.event_log,
            state=self.state,
        )
        self._append_event(Event(invocation_id=invocation_id, author="user", content=user_message))
        logger.info(f"Invocation {invocation_id} started with agent {self.agent.name}")

        async with aclosing(self.agent.run(invocation_context)) as agen:
            async for event in agen:
                if not event.partial:
                    self._append_event(event)
                yield event

        logger.info(f"Invocation {invocation_id} completed after {invocation_context.llm_call_count} model calls")

    def _append_event(self, event: Event) -> None:
        if event.actions.state_delta:
            self.state.update(event.actions.state_delta)
        self.event_log.append(event)
