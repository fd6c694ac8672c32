class AgentTurnError(Exception):
    """Base exception for agenturn errors"""
    def __init__(self, msg: str):
        self.msg = msg

    def __str__(self):
        return self.msg


class LLMError(AgentTurnError):
    pass


class NoChatLLMConfigError(LLMError):
    def __init__(self, msg: str | None = None):
        super().__init__(msg or "Can not find available Chat LLM Config")


class UnsupportedModelConfigError(LLMError):
    def __init__(self, config: object):
        self.config = config
        super().__init__(f"Unexpected model config: {config!r}")


class LlmCallsLimitExceededError(AgentTurnError):
    """Raised when an invocation makes more model calls than its run config allows"""
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Max number of llm calls limit of `{limit}` exceeded")


class FlowError(AgentTurnError):
    """Base exception for violations of the turn-execution loop contract"""
    pass


class PartialFinalEventError(FlowError):
    """Raised when a step ends on a partial event"""
    def __init__(self, event_id: str | None = None):
        self.event_id = event_id
        super().__init__("Last event shouldn't be partial. LLM max output limit may be reached.")


class AgentNotFoundError(FlowError):
    """Raised when a transfer names an agent that is not part of the agent tree"""
    def __init__(self, agent_name: str, available_agents: list[str]):
        self.agent_name = agent_name
        self.available_agents = available_agents
        super().__init__(
            f"Agent '{agent_name}' not found in the agent tree.\n"
            f"Available agents: {', '.join(available_agents)}"
        )
