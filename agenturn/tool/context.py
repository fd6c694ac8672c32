from typing import Any

from agenturn.context import CallbackContext, InvocationContext
from agenturn.events import EventActions


class ToolContext(CallbackContext):
    """Context handed to a tool for one function call.

    Tools steer the loop by writing to ``actions``: requesting a transfer,
    skipping summarization, or asking for out-of-band authorization.
    """

    def __init__(
            self,
            invocation_context: InvocationContext,
            function_call_id: str | None = None,
            event_actions: EventActions | None = None,
    ):
        super().__init__(invocation_context, event_actions)
        self.function_call_id = function_call_id

    def transfer_to_agent(self, agent_name: str) -> None:
        self.actions.transfer_to_agent = agent_name

    def request_credential(self, auth_config: Any) -> None:
        if not self.function_call_id:
            raise ValueError("function_call_id is not set.")
        self.actions.requested_auth_configs[self.function_call_id] = auth_config
