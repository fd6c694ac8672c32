from agenturn.flows.agent_transfer import AgentTransferRequestProcessor
from agenturn.flows.base_flow import BaseLlmFlow
from agenturn.flows.basic import BasicRequestProcessor
from agenturn.flows.contents import ContentsRequestProcessor
from agenturn.flows.instructions import InstructionsRequestProcessor
from agenturn.flows.output_schema import OutputSchemaResponseProcessor


class SingleFlow(BaseLlmFlow):
    """Flow for an agent that answers itself, calling tools but never transferring."""

    def __init__(self):
        super().__init__()
        self.request_processors += [
            BasicRequestProcessor(),
            InstructionsRequestProcessor(),
            ContentsRequestProcessor(),
        ]
        self.response_processors += [
            OutputSchemaResponseProcessor(),
        ]


class AutoFlow(SingleFlow):
    """SingleFlow plus transfers to sub-agents, the parent agent and peer agents."""

    def __init__(self):
        super().__init__()
        self.request_processors += [
            AgentTransferRequestProcessor(),
        ]
