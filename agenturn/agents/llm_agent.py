import inspect
import logging
from contextlib import aclosing
from typing import Any, AsyncGenerator, Awaitable, Callable, Literal, Union

from pydantic import BaseModel

from agenturn.agents.base import BaseAgent
from agenturn.context import CallbackContext, InvocationContext, ReadonlyContext
from agenturn.events import Event
from agenturn.exceptions import NoChatLLMConfigError
from agenturn.flows import AutoFlow, BaseLlmFlow, SingleFlow
from agenturn.interceptors import as_list
from agenturn.llm import BaseLlm, GenerateConfig, ModelRequest, ModelResponse
from agenturn.tool import BaseTool, DefaultToolDispatcher, FunctionTool, ToolContext, ToolDispatcher

logger = logging.getLogger(__name__)

InstructionProvider = Callable[[ReadonlyContext], Union[str, Awaitable[str]]]

BeforeModelCallback = Callable[
    [CallbackContext, ModelRequest],
    Union[ModelResponse, None, Awaitable[ModelResponse | None]],
]
AfterModelCallback = Callable[
    [CallbackContext, ModelResponse],
    Union[ModelResponse, None, Awaitable[ModelResponse | None]],
]
BeforeToolCallback = Callable[
    [BaseTool, dict[str, Any], ToolContext],
    Union[dict, None, Awaitable[dict | None]],
]
AfterToolCallback = Callable[
    [BaseTool, dict[str, Any], ToolContext, dict],
    Union[dict, None, Awaitable[dict | None]],
]

ToolUnion = Union[BaseTool, Callable[..., Any]]


class LlmAgent(BaseAgent):
    """An agent whose turns are driven by a language model.

    Args:
        name: Unique name of the agent within its tree
        description: One-line capability description, shown to other agents
            when they decide whether to transfer
        model: Backend to call; inherited from the closest ancestor when unset
        instruction: Instruction text (a jinja2 template rendered against the
            session state) or a provider called with a ReadonlyContext
        global_instruction: Instruction applied to every agent of the tree;
            only the root agent's value is used
        tools: Tools, or plain callables wrapped as FunctionTools
        output_schema: Pydantic model the final answer must validate against
        output_key: Session state key the final answer text is saved under
        include_contents: 'none' sends only the current turn to the model
    """

    def __init__(
            self,
            name: str,
            description: str = "",
            *,
            model: BaseLlm | None = None,
            instruction: str | InstructionProvider = "",
            global_instruction: str | InstructionProvider = "",
            tools: list[ToolUnion] | None = None,
            generate_config: GenerateConfig | None = None,
            output_schema: type[BaseModel] | None = None,
            output_key: str | None = None,
            include_contents: Literal["default", "none"] = "default",
            disallow_transfer_to_parent: bool = False,
            disallow_transfer_to_peers: bool = False,
            before_model_callback: BeforeModelCallback | list[BeforeModelCallback] | None = None,
            after_model_callback: AfterModelCallback | list[AfterModelCallback] | None = None,
            before_tool_callback: BeforeToolCallback | list[BeforeToolCallback] | None = None,
            after_tool_callback: AfterToolCallback | list[AfterToolCallback] | None = None,
            tool_dispatcher: ToolDispatcher | None = None,
            sub_agents: list[BaseAgent] | None = None,
    ):
        super().__init__(name=name, description=description, sub_agents=sub_agents)
        self.model = model
        self.instruction = instruction
        self.global_instruction = global_instruction
        # callables are wrapped once; FunctionTool builds its argument model on construction
        self.tools: list[BaseTool] = [tool if isinstance(tool, BaseTool) else FunctionTool(tool) for tool in tools or []]
        self.generate_config = generate_config
        self.output_schema = output_schema
        self.output_key = output_key
        self.include_contents = include_contents
        self.disallow_transfer_to_parent = disallow_transfer_to_parent
        self.disallow_transfer_to_peers = disallow_transfer_to_peers
        self.before_model_callback = before_model_callback
        self.after_model_callback = after_model_callback
        self.before_tool_callback = before_tool_callback
        self.after_tool_callback = after_tool_callback
        self.tool_dispatcher: ToolDispatcher = tool_dispatcher or DefaultToolDispatcher()

    @property
    def canonical_model(self) -> BaseLlm:
        agent: BaseAgent | None = self
        while agent is not None:
            if isinstance(agent, LlmAgent) and agent.model is not None:
                return agent.model
            agent = agent.parent_agent
        raise NoChatLLMConfigError(f"No model found for agent {self.name}")

    async def canonical_instruction(self, ctx: ReadonlyContext) -> tuple[str, bool]:
        """Resolve the instruction; the flag tells whether it still needs template rendering."""
        return await self._resolve_instruction(self.instruction, ctx)

    async def canonical_global_instruction(self, ctx: ReadonlyContext) -> tuple[str, bool]:
        return await self._resolve_instruction(self.global_instruction, ctx)

    @staticmethod
    async def _resolve_instruction(instruction: str | InstructionProvider, ctx: ReadonlyContext) -> tuple[str, bool]:
        if isinstance(instruction, str):
            return instruction, False
        result = instruction(ctx)
        if inspect.isawaitable(result):
            result = await result
        # provider output is used as-is
        return result, True

    @property
    def canonical_tools(self) -> list[BaseTool]:
        return list(self.tools)

    @property
    def canonical_before_model_callbacks(self) -> list[BeforeModelCallback]:
        return as_list(self.before_model_callback)

    @property
    def canonical_after_model_callbacks(self) -> list[AfterModelCallback]:
        return as_list(self.after_model_callback)

    @property
    def canonical_before_tool_callbacks(self) -> list[BeforeToolCallback]:
        return as_list(self.before_tool_callback)

    @property
    def canonical_after_tool_callbacks(self) -> list[AfterToolCallback]:
        return as_list(self.after_tool_callback)

    @property
    def _llm_flow(self) -> BaseLlmFlow:
        if self.disallow_transfer_to_parent and self.disallow_transfer_to_peers and not self.sub_agents:
            return SingleFlow()
        return AutoFlow()

    async def run(self, invocation_context: InvocationContext) -> AsyncGenerator[Event, None]:
        logger.info(f"Agent {self.name} started (branch={invocation_context.branch})")
        async with aclosing(self._llm_flow.run(invocation_context)) as agen:
            async for event in agen:
                self._maybe_save_output_to_state(event)
                yield event
        logger.info(f"Agent {self.name} completed")

    def _maybe_save_output_to_state(self, event: Event) -> None:
        # events from agents this one transferred to belong to them
        if not self.output_key or event.author != self.name or not event.is_final_response():
            return
        if not event.content or event.partial or event.error_code:
            return
        result = event.content.text
        if not result:
            return
        if self.output_schema:
            result = self.output_schema.model_validate_json(result).model_dump(exclude_none=True)
        event.actions.state_delta[self.output_key] = result
