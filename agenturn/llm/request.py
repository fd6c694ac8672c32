from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated

from agenturn.types import Content

if TYPE_CHECKING:
    from agenturn.tool.base import BaseTool


class FunctionDeclaration(BaseModel):
    """Schema of a tool as advertised to the model"""
    name: Annotated[str, Field(description="Name of the tool")]
    description: Annotated[str | None, Field(default=None)]
    parameters: Annotated[dict[str, Any], Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON schema of the arguments",
    )]

    def to_openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description or "",
                "parameters": self.parameters,
            },
        }


class GenerateConfig(BaseModel):
    temperature: float | None = None
    max_output_tokens: int | None = None
    top_p: float | None = None
    stop: list[str] | None = None
    response_schema: dict[str, Any] | None = None


class ModelRequest(BaseModel):
    """The request built for one cycle. Never reused across cycles or agents."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    model: Annotated[str | None, Field(default=None, description="Model identifier, if the agent names one")]
    contents: Annotated[list[Content], Field(default_factory=list)]
    system_instruction: Annotated[str | None, Field(default=None)]
    tools: Annotated[list[FunctionDeclaration], Field(default_factory=list)]
    labels: Annotated[dict[str, str], Field(default_factory=dict)]
    config: Annotated[GenerateConfig, Field(default_factory=GenerateConfig)]
    # name -> BaseTool; kept out of dumps sent to backends
    tools_dict: Annotated[dict[str, Any], Field(default_factory=dict, exclude=True)]

    def append_instructions(self, instructions: list[str]) -> None:
        text = "\n\n".join(i for i in instructions if i)
        if not text:
            return
        if self.system_instruction:
            self.system_instruction += "\n\n" + text
        else:
            self.system_instruction = text

    def append_tools(self, tools: list["BaseTool"]) -> None:
        for tool in tools:
            declaration = tool.declaration()
            if declaration is None:
                continue
            self.tools.append(declaration)
            self.tools_dict[tool.name] = tool

    def set_output_schema(self, schema: dict[str, Any]) -> None:
        self.config.response_schema = schema
