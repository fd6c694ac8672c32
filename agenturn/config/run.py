from pydantic import BaseModel, Field
from typing_extensions import Annotated

from agenturn.types import StreamingMode


class RunConfig(BaseModel):
    """Per-invocation settings shared by every agent the invocation reaches"""
    streaming_mode: Annotated[StreamingMode, Field(
        description="Buffered (none) or streamed (sse) model output",
        default=StreamingMode.NONE,
    )]
    max_llm_calls: Annotated[int, Field(
        description="Upper bound on model calls across the whole invocation; <= 0 disables the limit",
        default=500,
    )]
