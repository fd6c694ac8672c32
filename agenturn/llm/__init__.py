from .base import BaseLlm
from .factory import ModelFactory
from .langchain import LangChainModel
from .logger import (
    ModelCallLogger,
    ModelCallRequest,
    ModelCallResponse,
    ModelCall,
    InvocationLog,
    initialize_model_call_logger,
    get_model_call_logger,
    reset_model_call_logger,
    log_model_call,
)
from .oai import OpenAIModel
from .request import FunctionDeclaration, GenerateConfig, ModelRequest
from .response import ModelResponse, UsageMetadata
from .streaming import StreamingResponseAggregator
