"""Flows: the turn-execution loop and its pluggable processors.

This package provides:
- BaseLlmFlow: the step driver, with preprocessing, model invocation,
  postprocessing, tool resolution and agent transfer
- SingleFlow / AutoFlow: processor sets for agents without and with transfers
- Request and response processors
"""

from .agent_transfer import AgentTransferRequestProcessor
from .base_flow import AGENT_NAME_LABEL, BaseLlmFlow
from .basic import BasicRequestProcessor
from .contents import ContentsRequestProcessor, build_contents
from .instructions import InstructionsRequestProcessor
from .output_schema import OUTPUT_SCHEMA_VALIDATION_FAILED, OutputSchemaResponseProcessor
from .processor import BaseRequestProcessor, BaseResponseProcessor
from .single_flow import AutoFlow, SingleFlow

__all__ = [
    # Loop
    "BaseLlmFlow",
    "SingleFlow",
    "AutoFlow",
    "AGENT_NAME_LABEL",

    # Processor contract
    "BaseRequestProcessor",
    "BaseResponseProcessor",

    # Built-in processors
    "BasicRequestProcessor",
    "InstructionsRequestProcessor",
    "ContentsRequestProcessor",
    "AgentTransferRequestProcessor",
    "OutputSchemaResponseProcessor",
    "OUTPUT_SCHEMA_VALIDATION_FAILED",
    "build_contents",
]
