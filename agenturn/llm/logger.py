"""Model call ledger for the turn loop.

This module provides a thread-safe, memory-based record of every backend call
made during an invocation. Calls are grouped by invocation and can be dumped
in YAML format.
"""

import os
from dataclasses import asdict, dataclass, field
from datetime import datetime
from threading import Lock
from typing import Any, Dict, List, Optional

import yaml

from .request import ModelRequest
from .response import ModelResponse


@dataclass
class ModelCallRequest:
    """Summary of the request sent to the backend."""
    model: Optional[str]
    content_count: int
    system_instruction: Optional[str] = None
    tools: List[str] = field(default_factory=list)
    labels: Dict[str, str] = field(default_factory=dict)
    streaming: bool = False

    @classmethod
    def from_request(cls, request: ModelRequest, streaming: bool) -> "ModelCallRequest":
        return cls(
            model=request.model,
            content_count=len(request.contents),
            system_instruction=request.system_instruction,
            tools=[tool.name for tool in request.tools],
            labels=dict(request.labels),
            streaming=streaming,
        )

    def flatten(self) -> Dict[str, Any]:
        """Flatten the request into a dictionary for YAML storage."""
        result = {}
        for key, value in asdict(self).items():
            if value is not None:
                result[key] = value
        return result


@dataclass
class ModelCallResponse:
    """Summary of the terminal response of a call."""
    text: str
    function_calls: List[str] = field(default_factory=list)
    finish_reason: Optional[str] = None
    error_code: Optional[str] = None
    total_tokens: Optional[int] = None
    chunk_count: int = 1

    @classmethod
    def from_response(cls, response: ModelResponse, chunk_count: int = 1) -> "ModelCallResponse":
        return cls(
            text=response.content.text if response.content else "",
            function_calls=[call.name for call in response.get_function_calls()],
            finish_reason=response.finish_reason,
            error_code=response.error_code,
            total_tokens=response.usage_metadata.total_token_count if response.usage_metadata else None,
            chunk_count=chunk_count,
        )

    def flatten(self) -> Dict[str, Any]:
        """Flatten the response into a dictionary for YAML storage."""
        result: Dict[str, Any] = {"text": self.text}
        for key, value in asdict(self).items():
            if key != "text" and value is not None:
                result[key] = value
        return result


@dataclass
class ModelCall:
    """A single model call with request, response, and metadata."""
    agent_name: str
    request: ModelCallRequest
    response: ModelCallResponse
    timestamp: datetime = field(default_factory=datetime.now)
    duration_ms: Optional[int] = None


@dataclass
class InvocationLog:
    """All model calls of one invocation."""
    invocation_id: str
    started_at: datetime = field(default_factory=datetime.now)
    calls: List[ModelCall] = field(default_factory=list)


class ModelCallLogger:
    """Thread-safe model call logger that stores calls in memory and persists to YAML files."""

    def __init__(self, log_directory: str = "logs"):
        self.log_directory = log_directory
        self._invocations: Dict[str, InvocationLog] = {}
        self._lock = Lock()

        # Ensure log directory exists
        os.makedirs(log_directory, exist_ok=True)

    def log_call(
        self,
        invocation_id: str,
        agent_name: str,
        request: ModelCallRequest,
        response: ModelCallResponse,
        duration_ms: Optional[int] = None
    ) -> None:
        """Record a model call under its invocation."""
        with self._lock:
            log = self._invocations.get(invocation_id)
            if log is None:
                log = InvocationLog(invocation_id=invocation_id)
                self._invocations[invocation_id] = log
            log.calls.append(ModelCall(
                agent_name=agent_name,
                request=request,
                response=response,
                duration_ms=duration_ms,
            ))

    def get_calls(self, invocation_id: str) -> List[ModelCall]:
        with self._lock:
            log = self._invocations.get(invocation_id)
            return list(log.calls) if log else []

    def dump_to_file(self, filename: Optional[str] = None) -> str:
        """Dump all logged invocations to a YAML file.

        Args:
            filename: Optional custom filename. If not provided, uses current datetime.

        Returns:
            The path to the created file.
        """
        if not filename:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"model_calls_{timestamp}.yaml"

        filepath = os.path.join(self.log_directory, filename)

        with self._lock:
            data = {
                "invocations": [
                    {
                        "invocation_id": log.invocation_id,
                        "started_at": log.started_at.isoformat(),
                        "calls": [
                            {
                                "agent_name": call.agent_name,
                                "timestamp": call.timestamp.isoformat(),
                                "duration_ms": call.duration_ms,
                                "request": call.request.flatten(),
                                "response": call.response.flatten(),
                            }
                            for call in log.calls
                        ]
                    }
                    for log in self._invocations.values()
                ]
            }

        with open(filepath, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

        return filepath

    def clear_logs(self) -> None:
        """Clear all logged invocations from memory."""
        with self._lock:
            self._invocations.clear()


# Global logger instance, initialized by the application
_global_logger: Optional[ModelCallLogger] = None


def get_model_call_logger() -> Optional[ModelCallLogger]:
    """Get the global model call logger instance."""
    return _global_logger


def initialize_model_call_logger(log_directory: str = "logs") -> ModelCallLogger:
    """Initialize the global model call logger."""
    global _global_logger
    _global_logger = ModelCallLogger(log_directory)
    return _global_logger


def reset_model_call_logger() -> None:
    global _global_logger
    _global_logger = None


def log_model_call(
    invocation_id: str,
    agent_name: str,
    request: ModelCallRequest,
    response: ModelCallResponse,
    duration_ms: Optional[int] = None
) -> None:
    """Log a model call using the global logger, if one is initialized."""
    logger = get_model_call_logger()
    if logger:
        logger.log_call(invocation_id, agent_name, request, response, duration_ms)
