"""
Error handling utilities and custom exceptions for the Prompt Matrix routing system.
"""

from typing import Optional, Dict, Any


class PromptMatrixError(Exception):
    """Base exception for all Prompt Matrix errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}


class ConfigurationError(PromptMatrixError):
    """Raised for unsupported providers, unresolved custom providers or an uninitialized client."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="CONFIG_ERROR", **kwargs)
        self.config_key = config_key


class APIError(PromptMatrixError):
    """Raised when a call to the model provider fails."""

    def __init__(self, message: str, operation: Optional[str] = None, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, error_code="API_ERROR", **kwargs)
        self.operation = operation
        self.status_code = status_code


class AgentNotFoundError(PromptMatrixError):
    """Raised when the routing target is not registered."""

    def __init__(self, agent_id: str, **kwargs):
        super().__init__(f"Agent not found: {agent_id}", error_code="AGENT_NOT_FOUND", **kwargs)
        self.agent_id = agent_id


class AgentExecutionError(PromptMatrixError):
    """Raised when an agent fails; the message names the agent."""

    def __init__(self, message: str, agent_id: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="AGENT_EXECUTION_ERROR", **kwargs)
        self.agent_id = agent_id


class ClassificationError(PromptMatrixError):
    """Raised when intent classification fails."""

    def __init__(self, message: str, request_content: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="CLASSIFICATION_ERROR", **kwargs)
        self.request_content = request_content


class FlowError(PromptMatrixError):
    """Raised when a flow step fails and the flow halts."""

    def __init__(self, message: str, step_id: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="FLOW_ERROR", **kwargs)
        self.step_id = step_id


def handle_error(error: Exception, logger=None, context: Optional[Dict[str, Any]] = None) -> PromptMatrixError:
    """
    Convert generic exceptions to PromptMatrixError instances.

    Args:
        error: The original exception
        logger: Optional RoutingLogger for error reporting
        context: Additional context information

    Returns:
        PromptMatrixError instance
    """
    if isinstance(error, PromptMatrixError):
        routing_error = error
    elif isinstance(error, (ValueError, KeyError)):
        routing_error = ConfigurationError(str(error), context=context)
    elif isinstance(error, (ConnectionError, TimeoutError)):
        routing_error = APIError(str(error), context=context)
    else:
        routing_error = PromptMatrixError(str(error), context=context)

    if logger:
        logger.log_error(routing_error, context)

    return routing_error
