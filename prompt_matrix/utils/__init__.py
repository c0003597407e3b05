"""
Utility modules for the Prompt Matrix routing system.
"""

from .logging import setup_logging, get_logger, RoutingLogger
from .config_manager import ConfigManager, normalize_base_url, is_configured
from .provider_store import CustomProviderStore
from .error_handling import (
    PromptMatrixError,
    ConfigurationError,
    APIError,
    AgentNotFoundError,
    AgentExecutionError,
    ClassificationError,
    FlowError,
    handle_error,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "RoutingLogger",
    "ConfigManager",
    "normalize_base_url",
    "is_configured",
    "CustomProviderStore",
    "PromptMatrixError",
    "ConfigurationError",
    "APIError",
    "AgentNotFoundError",
    "AgentExecutionError",
    "ClassificationError",
    "FlowError",
    "handle_error",
]
