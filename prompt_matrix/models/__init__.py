"""
Core data models for the Prompt Matrix routing system.
"""

from .core import (
    Message,
    AgentDescriptor,
    CustomAgentConfig,
    RoutingDecision,
    RequestContext,
    AgentResult,
    AgentResponse,
    StreamEvent,
    FlowStep,
    FlowTemplate,
    CustomProvider,
)

from .config import (
    SystemConfig,
    ProviderConfig,
    RouterConfig,
    LoggingConfig,
)

from .enums import (
    IntentType,
    AgentType,
    MessageRole,
    ProviderType,
    StepStatus,
    InputSource,
    StreamEventType,
)

__all__ = [
    # Core models
    "Message",
    "AgentDescriptor",
    "CustomAgentConfig",
    "RoutingDecision",
    "RequestContext",
    "AgentResult",
    "AgentResponse",
    "StreamEvent",
    "FlowStep",
    "FlowTemplate",
    "CustomProvider",
    # Configuration models
    "SystemConfig",
    "ProviderConfig",
    "RouterConfig",
    "LoggingConfig",
    # Enums
    "IntentType",
    "AgentType",
    "MessageRole",
    "ProviderType",
    "StepStatus",
    "InputSource",
    "StreamEventType",
]
