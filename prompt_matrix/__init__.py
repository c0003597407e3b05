"""
Prompt Matrix

Routes prompt-engineering requests to expert system-prompt agents and runs
them against OpenAI-compatible chat completion endpoints.
"""

__version__ = "0.1.0"
__author__ = "Prompt Matrix"

from .models import (
    Message,
    RoutingDecision,
    AgentResponse,
    StreamEvent,
    SystemConfig,
    ProviderConfig,
    IntentType,
    AgentType,
)

__all__ = [
    "Message",
    "RoutingDecision",
    "AgentResponse",
    "StreamEvent",
    "SystemConfig",
    "ProviderConfig",
    "IntentType",
    "AgentType",
]
