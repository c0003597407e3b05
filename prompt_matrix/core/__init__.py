"""
Core components of the Prompt Matrix routing system.
"""

from .router import CentralRouter
from .classifier import IntentClassifier
from .interfaces import CompletionClient
from .registry import AgentRegistry, normalize_agent_id
from .agents import ExpertAgent, CustomAgent, ConductorAgent, estimate_tokens
from .flow import FlowRunner, DEFAULT_FLOW_TEMPLATES

__all__ = [
    "CentralRouter",
    "IntentClassifier",
    "CompletionClient",
    "AgentRegistry",
    "normalize_agent_id",
    "ExpertAgent",
    "CustomAgent",
    "ConductorAgent",
    "estimate_tokens",
    "FlowRunner",
    "DEFAULT_FLOW_TEMPLATES",
]
