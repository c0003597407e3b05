"""
Core data models for request processing and routing.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List

from .config import ProviderConfig
from .enums import IntentType, StepStatus, InputSource, StreamEventType


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Message:
    """A single conversation turn."""
    role: str
    content: str
    timestamp: Optional[int] = None

    def to_dict(self) -> Dict[str, str]:
        """Wire representation for the chat completion call."""
        return {"role": self.role, "content": self.content}


@dataclass
class AgentDescriptor:
    """Registry entry for an agent: its system prompt and descriptive metadata."""
    id: str
    system_prompt: str
    display_name: str
    capabilities: List[str] = field(default_factory=list)
    supports_streaming: bool = True


@dataclass
class CustomAgentConfig:
    """User-supplied definition of a custom agent."""
    id: str
    name: str
    prompt: str
    expertise: Optional[str] = None


@dataclass
class RoutingDecision:
    """Decision made for a single request."""
    intent: IntentType
    target_agent: str
    confidence: float
    reasoning: str
    timestamp: int = field(default_factory=now_ms)


@dataclass
class RequestContext:
    """Everything an agent needs to serve one request."""
    user_input: str
    history: List[Message] = field(default_factory=list)
    config: Optional[ProviderConfig] = None
    forced_agent: Optional[str] = None
    system_prompt_hints: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentResult:
    """What an agent returns from a blocking execution."""
    content: str
    tokens_used: int = 0
    suggestions: List[str] = field(default_factory=list)


@dataclass
class AgentResponse:
    """Response envelope returned to the caller."""
    agent_type: str
    content: str
    intent: IntentType
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=now_ms)

    @property
    def tokens_used(self) -> Optional[int]:
        return self.metadata.get("tokens_used")

    @property
    def thinking_process(self) -> Optional[str]:
        return self.metadata.get("thinking_process")

    @property
    def suggestions(self) -> List[str]:
        return self.metadata.get("suggestions") or []


@dataclass
class StreamEvent:
    """One element of a streamed response.

    ``THINKING`` events carry narration for the UI, ``CONTENT`` events carry
    model output fragments and a single ``DONE`` event closes the stream with
    the response envelope.
    """
    type: StreamEventType
    text: str = ""
    response: Optional[AgentResponse] = None


@dataclass
class FlowStep:
    """A step of a flow template plus its runtime state."""
    id: str
    title: str
    agent_type: str
    input_source: InputSource = InputSource.USER
    custom_input: Optional[str] = None
    system_prompt_hints: Optional[str] = None
    status: StepStatus = StepStatus.IDLE
    output_summary: Optional[str] = None
    output_full: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class FlowTemplate:
    """Named ordered list of steps."""
    id: str
    name: str
    steps: List[FlowStep] = field(default_factory=list)
    description: str = ""


@dataclass
class CustomProvider:
    """An OpenAI-compatible endpoint registered by the user."""
    id: str
    name: str
    base_url: str
    models: List[str] = field(default_factory=list)
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    created_at: int = field(default_factory=now_ms)
