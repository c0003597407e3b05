"""
Enumerations for the Prompt Matrix routing system.
"""

from enum import Enum


class IntentType(Enum):
    """Intents recognized by the classifier, in priority order."""
    REVERSE_ANALYSIS = "REVERSE_ANALYSIS"
    OPTIMIZE = "OPTIMIZE"
    SCENARIO_DESIGN = "SCENARIO_DESIGN"
    BASIC_DESIGN = "BASIC_DESIGN"
    CHAT = "CHAT"


class AgentType(Enum):
    """Built-in agent identifiers."""
    CONDUCTOR = "CONDUCTOR"
    X0_OPTIMIZER = "X0_OPTIMIZER"
    X0_REVERSE = "X0_REVERSE"
    X1_BASIC = "X1_BASIC"
    X4_SCENARIO = "X4_SCENARIO"


class MessageRole(Enum):
    """Roles of conversation messages."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ProviderType(Enum):
    """Supported model providers."""
    DEEPSEEK = "deepseek"
    OPENAI = "openai"
    GEMINI = "gemini"
    OPENROUTER = "openrouter"
    CUSTOM = "custom"


class StepStatus(Enum):
    """Runtime status of a flow step."""
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class InputSource(Enum):
    """Where a flow step takes its input from."""
    USER = "user"
    PREVIOUS_STEP = "previousStep"
    CUSTOM = "custom"


class StreamEventType(Enum):
    """Kinds of events emitted by a streaming request."""
    THINKING = "thinking"
    CONTENT = "content"
    DONE = "done"
