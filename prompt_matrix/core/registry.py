"""
Agent registry keyed by normalized agent id.
"""

from typing import Dict, List, Optional, Any

from ..models import AgentDescriptor, AgentType
from ..utils import get_logger

CUSTOM_PREFIX = "CUSTOM_"

BUILTIN_AGENT_IDS = frozenset(agent.value for agent in AgentType)


def custom_agent_id(agent_id: str) -> str:
    """
    Namespace a user-supplied agent id.

    Leading ``CUSTOM_`` prefixes (any case, any count) are stripped and
    exactly one ``CUSTOM_`` is put back, so a custom id never collides with a
    built-in one. Returns an empty string when nothing is left.
    """
    bare = (agent_id or "").strip()
    while bare[:len(CUSTOM_PREFIX)].upper() == CUSTOM_PREFIX:
        bare = bare[len(CUSTOM_PREFIX):].strip()

    if not bare:
        return ""
    return f"{CUSTOM_PREFIX}{bare}"


def normalize_agent_id(agent_id: str) -> str:
    """Normalize a descriptor id: built-in ids pass through, the rest are namespaced."""
    if agent_id in BUILTIN_AGENT_IDS:
        return agent_id
    return custom_agent_id(agent_id)


class AgentRegistry:
    """
    Holds one descriptor, and optionally an executable agent, per normalized id.

    Re-registering an id replaces the previous entry. Writes are not guarded;
    callers serialize registration if they share a registry.
    """

    def __init__(self, descriptors: Optional[List[AgentDescriptor]] = None):
        self.logger = get_logger(__name__)
        self._descriptors: Dict[str, AgentDescriptor] = {}
        self._agents: Dict[str, Any] = {}

        for descriptor in descriptors or []:
            self.register(descriptor)

    def register(self, descriptor: AgentDescriptor, agent: Any = None) -> Optional[str]:
        """
        Insert or replace a descriptor.

        Args:
            descriptor: Agent metadata; its id is normalized before storing
            agent: Executable agent bound to this descriptor, if any

        Returns:
            The normalized id, or None when the id was empty and the
            registration was skipped
        """
        normalized = normalize_agent_id(descriptor.id)
        if not normalized:
            self.logger.debug("Skipping agent registration with empty id")
            return None

        if normalized != descriptor.id:
            descriptor = AgentDescriptor(
                id=normalized,
                system_prompt=descriptor.system_prompt,
                display_name=descriptor.display_name,
                capabilities=list(descriptor.capabilities),
                supports_streaming=descriptor.supports_streaming,
            )

        replaced = normalized in self._descriptors
        self._descriptors[normalized] = descriptor
        if agent is not None:
            self._agents[normalized] = agent
        else:
            self._agents.pop(normalized, None)

        self.logger.info(f"Agent {'replaced' if replaced else 'registered'}: {descriptor.display_name} ({normalized})")
        return normalized

    def get(self, agent_id: str) -> Optional[AgentDescriptor]:
        return self._descriptors.get(agent_id)

    def get_agent(self, agent_id: str) -> Any:
        """Executable agent for an id, or None."""
        return self._agents.get(agent_id)

    def bind_agent(self, agent_id: str, agent: Any) -> None:
        """Attach an executable agent to an already registered descriptor."""
        if agent_id not in self._descriptors:
            raise KeyError(agent_id)
        self._agents[agent_id] = agent

    def list(self) -> List[AgentDescriptor]:
        return list(self._descriptors.values())

    def ids(self) -> List[str]:
        return list(self._descriptors.keys())

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)
