"""
Central Router: classifies requests, dispatches them to agents and keeps the
conversation history.
"""

import time
from typing import Dict, List, Optional, Any, Iterator

from ..models import (
    AgentDescriptor, AgentResponse, AgentType, CustomAgentConfig, IntentType, Message, MessageRole,
    ProviderConfig, RequestContext, RoutingDecision, RouterConfig, StreamEvent,
    StreamEventType,
)
from ..models.core import now_ms
from ..utils import get_logger, RoutingLogger
from ..utils.error_handling import AgentExecutionError, AgentNotFoundError, handle_error
from .agents import (
    BUILTIN_AGENT_CLASSES, BUILTIN_AGENTS, ConductorAgent, CustomAgent, ExpertAgent,
    load_builtin_descriptors,
)
from .classifier import IntentClassifier
from .interfaces import CompletionClient
from .registry import AgentRegistry, CUSTOM_PREFIX, custom_agent_id

FORCED_REASONING = "Forced by user selection"


class CentralRouter:
    """
    Central router for intent-based request routing.

    Builds a request context from the caller's overrides and the session
    defaults, classifies the intent (unless an agent is forced), resolves the
    target agent and executes it. Keeps the session's conversation history
    and an audit trail of routing decisions.

    Not safe for concurrent use within one session.
    """

    def __init__(self, client: CompletionClient,
                 registry: Optional[AgentRegistry] = None,
                 classifier: Optional[IntentClassifier] = None,
                 router_config: Optional[RouterConfig] = None,
                 prompt_dir: Optional[str] = None):
        self.logger = get_logger(__name__)
        self.routing_logger = RoutingLogger("routing")

        self.client = client
        self.config = router_config or RouterConfig()
        self.classifier = classifier or IntentClassifier(self.config.confidence_threshold)
        self.registry = registry if registry is not None else AgentRegistry()
        self.conductor = ConductorAgent(client)
        self._install_builtin_agents(prompt_dir)

        self._history: List[Message] = []

        # Routing decision log for audit trail
        self.routing_log: List[RoutingDecision] = []

        self._routing_stats: Dict[str, Any] = {
            'total_requests': 0,
            'successful_routes': 0,
            'failed_routes': 0,
            'agent_usage': {},
        }

        self.logger.info(f"CentralRouter initialized with agents: {self.registry.ids()}")

    def _install_builtin_agents(self, prompt_dir: Optional[str]) -> None:
        """Register executable built-in agents, keeping descriptors already present."""
        for descriptor in load_builtin_descriptors(prompt_dir):
            existing = self.registry.get(descriptor.id)
            if existing is not None:
                descriptor = existing
            agent = BUILTIN_AGENT_CLASSES[descriptor.id](self.client, descriptor)
            self.registry.register(descriptor, agent)

    # ----- requests -----

    def handle_request(self, user_input: str, *,
                       history: Optional[List[Message]] = None,
                       config: Optional[ProviderConfig] = None,
                       forced_agent: Optional[str] = None,
                       system_prompt_hints: Optional[str] = None,
                       metadata: Optional[Dict[str, Any]] = None) -> AgentResponse:
        """
        Route a request and wait for the full answer.

        Args:
            user_input: Raw user text
            history: Conversation to send instead of the session history
            config: Provider config to use instead of the client's
            forced_agent: Agent id that bypasses classification
            system_prompt_hints: Extra text appended to the agent's system prompt
            metadata: Free-form request metadata

        Returns:
            AgentResponse envelope

        Raises:
            AgentNotFoundError: If the target agent is not registered
            AgentExecutionError: If the agent fails; the message names it
        """
        start_time = time.time()
        self._routing_stats['total_requests'] += 1

        try:
            context = self.build_context(user_input, history=history, config=config,
                                         forced_agent=forced_agent,
                                         system_prompt_hints=system_prompt_hints,
                                         metadata=metadata)

            self.logger.info(f"Routing request: {user_input[:50]}...")
            decision = self.get_routing_decision(context)
            self.log_routing_decision(decision)

            agent = self._resolve_agent(decision.target_agent)
            result = self._execute(agent, context)
        except Exception as e:
            self._routing_stats['failed_routes'] += 1
            handle_error(e, self.routing_logger, {'request_content': user_input[:100]})
            raise

        response = AgentResponse(
            agent_type=decision.target_agent,
            content=result.content,
            intent=decision.intent,
            metadata={
                'tokens_used': result.tokens_used,
                'thinking_process': decision.reasoning,
                'suggestions': result.suggestions,
                'confidence': decision.confidence,
            },
        )

        self._update_history(user_input, response.content)
        self._routing_stats['successful_routes'] += 1

        self.logger.info(
            f"Request completed in {time.time() - start_time:.2f}s "
            f"(intent: {decision.intent.name}, agent: {decision.target_agent}, tokens: {result.tokens_used})"
        )
        return response

    def handle_request_stream(self, user_input: str, *,
                              history: Optional[List[Message]] = None,
                              config: Optional[ProviderConfig] = None,
                              forced_agent: Optional[str] = None,
                              system_prompt_hints: Optional[str] = None,
                              metadata: Optional[Dict[str, Any]] = None) -> Iterator[StreamEvent]:
        """
        Route a request and stream the answer.

        Yields ``THINKING`` narration at each routing step, ``CONTENT``
        fragments as the agent produces them and a final ``DONE`` event whose
        response carries the routing metadata (its content is empty).

        The user turn is appended to history once the agent is resolved. The
        assistant turn is not: the caller appends the accumulated content when
        the stream ends.
        """
        start_time = time.time()
        self._routing_stats['total_requests'] += 1

        try:
            context = self.build_context(user_input, history=history, config=config,
                                         forced_agent=forced_agent,
                                         system_prompt_hints=system_prompt_hints,
                                         metadata=metadata)

            yield StreamEvent(StreamEventType.THINKING, '🔍 **意图分析**\n正在解析您的需求...')
            decision = self.get_routing_decision(context)
            self.log_routing_decision(decision)

            yield StreamEvent(
                StreamEventType.THINKING,
                f'🎯 **意图识别**：{decision.intent.value}\n\n🤔 **路由决策**\n正在选择最合适的专家Agent...'
            )
            agent = self._resolve_agent(decision.target_agent)
            self._append_history(Message(role=MessageRole.USER.value, content=user_input, timestamp=now_ms()))

            agent_name = self.get_agent_name(decision.target_agent)
            yield StreamEvent(
                StreamEventType.THINKING,
                f'✅ **专家选择**：{agent_name}\n\n**📋 决策依据**：{decision.reasoning}\n\n'
                f'🚀 **开始处理**\n{agent_name}正在为您生成专业的回答...'
            )

            tokens_used, suggestions = 0, []
            if self._supports_streaming(decision.target_agent, agent):
                for fragment in self._execute_stream(agent, context):
                    yield StreamEvent(StreamEventType.CONTENT, fragment)
            else:
                result = self._execute(agent, context)
                tokens_used, suggestions = result.tokens_used, result.suggestions
                yield StreamEvent(StreamEventType.CONTENT, result.content)
        except Exception as e:
            self._routing_stats['failed_routes'] += 1
            handle_error(e, self.routing_logger, {'request_content': user_input[:100]})
            raise

        self._routing_stats['successful_routes'] += 1
        self.logger.info(
            f"Stream request completed in {time.time() - start_time:.2f}s "
            f"(intent: {decision.intent.name}, agent: {decision.target_agent})"
        )

        yield StreamEvent(StreamEventType.DONE, response=AgentResponse(
            agent_type=decision.target_agent,
            content="",
            intent=decision.intent,
            metadata={
                'tokens_used': tokens_used,
                'thinking_process': decision.reasoning,
                'suggestions': suggestions,
                'confidence': decision.confidence,
            },
        ))

    def build_context(self, user_input: str, *,
                      history: Optional[List[Message]] = None,
                      config: Optional[ProviderConfig] = None,
                      forced_agent: Optional[str] = None,
                      system_prompt_hints: Optional[str] = None,
                      metadata: Optional[Dict[str, Any]] = None) -> RequestContext:
        """Merge caller overrides with the session defaults."""
        return RequestContext(
            user_input=user_input,
            history=list(history if history is not None else self._history),
            config=config or self.client.get_config(),
            forced_agent=forced_agent or None,
            system_prompt_hints=system_prompt_hints,
            metadata=dict(metadata or {}),
        )

    def get_routing_decision(self, context: RequestContext) -> RoutingDecision:
        """
        Decide where a request goes.

        A forced agent wins over classification and is reported as CHAT.
        """
        if context.forced_agent:
            self.logger.info(f"Routing forced to {context.forced_agent}")
            return RoutingDecision(
                intent=IntentType.CHAT,
                target_agent=context.forced_agent,
                confidence=1.0,
                reasoning=FORCED_REASONING,
            )

        intent = self.classifier.analyze_intent(context.user_input, context)
        return self.classifier.make_routing_decision(intent, context)

    def log_routing_decision(self, decision: RoutingDecision) -> None:
        """
        Record a routing decision in the audit log.

        Args:
            decision: The routing decision to log
        """
        self.routing_log.append(decision)

        if len(self.routing_log) > self.config.max_log_entries:
            self.routing_log = self.routing_log[-self.config.max_log_entries // 2:]  # Keep last half

        usage = self._routing_stats['agent_usage']
        usage[decision.target_agent] = usage.get(decision.target_agent, 0) + 1

        self.routing_logger.log_routing_decision(decision)

    def _resolve_agent(self, agent_id: str) -> ExpertAgent:
        if agent_id == AgentType.CONDUCTOR.value:
            return self.conductor

        descriptor = self.registry.get(agent_id)
        if descriptor is None:
            self.logger.error(f"Agent not found: {agent_id}; available: {self.registry.ids()}")
            raise AgentNotFoundError(agent_id)

        agent = self.registry.get_agent(agent_id)
        if agent is None:
            agent = self._build_agent(descriptor)
            self.registry.bind_agent(agent_id, agent)
        return agent

    def _build_agent(self, descriptor: AgentDescriptor) -> ExpertAgent:
        """Executable wrapper for a descriptor registered without one."""
        if descriptor.id in BUILTIN_AGENT_CLASSES:
            return BUILTIN_AGENT_CLASSES[descriptor.id](self.client, descriptor)

        self.logger.info(f"Building agent for descriptor {descriptor.id}")
        config = CustomAgentConfig(id=descriptor.id, name=descriptor.display_name, prompt=descriptor.system_prompt)
        return CustomAgent(config, self.client, descriptor.id)

    def _supports_streaming(self, agent_id: str, agent: ExpertAgent) -> bool:
        """Streaming capability as declared by the agent's registered descriptor."""
        descriptor = self.registry.get(agent_id) or getattr(agent, 'descriptor', None)
        return descriptor.supports_streaming if descriptor is not None else False

    def _execute(self, agent: ExpertAgent, context: RequestContext):
        try:
            return agent.execute(context)
        except AgentExecutionError:
            raise
        except Exception as e:
            raise self._execution_error(agent, e) from e

    def _execute_stream(self, agent: ExpertAgent, context: RequestContext) -> Iterator[str]:
        try:
            yield from agent.execute_stream(context)
        except AgentExecutionError:
            raise
        except Exception as e:
            raise self._execution_error(agent, e) from e

    def _execution_error(self, agent: ExpertAgent, error: Exception) -> AgentExecutionError:
        name = self.get_agent_name(agent.agent_id)
        return AgentExecutionError(f"{name} 执行失败: {str(error)}", agent_id=agent.agent_id)

    # ----- agents -----

    def register_custom_agent(self, config: CustomAgentConfig) -> Optional[str]:
        """
        Register (or replace) a user-defined agent.

        Returns:
            The normalized ``CUSTOM_`` id, or None if the id was empty
        """
        agent_id = custom_agent_id(config.id)
        if not agent_id:
            self.logger.debug("Ignoring custom agent with empty id")
            return None

        agent = CustomAgent(config, self.client, agent_id)
        return self.registry.register(agent.descriptor, agent)

    def list_agents(self):
        return self.registry.list()

    def get_agent_name(self, agent_id: str) -> str:
        """Human-readable name for an agent id."""
        if agent_id == AgentType.CONDUCTOR.value:
            return self.conductor.display_name
        if agent_id in BUILTIN_AGENTS:
            return BUILTIN_AGENTS[agent_id]["display_name"]

        descriptor = self.registry.get(agent_id)
        if descriptor is not None and descriptor.display_name:
            return descriptor.display_name
        if agent_id.startswith(CUSTOM_PREFIX):
            return f"自定义工程师 {agent_id[len(CUSTOM_PREFIX):]}"
        return agent_id

    # ----- history -----

    def add_history_message(self, message: Message) -> None:
        self._append_history(message)

    def get_history(self) -> List[Message]:
        return list(self._history)

    def set_history(self, messages: List[Message]) -> None:
        """Replace the session history, e.g. when restoring a saved session."""
        self._history = list(messages)[-self.config.max_history:]

    def clear_history(self) -> None:
        self._history = []
        self.logger.info("Conversation history cleared")

    def _update_history(self, user_input: str, assistant_response: str) -> None:
        self._history.append(Message(role=MessageRole.USER.value, content=user_input, timestamp=now_ms()))
        self._history.append(Message(role=MessageRole.ASSISTANT.value, content=assistant_response, timestamp=now_ms()))
        self._trim_history()

    def _append_history(self, message: Message) -> None:
        self._history.append(message)
        self._trim_history()

    def _trim_history(self) -> None:
        if len(self._history) > self.config.max_history:
            self._history = self._history[-self.config.max_history:]

    # ----- statistics -----

    def get_routing_statistics(self) -> Dict[str, Any]:
        """Get routing statistics."""
        total_requests = self._routing_stats['total_requests']
        return {
            'total_requests': total_requests,
            'successful_routes': self._routing_stats['successful_routes'],
            'failed_routes': self._routing_stats['failed_routes'],
            'success_rate': (self._routing_stats['successful_routes'] / total_requests * 100) if total_requests > 0 else 0,
            'agent_usage': dict(self._routing_stats['agent_usage']),
            'recent_decisions': len(self.routing_log),
            'history_length': len(self._history),
        }

    def get_recent_routing_decisions(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Get recent routing decisions for debugging and analysis."""
        recent_decisions = self.routing_log[-limit:] if self.routing_log else []

        return [
            {
                'timestamp': decision.timestamp,
                'intent': decision.intent.name,
                'target_agent': decision.target_agent,
                'confidence': decision.confidence,
                'reasoning': decision.reasoning,
            }
            for decision in recent_decisions
        ]

    def clear_routing_log(self) -> None:
        """Clear the routing decision log."""
        self.routing_log.clear()
        self.logger.info("Routing log cleared")
