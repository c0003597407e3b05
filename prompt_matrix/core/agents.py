"""
Expert agent implementations.

Each built-in agent wraps a fixed system prompt and a user-prompt template,
calls the completion client and reports a heuristic token estimate. None of
them parse the model output; suggestions are fixed strings per agent.
"""

import math
import re
from pathlib import Path
from typing import Dict, Any, Iterator, List, Optional

from ..models import (
    AgentDescriptor, AgentResult, AgentType, CustomAgentConfig, Message,
    MessageRole, RequestContext,
)
from ..utils import get_logger
from ..utils.error_handling import AgentExecutionError
from .interfaces import CompletionClient

_CJK_PATTERN = re.compile(r'[\u4e00-\u9fa5]')


def estimate_tokens(text: str) -> int:
    """
    Rough token estimate: 1.5 per CJK character plus 1 per whitespace word.

    Not a billing-grade count.
    """
    chinese_chars = len(_CJK_PATTERN.findall(text))
    words = len(text.split())
    return math.ceil(chinese_chars * 1.5 + words)


DEFAULT_PROMPTS: Dict[str, str] = {
    AgentType.X0_OPTIMIZER.value: """你是X0提示词优化师，专注于提示词的融合式优化。

核心能力：
- 提示词结构优化
- Token利用率提升
- 安全边界增强
- 多维度系统性优化

工作流程：
1. 分析现有提示词的结构和内容
2. 识别优化空间和改进点
3. 提供具体的优化建议
4. 确保优化后的提示词更加高效、安全、易用""",

    AgentType.X0_REVERSE.value: """你是X0逆向工程师，专注于提示词的分析和反向工程。

核心能力：
- 提示词框架识别
- 工程师类型推理
- 优化空间分析
- 改进建议生成

工作流程：
1. 分析提示词的结构和组成
2. 识别使用的框架和模式
3. 评估提示词的质量和效果
4. 提供改进建议和优化方向""",

    AgentType.X1_BASIC.value: """你是X1基础提示词工程师，基于ATOM框架进行提示词设计。

ATOM框架：
- Action（行动）：明确任务目标
- Target（对象）：定义操作对象
- Output（输出）：规定输出格式
- Manner（方式）：指定执行方式

核心能力：
- ATOM框架标准化设计
- 通用场景提示词生成
- 结构化输出保证
- 最佳实践应用

设计原则：
- 清晰的任务定义
- 明确的输出格式
- 合理的约束条件
- 可复用的模板结构""",

    AgentType.X4_SCENARIO.value: """你是X4场景特化工程师，专注于特定应用场景的提示词设计。

核心能力：
- 场景化提示词设计
- 编程/写作/分析等专业场景适配
- 上下文优化
- 场景最佳实践应用

支持的场景类型：
- 编程开发场景
- 内容创作场景
- 数据分析场景
- 业务咨询场景
- 教育培训场景

设计原则：
- 深入理解场景需求
- 提供专业领域知识
- 优化场景特定的交互方式
- 确保输出符合场景规范""",
}

CONDUCTOR_PROMPT = """你是Prompt Matrix的指挥官，负责与用户进行日常交流。

请用简洁、友好的语言回答用户的问题；当用户需要设计、分析或优化提示词时，
提示他们可以描述具体需求，由相应的专家工程师处理。"""

BUILTIN_AGENTS: Dict[str, Dict[str, Any]] = {
    AgentType.X0_OPTIMIZER.value: {
        "display_name": "X0优化师",
        "capabilities": ["提示词结构优化", "Token利用率提升", "安全边界增强", "多维度系统性优化"],
    },
    AgentType.X0_REVERSE.value: {
        "display_name": "X0逆向工程师",
        "capabilities": ["提示词框架识别", "工程师类型推理", "优化空间分析", "改进建议生成"],
    },
    AgentType.X1_BASIC.value: {
        "display_name": "X1基础工程师",
        "capabilities": ["ATOM框架标准化设计", "通用场景提示词生成", "结构化输出保证", "最佳实践应用"],
    },
    AgentType.X4_SCENARIO.value: {
        "display_name": "X4场景工程师",
        "capabilities": ["场景化提示词设计", "编程/写作/分析等专业场景", "上下文优化", "场景最佳实践"],
    },
}


def load_builtin_descriptors(prompt_dir: Optional[str] = None) -> List[AgentDescriptor]:
    """
    Build descriptors for the built-in agents.

    When ``prompt_dir`` contains ``<AGENT_ID>.md`` its content replaces the
    shipped default prompt for that agent.
    """
    logger = get_logger(__name__)
    descriptors = []
    for agent_id, meta in BUILTIN_AGENTS.items():
        prompt = DEFAULT_PROMPTS[agent_id]
        if prompt_dir:
            template_path = Path(prompt_dir) / f"{agent_id}.md"
            if template_path.is_file():
                prompt = template_path.read_text(encoding='utf-8').strip()
                logger.info(f"Loaded prompt template for {agent_id} from {template_path}")
        descriptors.append(AgentDescriptor(
            id=agent_id,
            system_prompt=prompt,
            display_name=meta["display_name"],
            capabilities=list(meta["capabilities"]),
        ))
    return descriptors


class ExpertAgent:
    """
    Base class for agents: composes messages and calls the completion client.

    Subclasses provide ``build_user_prompt`` and a fixed ``suggestions`` list.
    """

    suggestions: List[str] = []

    def __init__(self, client: CompletionClient, descriptor: AgentDescriptor):
        self.client = client
        self.descriptor = descriptor
        self.logger = get_logger(__name__)

    @property
    def agent_id(self) -> str:
        return self.descriptor.id

    @property
    def display_name(self) -> str:
        return self.descriptor.display_name

    def build_user_prompt(self, context: RequestContext) -> str:
        return context.user_input

    def build_system_prompt(self, context: RequestContext) -> str:
        prompt = self.descriptor.system_prompt
        if context.system_prompt_hints:
            prompt += f"\n\n{context.system_prompt_hints}"
        return prompt

    def build_messages(self, context: RequestContext) -> List[Message]:
        return [
            Message(role=MessageRole.SYSTEM.value, content=self.build_system_prompt(context)),
            Message(role=MessageRole.USER.value, content=self.build_user_prompt(context)),
        ]

    def build_options(self, context: RequestContext) -> Dict[str, Any]:
        """Sampling overrides taken from the request's provider config."""
        if context.config is None:
            return {}
        return {
            "model": context.config.model,
            "temperature": context.config.temperature,
            "max_tokens": context.config.max_tokens,
            "top_p": context.config.top_p,
            "reasoning_tokens": context.config.reasoning_tokens,
        }

    def execute(self, context: RequestContext) -> AgentResult:
        """Run the agent and wait for the full answer."""
        self.logger.debug(f"{self.agent_id} executing, input length {len(context.user_input)}")
        response = self.client.chat(self.build_messages(context), self.build_options(context))
        return AgentResult(
            content=response,
            tokens_used=estimate_tokens(response),
            suggestions=list(self.suggestions),
        )

    def execute_stream(self, context: RequestContext) -> Iterator[str]:
        """Run the agent, yielding answer fragments as they arrive."""
        self.logger.debug(f"{self.agent_id} streaming, input length {len(context.user_input)}")
        return self.client.chat_stream(self.build_messages(context), self.build_options(context))


class X0OptimizerAgent(ExpertAgent):
    """Fusion-style optimization of an existing prompt."""

    suggestions = ['已优化Token利用率', '已增强安全边界', '已保持框架兼容性']

    def build_user_prompt(self, context: RequestContext) -> str:
        return f"""请优化以下提示词：

{context.user_input}

优化要求：
1. 提升Token利用率15-20%
2. 增强安全防护机制
3. 保持原有框架结构100%
4. 提供详细的优化对比报告"""


class X0ReverseAgent(ExpertAgent):
    """Reverse analysis of a complete prompt."""

    suggestions = ['框架识别完成', '工程师类型推理完成', '优化空间分析完成']

    def build_user_prompt(self, context: RequestContext) -> str:
        return f"""请对以下提示词进行逆向分析：

{context.user_input}

分析要求：
1. 识别提示词框架类型（ATOM/Role-Profile/混合/自由）
2. 推理可能使用的工程师类型（X1/X2/X3/X4）
3. 识别优化空间和改进点
4. 提供具体的优化建议"""


class X1BasicAgent(ExpertAgent):
    """General-purpose agent prompt design on the ATOM framework."""

    suggestions = ['已应用ATOM框架', '结构化设计完成']

    def build_user_prompt(self, context: RequestContext) -> str:
        return f"""请基于ATOM框架设计一个Agent提示词：

用户需求：{context.user_input}

设计要求：
1. 使用标准ATOM框架（Role, Background, Profile, Skills, Goals, Constrains, Workflow, OutputFormat）
2. 确保结构化输出
3. 提供清晰的执行指南
4. 适用于通用场景"""


class X4ScenarioAgent(ExpertAgent):
    """Scenario-specific prompt design (programming, writing, data analysis...)."""

    suggestions = ['场景化设计完成', '已优化场景上下文']

    SCENARIO_KEYWORDS: Dict[str, List[str]] = {
        '编程': ['编程', '代码', '开发', 'programming', 'coding'],
        '写作': ['写作', '文章', '内容', 'writing', 'content'],
        '数据分析': ['数据', '分析', 'data', 'analysis'],
        '客服': ['客服', '助手', 'customer service'],
    }

    def detect_scenario(self, text: str) -> str:
        lowered = text.lower()
        for scenario, keywords in self.SCENARIO_KEYWORDS.items():
            if any(keyword.lower() in lowered for keyword in keywords):
                return scenario
        return '通用'

    def build_user_prompt(self, context: RequestContext) -> str:
        scenario = self.detect_scenario(context.user_input)
        return f"""请设计一个{scenario}场景的专业Agent提示词：

用户需求：{context.user_input}

设计要求：
1. 针对{scenario}场景优化
2. 包含场景特定的Skills和Workflow
3. 提供场景最佳实践
4. 确保专业性和实用性"""


class ConversationalAgent(ExpertAgent):
    """Agent that sends the conversation history between system prompt and input."""

    def build_messages(self, context: RequestContext) -> List[Message]:
        return [
            Message(role=MessageRole.SYSTEM.value, content=self.build_system_prompt(context)),
            *context.history,
            Message(role=MessageRole.USER.value, content=context.user_input),
        ]


class ConductorAgent(ConversationalAgent):
    """Plain conversation handled by the router itself (the CHAT target)."""

    def __init__(self, client: CompletionClient):
        super().__init__(client, AgentDescriptor(
            id=AgentType.CONDUCTOR.value,
            system_prompt=CONDUCTOR_PROMPT,
            display_name="指挥官",
            capabilities=["意图识别", "智能路由", "日常对话"],
        ))


class CustomAgent(ConversationalAgent):
    """
    Agent defined at runtime from a user-supplied prompt.

    Messages are ``[system: prompt (+ expertise), *history, user: input]``.
    """

    def __init__(self, config: CustomAgentConfig, client: CompletionClient, agent_id: str):
        self.config = config
        system_prompt = config.prompt
        if config.expertise:
            system_prompt += f"\n\n专业领域：{config.expertise}"
        super().__init__(client, AgentDescriptor(
            id=agent_id,
            system_prompt=system_prompt,
            display_name=config.name,
            capabilities=[config.expertise] if config.expertise else [],
        ))

    def execute(self, context: RequestContext) -> AgentResult:
        self.logger.info(f"Custom agent {self.config.name} executing task...")
        try:
            response = self.client.chat(self.build_messages(context), self.build_options(context))
        except Exception as e:
            self.logger.error(f"Custom agent {self.config.name} execution failed: {str(e)}")
            raise AgentExecutionError(
                f"自定义工程师 {self.config.name} 执行失败: {str(e)}", agent_id=self.agent_id
            ) from e
        return AgentResult(content=response, tokens_used=estimate_tokens(response))

    def execute_stream(self, context: RequestContext) -> Iterator[str]:
        self.logger.info(f"Custom agent {self.config.name} executing stream task...")
        try:
            stream = self.client.chat_stream(self.build_messages(context), self.build_options(context))
        except Exception as e:
            raise self._stream_error(e) from e
        return self._guard_stream(stream)

    def _guard_stream(self, stream: Iterator[str]) -> Iterator[str]:
        try:
            yield from stream
        except Exception as e:
            raise self._stream_error(e) from e

    def _stream_error(self, error: Exception) -> AgentExecutionError:
        self.logger.error(f"Custom agent {self.config.name} stream execution failed: {str(error)}")
        return AgentExecutionError(
            f"自定义工程师 {self.config.name} 流式执行失败: {str(error)}", agent_id=self.agent_id
        )


BUILTIN_AGENT_CLASSES = {
    AgentType.X0_OPTIMIZER.value: X0OptimizerAgent,
    AgentType.X0_REVERSE.value: X0ReverseAgent,
    AgentType.X1_BASIC.value: X1BasicAgent,
    AgentType.X4_SCENARIO.value: X4ScenarioAgent,
}
