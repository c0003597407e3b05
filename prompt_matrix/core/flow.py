"""
Flow runner: executes a template's steps one after another through the router,
feeding each step's output into the next.
"""

from dataclasses import fields, replace
from typing import Callable, List, Optional, Any

from ..models import (
    AgentType, FlowStep, FlowTemplate, InputSource, Message, MessageRole,
    StepStatus, StreamEventType,
)
from ..models.core import now_ms
from ..utils import get_logger, RoutingLogger
from ..utils.error_handling import FlowError

SUMMARY_LENGTH = 200

DEFAULT_FLOW_TEMPLATES: List[FlowTemplate] = [
    FlowTemplate(
        id='flow-programming-assistant',
        name='编程助手设计（单步 X4）',
        description='使用 X4 场景工程师，一步生成专业编程助手提示词',
        steps=[
            FlowStep(
                id='step-x4-programming',
                title='X4 场景工程师：设计编程助手提示词',
                agent_type=AgentType.X4_SCENARIO.value,
                input_source=InputSource.USER,
                custom_input='根据用户对编程语言、框架和风格的描述，输出一个可直接用于代码助手的系统提示词。',
                system_prompt_hints='请使用清晰的结构化格式，包含角色定位、能力边界、安全约束和交互风格说明。',
            ),
        ],
    ),
    FlowTemplate(
        id='flow-prompt-optimizer',
        name='提示词优化流水线（X0→X1→X0）',
        description='逆向分析 → 标准化 → 系统性优化的三步流水线',
        steps=[
            FlowStep(
                id='step-x0-reverse',
                title='X0 逆向工程师：分析现有提示词',
                agent_type=AgentType.X0_REVERSE.value,
                input_source=InputSource.USER,
                custom_input='用户会提供一个现有提示词，请输出其结构分析与设计意图总结，方便后续重构。',
                system_prompt_hints='重点识别角色设定、输入输出约束、安全边界和工作流步骤，并用结构化列表输出。',
            ),
            FlowStep(
                id='step-x1-basic',
                title='X1 基础工程师：重构为 ATOM 提示词',
                agent_type=AgentType.X1_BASIC.value,
                input_source=InputSource.PREVIOUS_STEP,
                custom_input='基于上一步的分析结果，用 ATOM 或类似结构重写一个更规范的系统提示词。',
                system_prompt_hints='输出只包含新的系统提示词本身，不需要额外解释，方便用户直接复制使用。',
            ),
            FlowStep(
                id='step-x0-optimizer',
                title='X0 优化师：系统性优化并给出对比',
                agent_type=AgentType.X0_OPTIMIZER.value,
                input_source=InputSource.PREVIOUS_STEP,
                custom_input='在保留核心语义的前提下，从鲁棒性、安全性和可维护性三个维度优化提示词。',
                system_prompt_hints='先简要说明主要改进点，再给出最终优化后的完整提示词。',
            ),
        ],
    ),
]

StepCallback = Callable[[FlowStep], Any]

_RUNTIME_FIELDS = ('status', 'output_summary', 'output_full', 'error_message')


class FlowRunner:
    """
    Sequential executor for flow templates.

    Holds the template list, the active template and the runtime copies of its
    steps. Steps move ``idle -> running -> success | error``; the first error
    stops the flow.
    """

    def __init__(self, router, templates: Optional[List[FlowTemplate]] = None):
        self.logger = get_logger(__name__)
        self.routing_logger = RoutingLogger("flow")
        self.router = router
        self.templates: List[FlowTemplate] = list(templates if templates is not None else DEFAULT_FLOW_TEMPLATES)
        self.active_template_id: Optional[str] = self.templates[0].id if self.templates else None
        self.steps: List[FlowStep] = []
        self.reset_current_flow()

    @property
    def active_template(self) -> Optional[FlowTemplate]:
        return self.get_template(self.active_template_id) if self.active_template_id else None

    def get_template(self, template_id: str) -> Optional[FlowTemplate]:
        for template in self.templates:
            if template.id == template_id:
                return template
        return None

    def select_template(self, template_id: str) -> None:
        """
        Make a template active and reset its steps.

        Raises:
            FlowError: If no template has this id
        """
        if template_id == self.active_template_id:
            return
        if self.get_template(template_id) is None:
            raise FlowError(f"Flow template not found: {template_id}")

        self.active_template_id = template_id
        self.reset_current_flow()
        self.logger.info(f"Flow template selected: {template_id}")

    def reset_current_flow(self) -> None:
        """Rebuild runtime steps from the active template, all idle."""
        template = self.active_template
        if template is None:
            self.steps = []
            return

        self.steps = [
            replace(step, status=StepStatus.IDLE, output_summary=None, output_full=None, error_message=None)
            for step in template.steps
        ]

    def update_step(self, step_id: str, **patch) -> Optional[FlowStep]:
        """Patch a runtime step in place; unknown step ids are ignored."""
        step = self._find_step(step_id)
        if step is None:
            return None

        known = {f.name for f in fields(FlowStep)}
        for key, value in patch.items():
            if key not in known:
                raise ValueError(f"Unknown flow step field: {key}")
            setattr(step, key, value)
        return step

    def compute_step_input(self, step: FlowStep, previous_output: Optional[str], user_message: str) -> str:
        """
        Build the text sent to a step's agent.

        Args:
            step: The step about to run
            previous_output: Full output of the preceding step, if any
            user_message: Last user message when the flow started

        Returns:
            The step input
        """
        if step.input_source == InputSource.CUSTOM:
            return step.custom_input or ""

        if step.input_source == InputSource.PREVIOUS_STEP and previous_output:
            base = previous_output
        else:
            base = user_message

        if step.custom_input:
            return f"{step.custom_input}\n\n{base}"
        return base

    def run_flow(self, template_id: Optional[str] = None,
                 on_update: Optional[StepCallback] = None) -> List[FlowStep]:
        """
        Run every step of a template in order.

        Args:
            template_id: Template to run; defaults to the active one
            on_update: Called with the step after each state change

        Returns:
            The runtime steps, all in ``success``

        Raises:
            FlowError: If no template is active or a step fails; the failing
                step is left in ``error`` and later steps stay ``idle``
        """
        if template_id is not None:
            self.select_template(template_id)
        if self.active_template is None:
            raise FlowError("No flow template selected")

        self.reset_current_flow()
        flow_id = self.active_template_id
        user_message = self._last_user_message()
        previous_output: Optional[str] = None

        self.logger.info(f"Running flow {flow_id} with {len(self.steps)} steps")

        for step in self.steps:
            self._set_status(flow_id, step, StepStatus.RUNNING, on_update)
            step_input = self.compute_step_input(step, previous_output, user_message)

            try:
                self._run_step(step, step_input, on_update)
            except Exception as e:
                step.error_message = str(e)
                self._set_status(flow_id, step, StepStatus.ERROR, on_update)
                raise FlowError(f"Flow step '{step.title}' failed: {str(e)}", step_id=step.id) from e

            self._set_status(flow_id, step, StepStatus.SUCCESS, on_update)
            previous_output = step.output_full
            self.router.add_history_message(Message(
                role=MessageRole.ASSISTANT.value,
                content=step.output_full or "",
                timestamp=now_ms(),
            ))

        self.logger.info(f"Flow {flow_id} completed")
        return self.steps

    def _run_step(self, step: FlowStep, step_input: str, on_update: Optional[StepCallback]) -> None:
        accumulated = ""
        events = self.router.handle_request_stream(
            step_input,
            forced_agent=step.agent_type,
            system_prompt_hints=step.system_prompt_hints,
        )
        for event in events:
            if event.type != StreamEventType.CONTENT:
                continue
            accumulated += event.text
            step.output_full = accumulated
            step.output_summary = accumulated[:SUMMARY_LENGTH]
            if on_update:
                on_update(step)

    def _set_status(self, flow_id: str, step: FlowStep, status: StepStatus,
                    on_update: Optional[StepCallback]) -> None:
        step.status = status
        self.routing_logger.log_flow_step(flow_id, step)
        if on_update:
            on_update(step)

    def _last_user_message(self) -> str:
        for message in reversed(self.router.get_history()):
            if message.role == MessageRole.USER.value:
                return message.content
        return ""

    def _find_step(self, step_id: str) -> Optional[FlowStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None
