"""
Tests for the sequential flow runner.
"""

import pytest

from prompt_matrix.core import FlowRunner
from prompt_matrix.models import FlowStep, FlowTemplate, InputSource, Message, StepStatus
from prompt_matrix.utils import FlowError

TWO_STEP = FlowTemplate(
    id="two-step",
    name="Two step",
    steps=[
        FlowStep(id="s1", title="Analyse", agent_type="X0_REVERSE", input_source=InputSource.USER),
        FlowStep(id="s2", title="Rewrite", agent_type="X1_BASIC", input_source=InputSource.PREVIOUS_STEP),
    ],
)


def numbered_replies():
    calls = {"n": 0}

    def reply(params):
        calls["n"] += 1
        return f"output-{calls['n']}"

    return reply


@pytest.fixture
def runner(router):
    router.add_history_message(Message(role="user", content="原始需求"))
    return FlowRunner(router, templates=[TWO_STEP])


def test_default_templates(router):
    runner = FlowRunner(router)

    assert [t.id for t in runner.templates] == ["flow-programming-assistant", "flow-prompt-optimizer"]
    assert runner.active_template.id == "flow-programming-assistant"
    assert [s.status for s in runner.steps] == [StepStatus.IDLE]


def test_previous_step_output_feeds_next_step(runner, fake_backend):
    fake_backend.reply = numbered_replies()

    steps = runner.run_flow()

    assert [s.status for s in steps] == [StepStatus.SUCCESS, StepStatus.SUCCESS]
    assert steps[0].output_full == "output-1"
    assert steps[1].output_full == "output-2"

    first_input = fake_backend.requests[0]["messages"][1]["content"]
    second_input = fake_backend.requests[1]["messages"][1]["content"]
    assert "原始需求" in first_input
    assert "output-1" in second_input
    assert "原始需求" not in second_input


def test_steps_use_forced_agents_and_hints(router, fake_backend):
    router.add_history_message(Message(role="user", content="请分析我的提示词"))
    runner = FlowRunner(router)
    runner.select_template("flow-prompt-optimizer")

    runner.run_flow()

    systems = [r["messages"][0]["content"] for r in fake_backend.requests]
    assert "X0逆向工程师" in systems[0]
    assert "ATOM" in systems[1]
    assert "X0提示词优化师" in systems[2]
    assert systems[0].endswith("并用结构化列表输出。")

    stats = router.get_routing_statistics()
    assert stats['agent_usage'] == {"X0_REVERSE": 1, "X1_BASIC": 1, "X0_OPTIMIZER": 1}


def test_custom_input_prefixes_base(router, runner):
    step = FlowStep(id="x", title="x", agent_type="X1_BASIC",
                    input_source=InputSource.USER, custom_input="先读需求")
    assert runner.compute_step_input(step, None, "原始需求") == "先读需求\n\n原始需求"

    step.input_source = InputSource.PREVIOUS_STEP
    assert runner.compute_step_input(step, "上一步", "原始需求") == "先读需求\n\n上一步"
    assert runner.compute_step_input(step, "", "原始需求") == "先读需求\n\n原始需求"

    step.input_source = InputSource.CUSTOM
    assert runner.compute_step_input(step, "上一步", "原始需求") == "先读需求"


def test_successful_steps_are_added_to_history(runner, router, fake_backend):
    fake_backend.reply = numbered_replies()
    runner.run_flow()

    assistant_turns = [m.content for m in router.get_history() if m.role == "assistant"]
    assert assistant_turns == ["output-1", "output-2"]


def test_summary_is_truncated(runner, fake_backend):
    fake_backend.reply = "字" * 500
    steps = runner.run_flow()

    assert len(steps[0].output_full) == 500
    assert steps[0].output_summary == "字" * 200


def test_failure_halts_flow(router, fake_backend):
    router.add_history_message(Message(role="user", content="原始需求"))
    runner = FlowRunner(router)
    runner.select_template("flow-prompt-optimizer")

    def fail_on_second(params):
        if len(fake_backend.requests) == 2:
            raise RuntimeError("upstream 500")
        return "ok"

    fake_backend.reply = fail_on_second

    with pytest.raises(FlowError) as excinfo:
        runner.run_flow()

    assert excinfo.value.step_id == "step-x1-basic"
    assert [s.status for s in runner.steps] == [StepStatus.SUCCESS, StepStatus.ERROR, StepStatus.IDLE]
    assert runner.steps[0].output_full == "ok"
    assert "upstream 500" in runner.steps[1].error_message
    assert len(fake_backend.requests) == 2


def test_on_update_sees_status_transitions(runner):
    seen = []
    runner.run_flow(on_update=lambda step: seen.append((step.id, step.status)))

    assert seen[0] == ("s1", StepStatus.RUNNING)
    assert ("s1", StepStatus.SUCCESS) in seen
    assert seen[-1] == ("s2", StepStatus.SUCCESS)
    assert seen.index(("s1", StepStatus.SUCCESS)) < seen.index(("s2", StepStatus.RUNNING))


def test_rerun_and_template_switch_reset_state(router, runner):
    runner.run_flow()
    assert runner.steps[0].status == StepStatus.SUCCESS

    runner.reset_current_flow()
    assert all(s.status == StepStatus.IDLE and s.output_full is None for s in runner.steps)

    # Runtime state never leaks into the template
    assert TWO_STEP.steps[0].status == StepStatus.IDLE
    assert TWO_STEP.steps[0].output_full is None


def test_select_unknown_template(runner):
    with pytest.raises(FlowError):
        runner.select_template("missing")
    assert runner.active_template.id == "two-step"


def test_update_step(runner):
    updated = runner.update_step("s1", output_summary="draft", status=StepStatus.RUNNING)
    assert updated.output_summary == "draft"
    assert runner.steps[0].status == StepStatus.RUNNING

    assert runner.update_step("missing", status=StepStatus.ERROR) is None


def test_run_without_templates(router):
    runner = FlowRunner(router, templates=[])
    assert runner.active_template is None
    with pytest.raises(FlowError):
        runner.run_flow()
