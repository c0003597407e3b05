"""
Tests for the structured records emitted by RoutingLogger.
"""

import logging

import pytest

from prompt_matrix.core import FlowRunner
from prompt_matrix.models import LoggingConfig, Message
from prompt_matrix.utils import AgentNotFoundError, FlowError, get_logger, setup_logging


def records_of(caplog, event_type):
    return [r for r in caplog.records if getattr(r, "event_type", None) == event_type]


def test_get_logger_prefixes_once():
    assert get_logger("routing").name == "prompt_matrix.routing"
    assert get_logger("prompt_matrix.core.router").name == "prompt_matrix.core.router"


def test_routing_decision_record(router, caplog):
    with caplog.at_level(logging.INFO, logger="prompt_matrix"):
        router.handle_request("请优化、改进并提升这个提示词")

    [record] = records_of(caplog, "routing_decision")
    assert record.name == "prompt_matrix.routing"
    assert record.intent == "OPTIMIZE"
    assert record.target_agent == "X0_OPTIMIZER"
    assert 0 < record.confidence <= 1
    assert "X0_OPTIMIZER" in record.getMessage()


def test_flow_step_records(router, fake_backend, caplog):
    router.add_history_message(Message(role="user", content="原始需求"))
    runner = FlowRunner(router)
    runner.select_template("flow-prompt-optimizer")
    fake_backend.error = RuntimeError("upstream 500")

    with caplog.at_level(logging.INFO, logger="prompt_matrix"):
        with pytest.raises(FlowError):
            runner.run_flow()

    steps = records_of(caplog, "flow_step")
    assert [r.status for r in steps] == ["running", "error"]
    assert steps[0].levelno == logging.INFO
    assert steps[1].levelno == logging.WARNING
    assert steps[1].agent_type == runner.steps[0].agent_type
    assert "upstream 500" in steps[1].getMessage()


def test_error_record_carries_code(router, caplog):
    with caplog.at_level(logging.INFO, logger="prompt_matrix"):
        with pytest.raises(AgentNotFoundError):
            router.handle_request("hello", forced_agent="NOPE")

    [record] = records_of(caplog, "error")
    assert record.error_type == "AgentNotFoundError"
    assert record.error_code == "AGENT_NOT_FOUND"
    assert record.levelno == logging.ERROR


def test_setup_logging_quiets_transport_loggers(tmp_path):
    config = LoggingConfig(enable_console=False, enable_file=True, file_path=str(tmp_path / "logs" / "app.log"))
    root = logging.getLogger("prompt_matrix")
    try:
        setup_logging(config)
        assert logging.getLogger("openai").level == logging.WARNING
        assert (tmp_path / "logs").is_dir()

        setup_logging(config, debug=True)
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.DEBUG
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers.clear()
        root.propagate = True
        root.setLevel(logging.NOTSET)
        for name in ("openai", "httpx", "httpcore"):
            logging.getLogger(name).setLevel(logging.NOTSET)
