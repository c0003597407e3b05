"""
Logging setup and structured event records for Prompt Matrix.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from ..models.config import LoggingConfig
from ..models.core import FlowStep, RoutingDecision
from ..models.enums import StepStatus

ROOT_LOGGER_NAME = "prompt_matrix"

# SDK loggers that print every HTTP request at INFO
_TRANSPORT_LOGGERS = ("openai", "httpx", "httpcore")


def setup_logging(config: LoggingConfig, debug: bool = False) -> None:
    """
    Install console and rotating-file handlers on the package logger.

    Args:
        config: Logging configuration settings
        debug: Log at DEBUG and let the HTTP transport loggers through
    """
    level = logging.DEBUG if debug else config.level
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(config.format)

    # stdout carries streamed answers, so diagnostics go to stderr
    if config.enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if config.enable_file and config.file_path:
        Path(config.file_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.propagate = False

    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Logger under the ``prompt_matrix`` namespace.

    Module names that already start with the package name are used as is.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class RoutingLogger:
    """
    Emits routing decisions, flow step transitions and errors as log records
    with an ``event_type`` and the event's fields in ``extra``.
    """

    def __init__(self, name: str = "routing"):
        self.logger = get_logger(name)

    def log_routing_decision(self, decision: RoutingDecision) -> None:
        self.logger.info(
            f"Routed to {decision.target_agent} "
            f"(intent: {decision.intent.name}, confidence: {decision.confidence:.2f})",
            extra={
                "event_type": "routing_decision",
                "intent": decision.intent.name,
                "target_agent": decision.target_agent,
                "confidence": decision.confidence,
                "reasoning": decision.reasoning,
            }
        )

    def log_flow_step(self, flow_id: str, step: FlowStep) -> None:
        """Record a step's status change; failed steps are logged as warnings."""
        level = logging.WARNING if step.status == StepStatus.ERROR else logging.INFO
        message = f"Flow {flow_id} step {step.id} ({step.agent_type}): {step.status.value}"
        if step.error_message:
            message += f" - {step.error_message}"

        self.logger.log(
            level,
            message,
            extra={
                "event_type": "flow_step",
                "flow_id": flow_id,
                "step_id": step.id,
                "agent_type": step.agent_type,
                "status": step.status.value,
            }
        )

    def log_error(self, error: Exception, context: Optional[dict] = None) -> None:
        self.logger.error(
            f"Error occurred: {str(error)}",
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_code": getattr(error, "error_code", None),
                "context": context or {},
            },
            exc_info=error
        )
