"""
CodeHeal - Centralized Logging Configuration
Supports both development (plain text) and production (JSON structured) logging
"""

import logging
import sys
import json
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict
from contextvars import ContextVar

from codeheal.core.config import settings


# Context variables for remediation tracing
session_id_var: ContextVar[str] = ContextVar('session_id', default='')
fingerprint_var: ContextVar[str] = ContextVar('fingerprint', default='')
target_file_var: ContextVar[str] = ContextVar('target_file', default='')


def get_session_id() -> str:
    """Get current remediation session ID from context"""
    return session_id_var.get() or ''


def set_session_id(session_id: str) -> None:
    """Set remediation session ID in context"""
    session_id_var.set(session_id)


def get_fingerprint() -> str:
    """Get current error fingerprint from context"""
    return fingerprint_var.get() or ''


def set_fingerprint(fingerprint: str) -> None:
    """Set error fingerprint in context"""
    fingerprint_var.set(fingerprint)


def get_target_file() -> str:
    """Get current target file from context"""
    return target_file_var.get() or ''


def set_target_file(target_file: str) -> None:
    """Set target file in context"""
    target_file_var.set(target_file)


def generate_session_id() -> str:
    """Generate a unique session ID"""
    return str(uuid.uuid4())[:8]


# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'message', 'taskName',
}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging in production
    Outputs logs in a format easily parsed by log aggregation tools (ELK, CloudWatch, etc.)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add context from context variables
        session_id = get_session_id()
        if session_id:
            log_data["session_id"] = session_id

        fingerprint = get_fingerprint()
        if fingerprint:
            log_data["fingerprint"] = fingerprint

        target_file = get_target_file()
        if target_file:
            log_data["target_file"] = target_file

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info) if record.exc_info[0] else None
            }

        # Add extra fields from record
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ContextualFormatter(logging.Formatter):
    """
    Enhanced formatter that includes context variables (session_id, fingerprint, etc.)
    Used for development with readable output
    """

    def format(self, record: logging.LogRecord) -> str:
        record.session_id = get_session_id() or '-'
        record.fingerprint = (get_fingerprint() or '-')[:8]
        record.target_file = get_target_file() or '-'

        return super().format(record)


class CodeHealLogger(logging.Logger):
    """
    Custom logger with convenience methods for structured logging
    """

    def log_strategy_event(self, strategy: str, status: str, message: str,
                           **kwargs) -> None:
        """Log a remediation strategy transition (start/success/fail)"""
        level = logging.WARNING if status == "fail" else logging.INFO
        self.log(
            level,
            f"Strategy {strategy}: {status.upper()} - {message}",
            extra={
                "event_type": "autofix_strategy",
                "strategy": strategy,
                "strategy_status": status,
                **kwargs
            }
        )

    def log_ai_event(self, strategy: str, event: str, size: int = 0,
                     duration_ms: float = 0, **kwargs) -> None:
        """Log AI request/response events"""
        self.info(
            f"AI {event} [{strategy}]" +
            (f" ({size} chars)" if size else "") +
            (f" in {duration_ms:.0f}ms" if duration_ms else ""),
            extra={
                "event_type": "autofix_ai",
                "strategy": strategy,
                "ai_event": event,
                "payload_size": size,
                "duration_ms": duration_ms,
                **kwargs
            }
        )

    def log_error_with_context(self, error: BaseException, context: str = None,
                               **kwargs) -> None:
        """Log error with full context"""
        self.error(
            f"Error in {context}: {type(error).__name__}: {str(error)}",
            exc_info=(type(error), error, error.__traceback__),
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_message": str(error),
                "error_context": context,
                **kwargs
            }
        )

    def log_performance(self, operation: str, duration_ms: float,
                        threshold_ms: float = 1000, **kwargs) -> None:
        """Log performance metrics, warn if over threshold"""
        level = logging.WARNING if duration_ms > threshold_ms else logging.DEBUG
        self.log(
            level,
            f"Performance: {operation} took {duration_ms:.2f}ms" +
            (f" (threshold: {threshold_ms}ms)" if duration_ms > threshold_ms else ""),
            extra={
                "event_type": "performance",
                "operation": operation,
                "duration_ms": duration_ms,
                "threshold_ms": threshold_ms,
                "exceeded_threshold": duration_ms > threshold_ms,
                **kwargs
            }
        )


def setup_logging() -> CodeHealLogger:
    """Setup logging configuration based on environment"""

    # Register custom logger class
    logging.setLoggerClass(CodeHealLogger)

    logger = logging.getLogger("codeheal")
    logger.__class__ = CodeHealLogger  # Ensure it's our custom class
    logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))

    # Clear existing handlers
    logger.handlers.clear()

    if settings.is_production:
        # Production: JSON formatted logs for log aggregation
        formatter = JSONFormatter()
        file_formatter = formatter
    else:
        # Development: Human-readable format
        detailed_format = (
            "%(asctime)s | %(levelname)-8s | "
            "[%(session_id)s] [%(fingerprint)s] %(target_file)s | "
            "%(funcName)s:%(lineno)d | %(message)s"
        )
        simple_format = "%(levelname)-8s | [%(session_id)s] %(message)s"

        formatter = ContextualFormatter(simple_format)
        file_formatter = ContextualFormatter(detailed_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        log_file = Path(settings.LOG_FILE)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10485760,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)

    logger.debug(
        "Logging initialized",
        extra={
            "environment": settings.ENVIRONMENT,
            "log_level": settings.LOG_LEVEL,
            "json_logging": settings.is_production
        }
    )

    return logger


# Create logger instance
logger: CodeHealLogger = setup_logging()


# Convenience exports
__all__ = [
    'logger',
    'setup_logging',
    'get_session_id',
    'set_session_id',
    'get_fingerprint',
    'set_fingerprint',
    'get_target_file',
    'set_target_file',
    'generate_session_id',
    'CodeHealLogger',
    'JSONFormatter',
    'ContextualFormatter',
]
