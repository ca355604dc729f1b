"""
PushGate - Structured Logging

Provides structured JSON logging with context injection for correlation IDs
and middleware event keys. Push tokens, passwords and SIP accounts are
automatically masked.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Optional


# =============================================================================
# Context Variables
# =============================================================================

correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)
event_key_var: ContextVar[Optional[str]] = ContextVar('event_key', default=None)


# =============================================================================
# Masking Utilities
# =============================================================================

def mask_token(token: Optional[str]) -> Optional[str]:
    """Mask a push token to its last 6 characters."""
    if not token:
        return None
    return f"...{token[-6:]}" if len(token) > 6 else "***"


def mask_event_key(key: Optional[str]) -> Optional[str]:
    """Mask middleware event key to first 8 characters."""
    if not key:
        return None
    return key[:8] if len(key) > 8 else key


def mask_sensitive_data(data: dict) -> dict:
    """
    Recursively mask sensitive fields in a dictionary.

    Sensitive fields: token, password, secret, sip_user_id, phonenumber, etc.
    """
    sensitive_keys = {
        'token', 'password', 'secret', 'sip_user_id', 'sip_account',
        'phonenumber', 'phone', 'caller_id', 'username',
    }

    masked = {}
    for key, value in data.items():
        key_lower = key.lower()

        if any(s in key_lower for s in sensitive_keys):
            if isinstance(value, str):
                masked[key] = f"***{value[-2:]}" if len(value) > 2 else "***"
            elif value is None:
                masked[key] = None
            else:
                masked[key] = "[REDACTED]"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive_data(value)
        else:
            masked[key] = value

    return masked


# =============================================================================
# Structured Formatter
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """
    JSON formatter that injects context variables and masks sensitive data.

    Output format:
    {
        "timestamp": "2024-11-30T00:00:00.000Z",
        "level": "INFO",
        "logger": "module.submodule",
        "correlation_id": "req_abc123",
        "event_key": "a1b2c3d4",
        "message": "Human-readable message",
        "data": { ... }
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_entry["correlation_id"] = correlation_id

        event_key = event_key_var.get()
        if event_key:
            log_entry["event_key"] = mask_event_key(event_key)

        if hasattr(record, 'event_type'):
            log_entry["event_type"] = record.event_type

        if hasattr(record, 'data') and record.data:
            log_entry["data"] = mask_sensitive_data(record.data)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter for development.
    Includes timestamp, level, logger, and message with context.
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S")

        context_parts = []

        correlation_id = correlation_id_var.get()
        if correlation_id:
            context_parts.append(f"req={correlation_id}")

        event_key = event_key_var.get()
        if event_key:
            context_parts.append(f"event={mask_event_key(event_key)}")

        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        message = f"{timestamp} | {record.levelname:<8} | {record.name}{context_str} | {record.getMessage()}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


# =============================================================================
# Logger Setup
# =============================================================================

def setup_structured_logging(
    level: str = "INFO",
    json_format: bool = False,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (True for production, False for development)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter())

    root_logger.addHandler(handler)

    # Suppress noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# =============================================================================
# Context Managers
# =============================================================================

class LogContext:
    """
    Context manager for setting log context variables.

    Usage:
        with LogContext(event_key=payload["unique_key"]):
            logger.info("Deciding availability")
    """

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        event_key: Optional[str] = None,
    ):
        self._correlation_id = correlation_id
        self._event_key = event_key
        self._tokens: list[tuple[ContextVar, Any]] = []

    def __enter__(self):
        if self._correlation_id:
            self._tokens.append((correlation_id_var, correlation_id_var.set(self._correlation_id)))
        if self._event_key:
            self._tokens.append((event_key_var, event_key_var.set(self._event_key)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
        return False
