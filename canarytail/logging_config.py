"""
Logging configuration for CanaryTail.

Provides structured JSON logging and an audit logger for canary issuance,
signing and validation events.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import List, Optional

# Context variable for operation ID tracking
operation_id_var: ContextVar[str] = ContextVar('operation_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per record, suitable for log aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        operation_id = operation_id_var.get()
        if operation_id:
            log_data["operation_id"] = operation_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Specialized logger for audit events.

    Records canary issuance, signing, validation outcomes and
    security-relevant findings such as panic-key use.
    """

    def __init__(self, name: str = "canarytail.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        """Internal logging method with extra fields."""
        if not self._logger.isEnabledFor(level):
            return
        extra = {
            "event_type": event_type,
            "operation_id": operation_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def canary_issued(self, domain: str, signer: str, operation: str, release: str) -> None:
        """Log a new or re-issued canary."""
        self._log(
            logging.INFO,
            "CANARY_ISSUED",
            domain=domain,
            signer=signer,
            operation=operation,
            release=release,
            message=f"Canary {operation} for {domain}"
        )

    def canary_signed(self, domain: str, signer: str) -> None:
        """Log a signature set being added to a canary."""
        self._log(
            logging.INFO,
            "CANARY_SIGNED",
            domain=domain,
            signer=signer,
            message=f"Canary for {domain} signed by {signer}"
        )

    def validation_result(
        self,
        domain: str,
        ok: bool,
        failure_code: Optional[str] = None,
        reason: Optional[str] = None
    ) -> None:
        """Log the outcome of a validation."""
        level = logging.INFO if ok else logging.WARNING
        self._log(
            level,
            "VALIDATION_RESULT",
            domain=domain,
            ok=ok,
            failure_code=failure_code,
            reason=reason,
            message=f"Canary for {domain} {'valid' if ok else 'invalid'}"
        )

    def oracle_lookup(self, block_hash: str, ok: bool, error: Optional[str] = None) -> None:
        """Log a freshness anchor lookup."""
        self._log(
            logging.DEBUG if ok else logging.WARNING,
            "ORACLE_LOOKUP",
            block_hash=block_hash,
            ok=ok,
            error=error,
            message=f"Block lookup {'succeeded' if ok else 'failed'} for {block_hash}"
        )

    def security_event(
        self,
        event: str,
        severity: str = "medium",
        **details
    ) -> None:
        """Log a security-relevant event."""
        level = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL
        }.get(severity, logging.WARNING)

        self._log(
            level,
            "SECURITY_EVENT",
            security_event=event,
            severity=severity,
            **details,
            message=f"Security event: {event}"
        )

    def panic_detected(self, domain: str) -> None:
        self.security_event("PANIC_KEY_USED", severity="critical", domain=domain)

    def trigger_codes(self, domain: str, missing: List[str]) -> None:
        self.security_event("TRIGGER_CODES", severity="high", domain=domain, missing_codes=missing)


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def set_operation_id(operation_id: Optional[str] = None) -> str:
    """
    Set the operation ID for the current context.

    Args:
        operation_id: ID to set, or None to generate one

    Returns:
        The operation ID that was set
    """
    if operation_id is None:
        operation_id = str(uuid.uuid4())
    operation_id_var.set(operation_id)
    return operation_id


def get_operation_id() -> str:
    """Get the current operation ID."""
    return operation_id_var.get()


# Global audit logger instance
audit_log = AuditLogger()
