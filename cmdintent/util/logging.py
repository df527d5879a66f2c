"""
Structured logging for classification decisions and embedding operations.
Every line follows the "Operation: X, Status: Y, Details: {...}" shape.
"""

import logging
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for intent classification, embedding and cache operations."""

    def __init__(self, name: str = "cmdintent"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_classification(self, raw_input: str, result_type: str, command: str = None,
                           confidence: float = 0.0, method: str = None, lifecycle_stage: str = None,
                           alternatives: int = 0):
        """Log a classification decision."""
        details = {
            "input": sanitize_payload(raw_input),
            "command": command,
            "confidence": round(confidence, 4),
            "method": method,
            "lifecycle_stage": lifecycle_stage,
            "alternatives": alternatives,
        }
        self.log_operation("intent.classify", result_type, details, level=logging.DEBUG)

    def log_embedding_operation(self, operation: str, status: str = "success", details: Dict[str, Any] = None):
        """Log an embedding service operation (init, fallback, inference)."""
        level = logging.WARNING if status in ("fallback", "failed") else logging.INFO
        self.log_operation(f"embedding.{operation}", status, details, level=level)

    def log_cache_operation(self, operation: str, status: str = "success", details: Dict[str, Any] = None):
        """Log an embedding cache operation (load, save, clear)."""
        level = logging.WARNING if status == "failed" else logging.DEBUG
        self.log_operation(f"cache.{operation}", status, details, level=level)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)


def sanitize_payload(payload: Any, max_length: int = 100, sensitive_fields: List[str] = None) -> Any:
    """Truncate long strings and redact sensitive fields before they reach a log line."""
    if sensitive_fields is None:
        sensitive_fields = ['secret', 'password', 'token']

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if k in sensitive_fields:
                sanitized[k] = "[REDACTED]"
            else:
                sanitized[k] = sanitize_payload(v, max_length, sensitive_fields)
        return sanitized
    elif isinstance(payload, str):
        return payload[:max_length] + "..." if len(payload) > max_length else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, max_length, sensitive_fields) for item in payload]
    else:
        return payload


# Global logger instance
logger = StructuredLogger()
