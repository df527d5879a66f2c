"""
Append-only JSONL audit trail of classification decisions.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..core import config
from ..util.logging import logger, sanitize_payload
from .schemas import ClassificationResult


def build_audit_record(raw_input: str, result: ClassificationResult) -> Dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "input": raw_input,
        "command": result.command.name if result.command else None,
        "type": result.type,
        "confidence": result.confidence,
        "method": result.method,
        "lifecycle_stage": result.lifecycle_stage.value if result.lifecycle_stage else None,
        "alternatives": len(result.alternatives),
    }


class ClassificationAuditLogger:
    """Writes one JSON line per classification. Failures never reach the caller."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else config.get_audit_path()

    def record(self, raw_input: str, result: ClassificationResult) -> bool:
        """Append a record; returns False (after logging a warning) if it could not be written."""
        try:
            line = json.dumps(build_audit_record(raw_input, result))
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
            return True
        except Exception as e:
            logger.log_operation("audit.record", "failed", {
                "path": str(self.path),
                "input": sanitize_payload(raw_input),
                "error": str(e),
            }, level=logging.WARNING)
            return False
