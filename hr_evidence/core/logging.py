import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger
from contextvars import ContextVar

from hr_evidence.core.config import settings

# Set per request by the correlation id middleware
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine")


class EvidenceJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per line with timestamp, level, logger name and request id."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        log_record["level"] = record.levelname
        request_id = request_id_var.get()
        if request_id:
            log_record["request_id"] = request_id


def setup_logging(level: Optional[str] = None):
    root = logging.getLogger()
    # Called again by scripts and test reloads; keep a single JSON handler
    for handler in list(root.handlers):
        if isinstance(handler.formatter, EvidenceJsonFormatter):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(EvidenceJsonFormatter("%(timestamp) %(level) %(name) %(message)"))
    root.addHandler(handler)
    root.setLevel((level or settings.log_level).upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
