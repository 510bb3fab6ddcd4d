"""One JSON object per log line on stdout, tagged with the worker execution."""

import json
import logging
import logging.config
import os
import uuid
from datetime import UTC, datetime

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


def execution_id() -> str:
    return os.getenv("CLOUD_RUN_EXECUTION") or uuid.uuid4().hex[:8]


def setup_logging(job_type: str = "") -> str:
    """Sends the root logger through JsonFormatter. Returns the execution id stamped on each record."""
    job_id = execution_id()
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JsonFormatter,
                "job_id": job_id,
                "job_type": job_type,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": os.getenv("LOG_LEVEL", "INFO").upper(),
            "handlers": ["stdout"],
        },
    })
    return job_id


class JsonFormatter(logging.Formatter):

    def __init__(self, job_id: str = "", job_type: str = "", *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.job_id = job_id
        self.job_type = job_type

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "job_id": self.job_id,
        }
        if self.job_type:
            entry["job_type"] = self.job_type

        entry.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and key not in entry
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
