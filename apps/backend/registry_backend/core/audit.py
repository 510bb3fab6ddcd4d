"""Security and moderation events logged as JSON to stdout for Cloud Logging ingestion"""
import json
import logging
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

logger = logging.getLogger("audit")


class AuditEvent(str, Enum):
    SPAMMER_MARKED = "spammer_marked"
    SPAMMER_MARK_FAILED = "spammer_mark_failed"
    INDEX_REMOVAL_FAILED = "index_removal_failed"
    GITHUB_CONNECTED = "github_connected"
    GITHUB_DISCONNECTED = "github_disconnected"
    GITHUB_SYNC_REQUESTED = "github_sync_requested"


def log_audit_event(
    event: AuditEvent,
    user_id: UUID | None = None,
    actor_id: UUID | None = None,
    username: str | None = None,
    metadata: dict | None = None,
) -> None:
    """Drops keys with None values"""
    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "event": event.value,
        "user_id": str(user_id) if user_id else None,
        "actor_id": str(actor_id) if actor_id else None,
        "username": username,
    }

    if metadata:
        entry.update(metadata)

    entry = {k: v for k, v in entry.items() if v is not None}

    logger.info(json.dumps(entry))


def configure_audit_logging() -> None:
    """Audit entries are already JSON; emit them bare and keep them out of the root handler."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers = [handler]
    logger.propagate = False
