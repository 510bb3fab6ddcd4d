"""
Drain the provider index retry set.

Package names land in the set when a spam marking committed but the index
removal failed. Each run retries one batch; successes leave the set.
"""

import logging

from registry_backend.core.config import get_settings
from registry_backend.services.provider_index import get_provider_index, retry_index_removal

logger = logging.getLogger(__name__)


async def run_index_cleanup_job() -> dict:
    """Returns stats dict with pending, removed and failed counts."""
    settings = get_settings()
    index = await get_provider_index()

    pending = await index.pending_removals(settings.index_cleanup_batch_size)
    if not pending:
        logger.info("Index cleanup: nothing pending")
        return {"pending": 0, "removed": 0, "failed": 0}

    logger.info(f"Index cleanup: retrying {len(pending)} removals")
    report = await retry_index_removal(pending, index=index)

    logger.info(
        f"Index cleanup complete: removed {len(report.removed)}, {len(report.failures)} still failing",
        extra={
            "removed_count": len(report.removed),
            "failed_count": len(report.failures),
        },
    )
    if report.failures:
        logger.warning(f"Still pending removal: {', '.join(report.failed_names)}")

    return {
        "pending": len(pending),
        "removed": len(report.removed),
        "failed": len(report.failures),
    }
