"""
Single entrypoint for registry worker jobs.

Usage:
    JOB_TYPE=index_cleanup python -m registry_workers   # Retry parked provider index removals
"""

import asyncio
import logging
import os
import sys

from registry_workers.logging_config import setup_logging


async def run_worker_task(job_type: str) -> dict:
    match job_type:
        case "index_cleanup":
            from registry_workers.jobs.index_cleanup_job import run_index_cleanup_job
            return await run_index_cleanup_job()

        case _:
            raise ValueError(f"Unknown job type: {job_type}")


async def main() -> None:
    job_type = os.getenv("JOB_TYPE", "index_cleanup").lower()
    setup_logging(job_type)
    logger = logging.getLogger(__name__)

    logger.info("Starting job")

    try:
        result = await run_worker_task(job_type)
        logger.info("Job completed successfully", extra={"result": result})
    except Exception as e:
        logger.exception(f"Job failed: {e}")
        sys.exit(1)
    finally:
        from registry_backend.core.redis import close_redis
        await close_redis()


if __name__ == "__main__":
    asyncio.run(main())
