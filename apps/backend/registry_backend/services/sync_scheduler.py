"""
Enqueues GitHub sync work for the sync worker through Cloud Tasks.

Scheduling is fire-and-forget: callers get the job id back immediately and
the worker picks the task up later. Outside production (development, or no
GCP project configured) tasks are only recorded in memory.
"""
import asyncio
import json
import logging
from datetime import UTC, datetime
from uuid import UUID, uuid4

from registry_backend.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

SCOPE_MIGRATION_PATH = "/tasks/github/scope-migration"
SCOPE_MIGRATION_KIND = "github-scope"


class SyncScheduler:

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self.mock_mode = self._settings.environment == "development" or not self._settings.gcp_project
        self._recorded: dict[str, dict] = {}
        self._client = None

        if self.mock_mode:
            logger.info("Sync scheduler recording tasks in memory")
        else:
            from google.cloud import tasks_v2
            self._client = tasks_v2.CloudTasksClient()
            logger.info(f"Sync scheduler enqueueing to {self.queue_path}")

    @property
    def queue_path(self) -> str:
        s = self._settings
        return f"projects/{s.gcp_project}/locations/{s.gcp_region}/queues/{s.cloud_tasks_queue}"

    def _task_name(self, user_id: UUID) -> str:
        # Prefixed with the user id so a user's pending syncs can be listed
        return f"{self.queue_path}/tasks/{user_id}-{SCOPE_MIGRATION_KIND}-{uuid4().hex[:8]}"

    def _cloud_task(self, name: str, payload: dict):
        from google.cloud import tasks_v2

        return tasks_v2.Task(
            name=name,
            http_request=tasks_v2.HttpRequest(
                http_method=tasks_v2.HttpMethod.POST,
                url=f"{self._settings.github_sync_worker_url}{SCOPE_MIGRATION_PATH}",
                headers={"Content-Type": "application/json"},
                body=json.dumps(payload).encode(),
                oidc_token=tasks_v2.OidcToken(
                    service_account_email=f"{self._settings.gcp_project}@appspot.gserviceaccount.com",
                ),
            ),
        )

    async def schedule_user_scope_migration(
        self,
        user_id: UUID,
        old_scope: str,
        new_scope: str,
        job_id: UUID | None = None,
    ) -> str:
        """Re-syncs the user's GitHub packages under new_scope. Returns the job id."""
        job_id_str = str(job_id or uuid4())
        name = self._task_name(user_id)
        payload = {
            "job_id": job_id_str,
            "user_id": str(user_id),
            "old_scope": old_scope,
            "new_scope": new_scope,
            "created_at": datetime.now(UTC).isoformat(),
        }

        if self.mock_mode:
            self._recorded[name] = {"payload": payload, "status": "pending"}
            logger.info(f"Recorded scope migration task {name}")
            return job_id_str

        # CloudTasksClient is blocking
        await asyncio.to_thread(
            self._client.create_task,
            parent=self.queue_path,
            task=self._cloud_task(name, payload),
        )
        logger.info(f"Enqueued scope migration task {name}")
        return job_id_str

    def get_mock_tasks(self) -> dict[str, dict]:
        if not self.mock_mode:
            raise RuntimeError("Recorded tasks exist only in mock mode")
        return dict(self._recorded)

    def clear_mock_tasks(self) -> None:
        if not self.mock_mode:
            raise RuntimeError("Recorded tasks exist only in mock mode")
        self._recorded.clear()


_scheduler: SyncScheduler | None = None


def get_sync_scheduler() -> SyncScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = SyncScheduler()
    return _scheduler


async def schedule_user_scope_migration(
    user_id: UUID,
    old_scope: str,
    new_scope: str,
    job_id: UUID | None = None,
) -> str:
    return await get_sync_scheduler().schedule_user_scope_migration(user_id, old_scope, new_scope, job_id)


def reset_scheduler_for_testing() -> None:
    global _scheduler
    _scheduler = None


__all__ = [
    "SyncScheduler",
    "get_sync_scheduler",
    "schedule_user_scope_migration",
    "reset_scheduler_for_testing",
]
