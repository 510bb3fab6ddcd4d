"""GitHub linkage on the user record: connect, disconnect, sync requests and login lookup.

github_id, github_token and github_scope are always written and cleared together.
"""
import logging

import httpx
from registry_database.models.identity import User
from registry_database.models.jobs import JOB_STATUS_FAILED, JOB_TYPE_GITHUB_USER_MIGRATE, Job
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from registry_backend.core.audit import AuditEvent, log_audit_event
from registry_backend.core.config import get_settings
from registry_backend.core.errors import (
    GitHubNotConnectedError,
    GitHubScopeMissingError,
    SyncSchedulingError,
)
from registry_backend.core.security import TokenEncryptionError, decrypt_token, encrypt_token
from registry_backend.services.sync_scheduler import schedule_user_scope_migration

logger = logging.getLogger(__name__)


async def connect_github(
    db: AsyncSession,
    user: User,
    github_id: str,
    access_token: str,
    scope: str,
) -> User:
    """Stores all three GitHub fields; the token is encrypted at rest."""
    user.github_id = github_id
    user.github_token = encrypt_token(access_token)
    user.github_scope = scope

    db.add(user)
    await db.commit()
    await db.refresh(user)

    log_audit_event(AuditEvent.GITHUB_CONNECTED, user_id=user.id, metadata={"scope": scope})
    return user


async def disconnect_github(
    db: AsyncSession,
    user: User,
) -> bool:
    """Clears id, token and scope together. Returns False if nothing was linked."""
    if not user.github_id:
        return False

    user.github_id = None
    user.github_token = None
    user.github_scope = None

    db.add(user)
    await db.commit()

    log_audit_event(AuditEvent.GITHUB_DISCONNECTED, user_id=user.id)
    return True


async def request_github_sync(
    db: AsyncSession,
    user: User,
) -> Job:
    """
    Records a sync job and enqueues it; returns without waiting for the sync.
    Raises GitHubNotConnectedError or GitHubScopeMissingError when preconditions fail,
    and SyncSchedulingError if the task queue refuses the job (the job is kept as failed).
    """
    if not user.github_token:
        raise GitHubNotConnectedError()

    if not user.github_scope:
        raise GitHubScopeMissingError()

    job = Job(
        type=JOB_TYPE_GITHUB_USER_MIGRATE,
        user_id=user.id,
        payload={"old_scope": "", "new_scope": user.github_scope},
    )
    db.add(job)
    await db.commit()
    await db.refresh(job)

    try:
        await schedule_user_scope_migration(user.id, "", user.github_scope, job_id=job.id)
    except Exception as e:
        logger.error(f"Could not enqueue GitHub sync job {job.id} for user {user.id}: {e}")
        job.status = JOB_STATUS_FAILED
        db.add(job)
        await db.commit()
        raise SyncSchedulingError(str(e)) from e

    log_audit_event(
        AuditEvent.GITHUB_SYNC_REQUESTED,
        user_id=user.id,
        metadata={"job_id": str(job.id), "scope": user.github_scope},
    )
    return job


async def get_last_github_sync_job(
    db: AsyncSession,
    user: User,
) -> Job | None:
    statement = (
        select(Job)
        .where(
            Job.user_id == user.id,
            Job.type == JOB_TYPE_GITHUB_USER_MIGRATE,
        )
        .order_by(Job.created_at.desc())
        .limit(1)
    )
    result = await db.exec(statement)
    return result.first()


async def get_github_username(
    http: httpx.AsyncClient,
    user: User,
) -> str | None:
    """Looks up the GitHub login for a linked user. Any failure yields None."""
    if not user.github_id or not user.github_token:
        return None

    try:
        token = decrypt_token(user.github_token)
    except TokenEncryptionError as e:
        logger.warning(f"Cannot decrypt GitHub token for user {user.id}: {e}")
        return None

    settings = get_settings()
    try:
        response = await http.get(
            f"{settings.github_api_url}/user",
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": settings.github_user_agent,
            },
        )
        response.raise_for_status()
        return response.json().get("login")
    except (httpx.HTTPError, ValueError) as e:
        logger.info(f"GitHub login lookup failed for user {user.id}: {e}")
        return None


__all__ = [
    "connect_github",
    "disconnect_github",
    "request_github_sync",
    "get_last_github_sync_job",
    "get_github_username",
]
