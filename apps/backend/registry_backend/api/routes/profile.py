"""Own-profile routes: profile view, GitHub sync trigger and GitHub disconnect."""
import httpx
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from registry_database.models.identity import Session, User
from registry_database.models.jobs import Job
from sqlmodel.ext.asyncio.session import AsyncSession

from registry_backend.api.dependencies import get_db, get_http_client
from registry_backend.api.routes.users import (
    PackagePageOutput,
    UserOutput,
    maintained_packages_page,
    user_output,
)
from registry_backend.middleware.auth import require_auth
from registry_backend.services.github_account_service import (
    disconnect_github,
    get_github_username,
    get_last_github_sync_job,
    request_github_sync,
)

router = APIRouter()


class JobOutput(BaseModel):
    id: str
    status: str
    created_at: str
    executed_at: str | None


class OwnProfileOutput(BaseModel):
    user: UserOutput
    packages: PackagePageOutput
    github_username: str | None
    github_sync: JobOutput | None


class GitHubSyncAcceptedResponse(BaseModel):
    job_id: str
    status: str
    message: str


class GitHubDisconnectResponse(BaseModel):
    disconnected: bool


def _job_output(job: Job | None) -> JobOutput | None:
    if job is None:
        return None
    return JobOutput(
        id=str(job.id),
        status=job.status,
        created_at=job.created_at.isoformat(),
        executed_at=job.executed_at.isoformat() if job.executed_at else None,
    )


@router.get("", response_model=OwnProfileOutput)
async def view_own_profile(
    page: str = Query("1"),
    auth: tuple[User, Session] = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> OwnProfileOutput:
    user, _ = auth

    return OwnProfileOutput(
        user=user_output(user),
        packages=await maintained_packages_page(db, user, page),
        github_username=await get_github_username(http, user),
        github_sync=_job_output(await get_last_github_sync_job(db, user)),
    )


@router.post("/github/sync", response_model=GitHubSyncAcceptedResponse, status_code=202)
async def trigger_github_sync(
    auth: tuple[User, Session] = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> GitHubSyncAcceptedResponse:
    """
    Schedules a re-sync of the user's GitHub repositories and returns immediately.

    400 if GitHub is not connected or the granted scope is unknown.
    """
    user, _ = auth
    job = await request_github_sync(db, user)

    return GitHubSyncAcceptedResponse(
        job_id=str(job.id),
        status=job.status,
        message=(
            "User sync scheduled. It might take a few seconds to run through, "
            "refresh then to check if any packages still need sync."
        ),
    )


@router.post("/github/disconnect", response_model=GitHubDisconnectResponse)
async def disconnect_github_account(
    auth: tuple[User, Session] = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> GitHubDisconnectResponse:
    user, _ = auth
    disconnected = await disconnect_github(db, user)
    return GitHubDisconnectResponse(disconnected=disconnected)
