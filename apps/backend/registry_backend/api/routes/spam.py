"""Moderation routes. Every route requires ROLE_ANTISPAM."""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from registry_database.models.identity import ROLE_ANTISPAM, Session, User
from sqlmodel.ext.asyncio.session import AsyncSession

from registry_backend.api.dependencies import get_db
from registry_backend.core.errors import NotAuthorizedError, ValidationFailedError
from registry_backend.middleware.auth import require_auth
from registry_backend.services.provider_index import retry_index_removal
from registry_backend.services.spam_service import (
    SpamMarkRequest,
    SpamMarkResult,
    SpamMarkStatus,
    mark_spammer,
)

router = APIRouter()


class IndexRetryInput(BaseModel):
    packages: list[str] = Field(..., min_length=1, max_length=500)


class IndexRetryOutput(BaseModel):
    removed: list[str]
    failed: list[str]


@router.post("/index-removals/retry", response_model=IndexRetryOutput)
async def retry_index_removals(
    body: IndexRetryInput,
    auth: tuple[User, Session] = Depends(require_auth),
) -> IndexRetryOutput:
    """Re-runs provider index removal only; the registry is not touched."""
    actor, _ = auth
    if not actor.has_role(ROLE_ANTISPAM):
        raise NotAuthorizedError("This user can not manage spam cleanup")

    report = await retry_index_removal(body.packages)
    return IndexRetryOutput(removed=report.removed, failed=report.failed_names)


@router.post("/{name}", response_model=SpamMarkResult)
async def mark_user_as_spammer(
    name: str,
    body: SpamMarkRequest,
    auth: tuple[User, Session] = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """
    200 with status "applied" or "partially_applied" (some index removals deferred),
    400 with status "rejected" when the request is not confirmed.
    """
    actor, _ = auth
    try:
        return await mark_spammer(db, actor, name, body)
    except ValidationFailedError as e:
        rejected = SpamMarkResult(status=SpamMarkStatus.REJECTED, username=name, reason=e.user_message)
        return JSONResponse(status_code=e.status_code, content=rejected.model_dump(mode="json"))
