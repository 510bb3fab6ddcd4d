"""
Marks a user as a spam source and quarantines everything they maintain.

Relational steps (role, disable, abandon packages, delete versions) commit as
one transaction: either all of them land or none do. Provider index removal
runs after the commit against a separate store. Its failures are reported per
package and parked for retry, never rolled back into the registry.
"""
import logging
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field
from registry_database.models.identity import ROLE_ANTISPAM, ROLE_SPAMMER, User
from registry_database.models.packages import Package, Version
from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from registry_backend.core.audit import AuditEvent, log_audit_event
from registry_backend.core.errors import NotAuthorizedError, TransactionFailedError, ValidationFailedError
from registry_backend.services.package_service import find_packages_by_maintainer, maintained_package_ids
from registry_backend.services.provider_index import ProviderIndex, remove_packages_from_index
from registry_backend.services.user_service import get_user_by_username

logger = logging.getLogger(__name__)

SPAM_REPLACEMENT_PACKAGE = "spam/spam"
# Far-future dump time keeps export jobs from treating the package as freshly updated
SPAM_DUMPED_AT = datetime(2100, 1, 1, 0, 0, 0, tzinfo=UTC)


class SpamMarkState(str, Enum):
    ACTIVE = "active"
    ROLE_ASSIGNING = "role_assigning"
    DISABLING = "disabling"
    PACKAGES_ABANDONING = "packages_abandoning"
    VERSIONS_REMOVING = "versions_removing"
    COMMITTING = "committing"
    INDEX_REMOVING = "index_removing"
    DONE = "done"
    FAILED = "failed"


class SpamMarkStatus(str, Enum):
    APPLIED = "applied"
    REJECTED = "rejected"
    PARTIALLY_APPLIED = "partially_applied"


class SpamMarkRequest(BaseModel):
    confirm: bool = False
    reason: str | None = Field(default=None, max_length=500)


class SpamMarkResult(BaseModel):
    status: SpamMarkStatus
    username: str
    reason: str | None = None
    package_ids: list[int] = Field(default_factory=list)
    failed_package_ids: list[int] = Field(default_factory=list)
    failed_package_names: list[str] = Field(default_factory=list)


class SpamRemediation:
    """
    One run of the cascade for one user. Not reusable.

    ACTIVE -> ROLE_ASSIGNING -> DISABLING -> PACKAGES_ABANDONING
    -> VERSIONS_REMOVING -> COMMITTING -> INDEX_REMOVING -> DONE,
    or FAILED from any relational step (failed_step records which).
    """

    def __init__(
        self,
        db: AsyncSession,
        user: User,
        actor: User,
        provider_index: ProviderIndex | None = None,
    ):
        self._db = db
        self._user = user
        self._user_id = user.id
        self._actor = actor
        self._provider_index = provider_index
        self.state = SpamMarkState.ACTIVE
        self.failed_step: SpamMarkState | None = None

    def _advance(self, state: SpamMarkState) -> None:
        logger.debug(f"Spam remediation for {self._user_id}: {self.state.value} -> {state.value}")
        self.state = state

    async def run(self, reason: str | None = None) -> SpamMarkResult:
        if self.state != SpamMarkState.ACTIVE:
            raise RuntimeError("Spam remediation already ran")

        # Captured up front; a rollback expires the ORM instance
        user_id = self._user_id
        username = self._user.username
        actor_id = self._actor.id

        try:
            packages = await self._apply_relational_changes()
        except SQLAlchemyError as e:
            self.failed_step = self.state
            await self._db.rollback()
            self._advance(SpamMarkState.FAILED)
            logger.error(f"Spam remediation for {username} rolled back at {self.failed_step.value}: {e}")
            log_audit_event(
                AuditEvent.SPAMMER_MARK_FAILED,
                user_id=user_id,
                actor_id=actor_id,
                username=username,
                metadata={"failed_step": self.failed_step.value},
            )
            raise TransactionFailedError(str(e), failed_step=self.failed_step.value) from e

        self._advance(SpamMarkState.INDEX_REMOVING)
        report = await remove_packages_from_index(
            [(package.id, package.name) for package in packages],
            index=self._provider_index,
        )
        self._advance(SpamMarkState.DONE)

        failed_ids = [f.package_id for f in report.failures if f.package_id is not None]
        status = SpamMarkStatus.PARTIALLY_APPLIED if report.failures else SpamMarkStatus.APPLIED

        for failure in report.failures:
            log_audit_event(
                AuditEvent.INDEX_REMOVAL_FAILED,
                user_id=user_id,
                username=username,
                metadata={"package": failure.package_name, "detail": failure.detail},
            )
        log_audit_event(
            AuditEvent.SPAMMER_MARKED,
            user_id=user_id,
            actor_id=actor_id,
            username=username,
            metadata={
                "packages": len(packages),
                "index_failures": len(report.failures),
                "reason": reason,
            },
        )
        logger.info(f"{username} has been marked as a spammer ({len(packages)} packages abandoned)")

        return SpamMarkResult(
            status=status,
            username=username,
            reason=reason,
            package_ids=[package.id for package in packages],
            failed_package_ids=failed_ids,
            failed_package_names=report.failed_names,
        )

    async def _apply_relational_changes(self) -> list[Package]:
        user = self._user

        self._advance(SpamMarkState.ROLE_ASSIGNING)
        if not user.has_role(ROLE_SPAMMER):
            # Reassigned, not appended; JSON columns do not track in-place mutation
            user.roles = [*(user.roles or []), ROLE_SPAMMER]

        self._advance(SpamMarkState.DISABLING)
        user.enabled = False
        self._db.add(user)
        await self._db.flush()

        self._advance(SpamMarkState.PACKAGES_ABANDONING)
        abandon_stmt = (
            update(Package)
            .where(Package.id.in_(maintained_package_ids(user.id)))
            .values(
                abandoned=True,
                replacement_package=SPAM_REPLACEMENT_PACKAGE,
                description="",
                readme="",
                indexed_at=None,
                dumped_at=SPAM_DUMPED_AT,
            )
            .execution_options(synchronize_session="fetch")
        )
        await self._db.exec(abandon_stmt)
        packages = await find_packages_by_maintainer(self._db, user.id)

        self._advance(SpamMarkState.VERSIONS_REMOVING)
        package_ids = [package.id for package in packages]
        if package_ids:
            await self._db.exec(delete(Version).where(Version.package_id.in_(package_ids)))

        self._advance(SpamMarkState.COMMITTING)
        await self._db.commit()
        return packages


async def mark_spammer(
    db: AsyncSession,
    actor: User,
    username: str,
    request: SpamMarkRequest,
    provider_index: ProviderIndex | None = None,
) -> SpamMarkResult:
    """
    Entry point for the moderation action.

    Raises NotAuthorizedError without the antispam role, ValidationFailedError for
    an unconfirmed request, UserNotFoundError for an unknown username and
    TransactionFailedError if the registry commit fails. Nothing changes before
    the first three checks pass.
    """
    if not actor.has_role(ROLE_ANTISPAM):
        raise NotAuthorizedError("This user can not mark others as spammers")

    if not request.confirm:
        logger.info(f"Spam marking of {username} rejected: not confirmed")
        raise ValidationFailedError("Spammer marking must be confirmed")

    user = await get_user_by_username(db, username)
    workflow = SpamRemediation(db, user, actor, provider_index=provider_index)
    return await workflow.run(reason=request.reason)


__all__ = [
    "SPAM_REPLACEMENT_PACKAGE",
    "SPAM_DUMPED_AT",
    "SpamMarkState",
    "SpamMarkStatus",
    "SpamMarkRequest",
    "SpamMarkResult",
    "SpamRemediation",
    "mark_spammer",
]
