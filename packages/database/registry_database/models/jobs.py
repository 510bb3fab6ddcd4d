from datetime import UTC, datetime
from typing import Any, Optional
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

JOB_TYPE_GITHUB_USER_MIGRATE = "githubuser:migrate"

JOB_STATUS_QUEUED = "queued"
JOB_STATUS_COMPLETED = "completed"
JOB_STATUS_FAILED = "failed"


class Job(SQLModel, table=True):
    """Background work requested on behalf of a user; executed by a Cloud Tasks worker."""
    __tablename__ = "jobs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    type: str = Field(max_length=50, index=True)
    user_id: Optional[UUID] = Field(default=None, foreign_key="users.id", index=True)
    status: str = Field(default=JOB_STATUS_QUEUED, max_length=20)
    payload: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=sa.Column(sa.JSON, nullable=False, server_default="{}")
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=sa.Column(
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        )
    )
    executed_at: Optional[datetime] = Field(
        default=None,
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True)
    )
