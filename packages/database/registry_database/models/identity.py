from datetime import UTC, datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

from .packages import MaintainerLink

if TYPE_CHECKING:
    from .packages import Package


ROLE_ANTISPAM = "ROLE_ANTISPAM"
ROLE_SPAMMER = "ROLE_SPAMMER"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    username: str = Field(max_length=191, unique=True, index=True)
    email: str = Field(max_length=191, unique=True, index=True)
    enabled: bool = Field(default=True)
    roles: List[str] = Field(
        default_factory=list,
        sa_column=sa.Column(sa.JSON, nullable=False, server_default="[]")
    )

    # GitHub linkage; id, token and scope are written and cleared as a unit
    github_id: Optional[str] = Field(default=None, max_length=255)
    # Encrypted at application level via Fernet
    github_token: Optional[str] = Field(default=None)
    github_scope: Optional[str] = Field(default=None, max_length=255)

    failure_notifications: bool = Field(default=True)
    api_token: Optional[str] = Field(default=None, max_length=20)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=sa.Column(
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        )
    )

    sessions: List["Session"] = Relationship(back_populates="user")
    packages: List["Package"] = Relationship(
        back_populates="maintainers", link_model=MaintainerLink
    )

    def has_role(self, role: str) -> bool:
        return role in (self.roles or [])

    @property
    def is_github_linked(self) -> bool:
        return self.github_id is not None


class Session(SQLModel, table=True):
    __tablename__ = "sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    expires_at: datetime = Field(
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=False)
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=sa.Column(
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        )
    )

    user: User = Relationship(back_populates="sessions")
