from datetime import UTC, datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from .identity import User


class MaintainerLink(SQLModel, table=True):
    """Many-to-many between users and the packages they maintain."""
    __tablename__ = "maintainers_packages"

    user_id: UUID = Field(foreign_key="users.id", primary_key=True)
    package_id: int = Field(foreign_key="packages.id", primary_key=True, index=True)


class Package(SQLModel, table=True):
    __tablename__ = "packages"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=191, unique=True, index=True)
    description: Optional[str] = Field(default=None)
    readme: Optional[str] = Field(default=None, sa_column=sa.Column(sa.Text, nullable=True))
    abandoned: bool = Field(default=False)
    replacement_package: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=sa.Column(
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        )
    )
    # Last successful search index run; null means pending reindex
    indexed_at: Optional[datetime] = Field(
        default=None,
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True)
    )
    # Last metadata export; downstream caches key off this
    dumped_at: Optional[datetime] = Field(
        default=None,
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True)
    )

    maintainers: List["User"] = Relationship(
        back_populates="packages", link_model=MaintainerLink
    )
    versions: List["Version"] = Relationship(back_populates="package")

    @property
    def vendor(self) -> str:
        return self.name.split("/", 1)[0]


class Version(SQLModel, table=True):
    __tablename__ = "versions"
    __table_args__ = (
        sa.UniqueConstraint("package_id", "normalized_version", name="uq_versions_package_normalized"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    package_id: int = Field(foreign_key="packages.id", index=True)
    version: str = Field(max_length=191)
    normalized_version: str = Field(max_length=191)
    released_at: Optional[datetime] = Field(
        default=None,
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True)
    )

    package: Package = Relationship(back_populates="versions")
