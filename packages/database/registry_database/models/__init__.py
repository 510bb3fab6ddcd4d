"""Database models for the package registry."""

from registry_database.models.identity import Session, User
from registry_database.models.jobs import Job
from registry_database.models.packages import MaintainerLink, Package, Version

__all__ = [
    # Identity
    "User",
    "Session",
    # Registry
    "Package",
    "Version",
    "MaintainerLink",
    # Background work
    "Job",
]
