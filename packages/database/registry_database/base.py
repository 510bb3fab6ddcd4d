from sqlmodel import SQLModel

from registry_database.models.identity import User, Session
from registry_database.models.jobs import Job
from registry_database.models.packages import MaintainerLink, Package, Version

Base = SQLModel

__all__ = [
    "Base",
    "SQLModel",
    "User",
    "Session",
    "Job",
    "MaintainerLink",
    "Package",
    "Version",
]
