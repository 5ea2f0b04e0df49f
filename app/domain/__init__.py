"""Domain records and repository contracts."""

from app.domain.entities import (
    REGISTRABLE_ROLES,
    ROLE_ADMIN,
    ROLE_DOCTOR,
    ROLE_PATIENT,
    ROLES,
    ProfileRecord,
    SessionRecord,
    UserRecord,
)
from app.domain.repositories import ProfileRepository, SessionRepository, UserRepository

__all__ = [
    "REGISTRABLE_ROLES",
    "ROLE_ADMIN",
    "ROLE_DOCTOR",
    "ROLE_PATIENT",
    "ROLES",
    "ProfileRecord",
    "ProfileRepository",
    "SessionRecord",
    "SessionRepository",
    "UserRecord",
    "UserRepository",
]
