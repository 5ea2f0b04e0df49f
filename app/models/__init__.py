"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.profile import Doctor, Patient
from app.models.session import UserSession
from app.models.user import User

__all__ = ["Base", "Doctor", "Patient", "User", "UserSession"]
