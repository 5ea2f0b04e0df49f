"""Repository implementations (PostgreSQL and in-memory)."""

from app.repositories.in_memory import (
    InMemoryProfileRepository,
    InMemorySessionRepository,
    InMemoryUserRepository,
)
from app.repositories.sqlalchemy_repos import (
    SqlAlchemyProfileRepository,
    SqlAlchemySessionRepository,
    SqlAlchemyUserRepository,
)

__all__ = [
    "InMemoryProfileRepository",
    "InMemorySessionRepository",
    "InMemoryUserRepository",
    "SqlAlchemyProfileRepository",
    "SqlAlchemySessionRepository",
    "SqlAlchemyUserRepository",
]
