"""Dependency wiring and bearer-token auth dependencies (get_current_user, guards)."""

from collections.abc import Callable
from typing import Annotated

from fastapi import BackgroundTasks, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db
from app.core.errors import EmailNotVerifiedError
from app.core.security import verify_access_token
from app.domain.repositories import ProfileRepository, SessionRepository, UserRepository
from app.repositories import (
    SqlAlchemyProfileRepository,
    SqlAlchemySessionRepository,
    SqlAlchemyUserRepository,
)
from app.schemas.auth import CurrentUser
from app.services.auth import AuthService
from app.services.email import EmailSender, EmailService
from app.services.sessions import SessionManager

security = HTTPBearer(auto_error=False)


def get_user_repository(db: Annotated[Session, Depends(get_db)]) -> UserRepository:
    return SqlAlchemyUserRepository(db)


def get_session_repository(db: Annotated[Session, Depends(get_db)]) -> SessionRepository:
    return SqlAlchemySessionRepository(db)


def get_profile_repository(db: Annotated[Session, Depends(get_db)]) -> ProfileRepository:
    return SqlAlchemyProfileRepository(db)


def get_email_sender() -> EmailSender:
    return EmailService(get_settings())


def get_session_manager(
    sessions: Annotated[SessionRepository, Depends(get_session_repository)],
) -> SessionManager:
    return SessionManager(sessions, get_settings())


def get_auth_service(
    background_tasks: BackgroundTasks,
    users: Annotated[UserRepository, Depends(get_user_repository)],
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
    profiles: Annotated[ProfileRepository, Depends(get_profile_repository)],
    email: Annotated[EmailSender, Depends(get_email_sender)],
) -> AuthService:
    """Auth service whose emails go out after the response is sent."""
    return AuthService(
        users=users,
        sessions=session_manager,
        profiles=profiles,
        email=email,
        settings=get_settings(),
        schedule=background_tasks.add_task,
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> CurrentUser:
    """Dependency: require valid Bearer JWT and return the current user. Raises 401 if missing or invalid."""
    if credentials is None:
        raise _unauthorized("Authentication token required")
    user_id = verify_access_token(credentials.credentials)
    if user_id is None:
        raise _unauthorized("Invalid or expired token")
    user = users.get_by_id(user_id)
    if user is None:
        raise _unauthorized("User not found")
    return CurrentUser(
        id=user.id,
        email=user.email,
        role=user.role,
        is_email_verified=user.is_email_verified,
        is_two_factor_enabled=user.is_two_factor_enabled,
    )


def require_verified_email(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: authenticated user whose email is verified. Raises 403 EMAIL_NOT_VERIFIED."""
    if not current_user.is_email_verified:
        raise EmailNotVerifiedError()
    return current_user


def require_roles(*roles: str) -> Callable[..., CurrentUser]:
    """
    Dependency factory restricting a route to the given roles (403 otherwise),
    e.g. Depends(require_roles("admin")). None of the auth routes use it: they
    are open to every role.
    """
    allowed = frozenset(roles)

    def dependency(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return dependency
