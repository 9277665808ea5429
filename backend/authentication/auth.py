from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import jwt
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from models.config import settings
from models.exceptions import (
    AuthenticationException,
    InvalidTokenException,
    TokenExpiredException,
)
from models.roles import Role
from repositories.database import get_db
from services.authorization_service import AuthorizationService
from services.portal_service import PortalService
from services.project_service import ProjectService
from services.sdk_token_service import SdkTokenService

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    email_verified: bool = False,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[dict[str, Any]] = None,
) -> str:
    """
    Issue a token shaped like the identity provider's.

    Used by tests and local development; production tokens come from the
    identity provider and are only verified here.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode: dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "email_verified": email_verified,
        "exp": expire,
    }
    if settings.JWT_AUDIENCE:
        to_encode["aud"] = settings.JWT_AUDIENCE
    if extra_claims:
        to_encode.update(extra_claims)
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> schemas.CurrentUser:
    """
    Verify a bearer token and extract the caller's identity.

    Raises:
        TokenExpiredException: If the token has expired
        InvalidTokenException: If the signature, audience or claims are invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"verify_aud": settings.JWT_AUDIENCE is not None},
        )
    except jwt.exceptions.ExpiredSignatureError:
        raise TokenExpiredException()
    except jwt.exceptions.InvalidTokenError:
        raise InvalidTokenException()

    subject = payload.get("sub")
    if not subject:
        raise InvalidTokenException("token has no subject")

    # Some providers only report verification inside user_metadata
    metadata = payload.get("user_metadata") or {}
    email_verified = bool(
        payload.get("email_verified") or metadata.get("email_verified")
    )
    email = payload.get("email") or metadata.get("email")

    return schemas.CurrentUser(
        id=str(subject), email=email or None, email_verified=email_verified
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> schemas.CurrentUser:
    """
    Get the current authenticated user from the bearer token.

    Raises:
        AuthenticationException: If no bearer token was sent
        InvalidTokenException: If the token cannot be verified
    """
    if credentials is None:
        raise AuthenticationException()
    return decode_access_token(credentials.credentials)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[schemas.CurrentUser]:
    """
    Get current user if authenticated, otherwise return None.

    A missing token means anonymous access. A token that is present but
    expired or invalid still fails, so clients know to log in again.
    """
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)


@dataclass
class ProjectContext:
    """Caller, project and resolved role for a project-scoped request."""

    project: db_models.Project
    user: schemas.CurrentUser
    role: Role
    membership: Optional[db_models.Membership] = None

    @property
    def project_id(self) -> int:
        return self.project.id


def require_project_role(min_role: Role) -> Callable[..., ProjectContext]:
    """
    Dependency factory: the caller must be a member with at least min_role.

    Raises:
        ProjectNotFoundException: If project not found
        NoMembershipException: If the caller is not a member
        InsufficientRoleException: If the caller's role is too low
    """

    def dependency(
        project_id: int,
        db: Session = Depends(get_db),
        current_user: schemas.CurrentUser = Depends(get_current_user),
    ) -> ProjectContext:
        project = ProjectService.get_project(db, project_id)
        membership = AuthorizationService.check_access(
            db, project_id, current_user.id, min_role
        )
        return ProjectContext(
            project=project,
            user=current_user,
            role=membership.role,
            membership=membership,
        )

    return dependency


def get_project_role_optional(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(get_current_user),
) -> ProjectContext:
    """
    Resolve the caller's role without requiring membership.

    Non-members resolve to community and only see community content.
    """
    project = ProjectService.get_project(db, project_id)
    membership = AuthorizationService.get_membership(db, project_id, current_user.id)
    return ProjectContext(
        project=project,
        user=current_user,
        role=membership.role if membership else Role.COMMUNITY,
        membership=membership,
    )


def get_sdk_project(
    x_sdk_token: Optional[str] = Header(None, alias="X-SDK-Token"),
    db: Session = Depends(get_db),
) -> int:
    """
    Resolve the project of an SDK request from its X-SDK-Token header.

    Raises:
        InvalidSdkTokenException: If the token is missing, unknown or expired
    """
    return SdkTokenService.authenticate(db, x_sdk_token)


@dataclass
class PortalContext:
    project: db_models.Project
    user: schemas.CurrentUser
    profile: db_models.PortalUserProfile


def get_portal_context(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(get_current_user),
) -> PortalContext:
    """
    Portal access for an authenticated user.

    Creates the portal profile on first access and links SDK users that
    share the caller's verified email.
    """
    project = ProjectService.get_project(db, project_id)
    profile = PortalService.ensure_access(
        db,
        project_id,
        current_user.id,
        current_user.email,
        current_user.email_verified,
    )
    return PortalContext(project=project, user=current_user, profile=profile)
