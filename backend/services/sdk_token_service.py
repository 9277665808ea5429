"""
SDK token service.

Tokens are shown once on creation; only their SHA-256 hash is stored and
looked up on every SDK request.
"""

import hashlib
import secrets
from datetime import timedelta
from typing import List, Optional

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.time_utils import is_past, utc_now
from models.exceptions import InvalidSdkTokenException, SdkTokenNotFoundException
from repositories.sdk_token_repository import SdkTokenRepository

TOKEN_PREFIX = "fd_"


class SdkTokenService:
    """Service for project SDK tokens."""

    @staticmethod
    def hash_token(raw_token: str) -> str:
        return hashlib.sha256(raw_token.encode()).hexdigest()

    @staticmethod
    def create_token(
        db: Session,
        project_id: int,
        name: str,
        created_by: str,
        expires_in_days: Optional[int] = None,
    ) -> schemas.SdkTokenCreated:
        """
        Create an SDK token for a project.

        Args:
            db: Database session
            project_id: Project ID
            name: Label shown in the dashboard
            created_by: Admin creating the token
            expires_in_days: Optional lifetime; never expires when None

        Returns:
            Token metadata plus the raw token (the only time it is returned)
        """
        raw_token = TOKEN_PREFIX + secrets.token_urlsafe(32)
        expires_at = (
            utc_now() + timedelta(days=expires_in_days) if expires_in_days else None
        )

        token = db_models.SdkToken(
            project_id=project_id,
            name=name.strip(),
            token_hash=SdkTokenService.hash_token(raw_token),
            token_prefix=raw_token[:12],
            created_by=created_by,
            expires_at=expires_at,
        )
        token = SdkTokenRepository(db).create(token)

        logger.info(
            f"SDK token {token.id} created for project {project_id}",
            extra={"created_by": created_by, "prefix": token.token_prefix},
        )
        return schemas.SdkTokenCreated(
            **schemas.SdkToken.model_validate(token).model_dump(), token=raw_token
        )

    @staticmethod
    def list_tokens(db: Session, project_id: int) -> List[db_models.SdkToken]:
        return SdkTokenRepository(db).list_by_project(project_id)

    @staticmethod
    def revoke_token(db: Session, project_id: int, token_id: int, actor_id: str) -> None:
        """
        Delete an SDK token; requests using it fail from then on.

        Raises:
            SdkTokenNotFoundException: If the token is not in the project
        """
        token_repo = SdkTokenRepository(db)
        token = token_repo.get_in_project(project_id, token_id)
        if token is None:
            raise SdkTokenNotFoundException()
        token_repo.delete(token)
        logger.info(f"SDK token {token_id} revoked", extra={"actor_id": actor_id})

    @staticmethod
    def authenticate(db: Session, raw_token: Optional[str]) -> int:
        """
        Resolve an X-SDK-Token header value to its project.

        Args:
            db: Database session
            raw_token: Header value

        Returns:
            Project ID the token belongs to

        Raises:
            InvalidSdkTokenException: If the token is missing, unknown or expired
        """
        if not raw_token:
            raise InvalidSdkTokenException("Missing X-SDK-Token header")

        token_repo = SdkTokenRepository(db)
        token = token_repo.get_by_hash(SdkTokenService.hash_token(raw_token))
        if token is None:
            raise InvalidSdkTokenException()
        if token.expires_at is not None and is_past(token.expires_at):
            raise InvalidSdkTokenException("SDK token has expired")

        project_id = token.project_id
        token.last_used_at = utc_now()
        token_repo.commit()
        return project_id
