"""
Project service for business logic.
"""

from typing import Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.slugs import generate_slug, is_valid_slug
from models.exceptions import (
    ProjectNotFoundException,
    SlugTakenException,
    ValidationException,
)
from models.roles import Role
from repositories.project_repository import ProjectRepository


class ProjectService:
    """Service for projects (tenants) and their settings."""

    @staticmethod
    def settings_of(project: db_models.Project) -> schemas.ProjectSettings:
        """
        Parse the stored settings of a project.

        Keys missing from older rows fall back to the defaults.
        """
        return schemas.ProjectSettings.model_validate(project.settings or {})

    @staticmethod
    def get_project(db: Session, project_id: int) -> db_models.Project:
        """
        Get a project by ID.

        Raises:
            ProjectNotFoundException: If project not found
        """
        project = ProjectRepository(db).get_by_id(project_id)
        if project is None:
            raise ProjectNotFoundException(f"Project {project_id} not found")
        return project

    @staticmethod
    def create_project(
        db: Session,
        data: schemas.ProjectCreate,
        owner_id: str,
        owner_email: Optional[str] = None,
    ) -> db_models.Project:
        """
        Create a project and make the creator its owner.

        Project and owner membership are committed together.

        Args:
            db: Database session
            data: Name, optional slug and description
            owner_id: Creating user
            owner_email: Creating user's email, kept on the membership

        Returns:
            Created project

        Raises:
            ValidationException: If no valid slug can be derived
            SlugTakenException: If the slug is already in use
        """
        project_repo = ProjectRepository(db)

        slug = data.slug or generate_slug(data.name)
        if not is_valid_slug(slug):
            raise ValidationException(
                "Could not derive a slug from the project name",
                fields={"slug": "must be lowercase letters, digits and hyphens"},
            )
        if project_repo.slug_exists(slug):
            raise SlugTakenException(f"Slug '{slug}' is already in use")

        project = db_models.Project(
            name=data.name.strip(),
            slug=slug,
            description=data.description,
            settings=schemas.ProjectSettings().model_dump(mode="json"),
        )
        project.memberships.append(
            db_models.Membership(user_id=owner_id, email=owner_email, role=Role.OWNER)
        )

        try:
            project = project_repo.create(project)
        except IntegrityError:
            project_repo.rollback()
            raise SlugTakenException(f"Slug '{slug}' is already in use")

        logger.info(
            f"Project {project.id} ({project.slug}) created",
            extra={"owner_id": owner_id},
        )
        return project

    @staticmethod
    def update_project(
        db: Session, project_id: int, data: schemas.ProjectUpdate
    ) -> db_models.Project:
        """
        Update name, description or settings. Settings are replaced whole.

        Raises:
            ProjectNotFoundException: If project not found
        """
        project_repo = ProjectRepository(db)
        project = ProjectService.get_project(db, project_id)

        if data.name is not None:
            project.name = data.name.strip()
        if data.description is not None:
            project.description = data.description
        if data.settings is not None:
            project.settings = data.settings.model_dump(mode="json")

        return project_repo.update(project)

    @staticmethod
    def delete_project(db: Session, project_id: int, actor_id: str) -> None:
        """
        Delete a project and everything it owns.

        Raises:
            ProjectNotFoundException: If project not found
        """
        project = ProjectService.get_project(db, project_id)
        ProjectRepository(db).delete(project)
        logger.warning(
            f"Project {project_id} deleted", extra={"actor_id": actor_id}
        )
