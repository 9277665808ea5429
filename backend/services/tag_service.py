"""
Tag service for business logic.
"""

from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.slugs import generate_slug
from models.exceptions import (
    TagAlreadyExistsException,
    TagNotFoundException,
    ValidationException,
)
from repositories.tag_repository import TagRepository


class TagService:
    """Service for per-project tags."""

    @staticmethod
    def _slug_for(name: str) -> str:
        slug = generate_slug(name)
        if not slug:
            raise ValidationException(
                "Tag name must contain letters or digits",
                fields={"name": "must contain letters or digits"},
            )
        return slug

    @staticmethod
    def list_tags(db: Session, project_id: int) -> List[schemas.TagWithCount]:
        """
        List the tags of a project with usage counts.

        Returns:
            Tags ordered by name
        """
        return [
            schemas.TagWithCount(
                **schemas.Tag.model_validate(tag).model_dump(),
                feedback_count=count,
            )
            for tag, count in TagRepository(db).list_with_counts(project_id)
        ]

    @staticmethod
    def get_tag(db: Session, project_id: int, tag_id: int) -> db_models.Tag:
        tag = TagRepository(db).get_in_project(project_id, tag_id)
        if tag is None:
            raise TagNotFoundException(f"Tag {tag_id} not found")
        return tag

    @staticmethod
    def create_tag(
        db: Session, project_id: int, data: schemas.TagCreate
    ) -> db_models.Tag:
        """
        Create a tag.

        Raises:
            ValidationException: If the name yields an empty slug
            TagAlreadyExistsException: If a tag with the same slug exists
        """
        tag_repo = TagRepository(db)
        name = data.name.strip()
        slug = TagService._slug_for(name)

        if tag_repo.get_by_slug(project_id, slug):
            raise TagAlreadyExistsException(f"Tag '{name}' already exists")

        tag = db_models.Tag(project_id=project_id, name=name, slug=slug, color=data.color)
        try:
            return tag_repo.create(tag)
        except IntegrityError:
            tag_repo.rollback()
            raise TagAlreadyExistsException(f"Tag '{name}' already exists")

    @staticmethod
    def update_tag(
        db: Session, project_id: int, tag_id: int, data: schemas.TagUpdate
    ) -> db_models.Tag:
        """
        Rename or recolor a tag.

        Raises:
            TagNotFoundException: If tag not found
            TagAlreadyExistsException: If the new name collides with another tag
        """
        tag_repo = TagRepository(db)
        tag = TagService.get_tag(db, project_id, tag_id)

        if data.name is not None:
            name = data.name.strip()
            slug = TagService._slug_for(name)
            existing = tag_repo.get_by_slug(project_id, slug)
            if existing is not None and existing.id != tag.id:
                raise TagAlreadyExistsException(f"Tag '{name}' already exists")
            tag.name = name
            tag.slug = slug
        if data.color is not None:
            tag.color = data.color

        try:
            return tag_repo.update(tag)
        except IntegrityError:
            tag_repo.rollback()
            raise TagAlreadyExistsException(f"Tag '{tag.name}' already exists")

    @staticmethod
    def delete_tag(db: Session, project_id: int, tag_id: int) -> None:
        """
        Delete a tag; it is detached from all feedback.

        Raises:
            TagNotFoundException: If tag not found
        """
        tag = TagService.get_tag(db, project_id, tag_id)
        TagRepository(db).delete(tag)
