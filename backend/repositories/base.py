"""
Generic repository shared by all aggregates.
"""

from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from repositories.database import Base, dialect_name

T = TypeVar("T", bound=Base)  # type: ignore[type-arg]


class BaseRepository(Generic[T]):
    """
    Common persistence operations for one SQLAlchemy model.

    Methods that end in a commit are meant for single-step operations.
    Multi-step flows (votes, merges, invite acceptance) use add/flush and let
    the service commit once.
    """

    def __init__(self, model: type[T], db: Session):
        """
        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    def get_by_id(self, id: int) -> T | None:
        """
        Get entity by primary key.

        Args:
            id: Entity ID

        Returns:
            Entity if found, None otherwise
        """
        return self.db.get(self.model, id)

    def get_for_update(self, id: int) -> T | None:
        """
        Get entity by primary key and lock its row until the transaction ends.

        SQLite ignores FOR UPDATE; its database-level write lock serializes
        writers instead.

        Args:
            id: Entity ID

        Returns:
            Locked entity if found, None otherwise
        """
        stmt = (
            select(self.model)
            .where(self.model.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.scalars(stmt).first()

    def insert_ignoring_conflict(
        self, values: dict, conflict_columns: list[str]
    ) -> bool:
        """
        Insert a row unless it collides with a unique constraint.

        Concurrent identical requests converge on one row: the loser of the
        race inserts nothing instead of raising IntegrityError.

        Args:
            values: Column values for the new row
            conflict_columns: Columns of the unique constraint to tolerate

        Returns:
            True if a row was inserted, False if it already existed
        """
        if dialect_name(self.db) == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert

        stmt = (
            insert(self.model)
            .values(**values)
            .on_conflict_do_nothing(index_elements=conflict_columns)
        )
        result = self.db.execute(stmt)
        return bool(result.rowcount)

    def add(self, entity: T) -> None:
        """Add entity to the session without committing."""
        self.db.add(entity)

    def create(self, entity: T) -> T:
        """
        Insert an entity and commit.

        Args:
            entity: Entity to create

        Returns:
            Created entity, refreshed from the database
        """
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def update(self, entity: T) -> T:
        """Commit pending changes on an entity and refresh it."""
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def delete(self, entity: T) -> None:
        """Delete an entity and commit."""
        self.db.delete(entity)
        self.db.commit()

    def commit(self) -> None:
        """Commit the current transaction."""
        self.db.commit()

    def flush(self) -> None:
        """Flush pending changes without committing."""
        self.db.flush()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.db.rollback()

    def refresh(self, entity: T) -> None:
        self.db.refresh(entity)
