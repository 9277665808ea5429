"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-01-12 00:00:00.000000

Creates projects, memberships, feedback, both vote tables, comments, tags,
invites, SDK users and tokens, and portal profiles from the SQLAlchemy
metadata. Later revisions should be autogenerated against it.
"""

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    from alembic import op

    from repositories import db_models  # noqa: F401
    from repositories.database import Base

    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    """Drop every table. Destroys all data."""
    from alembic import op

    from repositories import db_models  # noqa: F401
    from repositories.database import Base

    Base.metadata.drop_all(bind=op.get_bind())
