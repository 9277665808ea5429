#!/usr/bin/env python3
# ruff: noqa: E402
# E402 disabled: sys.path modification must occur before imports
"""
Seed the database with a demo project for local development.

Creates one project with a team, a few feedback items in each visibility
tier, tags, comments, votes and an SDK token, then prints the SDK token and
the user IDs to sign tokens for.

Usage locally:
    cd backend && python scripts/seed_data.py
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from loguru import logger

import models.schemas as schemas
from models.roles import Role, Visibility
from repositories.database import Base, SessionLocal, engine
from repositories.db_models import FeedbackType, Severity
from services.comment_service import CommentService
from services.feedback_service import FeedbackService
from services.invite_service import InviteService
from services.merge_service import MergeService
from services.project_service import ProjectService
from services.sdk_identity_service import SdkIdentityService
from services.sdk_token_service import SdkTokenService
from services.tag_service import TagService
from services.vote_service import VoteService

OWNER_ID = "demo-owner"
TEAM = [
    ("demo-admin", "admin@demo.example", Role.ADMIN),
    ("demo-member", "member@demo.example", Role.MEMBER),
    ("demo-viewer", "viewer@demo.example", Role.VIEWER),
]

FEEDBACK = [
    ("Dark mode", "Please add a dark theme for late night use.", FeedbackType.FEATURE, None),
    ("Export to CSV", "Let us export our reports as CSV.", FeedbackType.FEATURE, None),
    ("CSV export", "Would love a CSV download button.", FeedbackType.FEATURE, None),
    ("Crash when opening settings", "Reproducible on every launch.", FeedbackType.BUG, Severity.HIGH),
    ("Onboarding felt long", "Too many steps before the first screen.", FeedbackType.GENERAL, None),
]


def seed() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        project = ProjectService.create_project(
            db,
            schemas.ProjectCreate(name="Demo App", description="Seeded demo project"),
            owner_id=OWNER_ID,
            owner_email="owner@demo.example",
        )
        logger.info(f"Created project {project.slug} (id={project.id})")

        for user_id, email, role in TEAM:
            invite = InviteService.create_invite(db, project.id, email, role, OWNER_ID)
            InviteService.accept_invite(db, invite.token, user_id, email=email)

        bug_tag = TagService.create_tag(db, project.id, schemas.TagCreate(name="Mobile", color="#EF4444"))
        TagService.create_tag(db, project.id, schemas.TagCreate(name="Reporting"))

        items = []
        for title, description, feedback_type, severity in FEEDBACK:
            items.append(
                FeedbackService.create_feedback(
                    db,
                    project,
                    title=title,
                    description=description,
                    type=feedback_type,
                    severity=severity,
                    author_id="demo-member",
                    tag_ids=[bug_tag.id] if feedback_type == FeedbackType.BUG else None,
                )
            )

        dark_mode, export_csv, csv_duplicate = items[0], items[1], items[2]
        for user_id, _, _ in TEAM:
            VoteService.vote(db, project.id, dark_mode.id, user_id)
        VoteService.vote(db, project.id, csv_duplicate.id, "demo-viewer")
        VoteService.portal_vote(db, project.id, dark_mode.id, "portal-demo")

        CommentService.create_comment(
            db,
            project.id,
            dark_mode.id,
            "demo-admin",
            Role.ADMIN,
            schemas.CommentCreate(body="Planned for next quarter."),
        )
        CommentService.create_comment(
            db,
            project.id,
            items[3].id,
            "demo-member",
            Role.MEMBER,
            schemas.CommentCreate(body="Linked to the crash dashboard.", visibility=Visibility.TEAM_ONLY),
        )

        MergeService.merge(db, project.id, csv_duplicate.id, export_csv.id, OWNER_ID)

        token = SdkTokenService.create_token(db, project.id, "Demo iOS app", created_by=OWNER_ID)
        SdkIdentityService.identify(
            db, project.id, "demo-ios-user", email="portal@demo.example", name="Demo User"
        )

        print(f"Project: {project.slug} (id={project.id})")
        print(f"Owner user ID: {OWNER_ID}")
        for user_id, _, role in TEAM:
            print(f"{role.value.title()} user ID: {user_id}")
        print(f"SDK token (shown once): {token.token}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
