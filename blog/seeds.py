from __future__ import annotations

import argparse
import logging
from typing import Dict

from faker import Faker
from sqlalchemy import select
from sqlalchemy.orm import Session

from . import crud
from .database import Base, engine, session_scope
from .factories import UserFactory
from .models import Post, Tag, User

logger = logging.getLogger(__name__)

fake = Faker()
Faker.seed(1234)

BASE_TAGS = ["python", "sqlalchemy", "fastapi", "testing", "news"]


def get_or_create_tag_map(session: Session) -> Dict[str, Tag]:
    """Ensure a small set of tags exists and return them keyed by label."""
    existing = {
        t.tag: t
        for t in session.scalars(select(Tag).where(Tag.tag.in_(BASE_TAGS))).all()
    }

    for label in BASE_TAGS:
        if label not in existing:
            existing[label] = crud.create_tag(session, label)

    return existing


def seed_session(session: Session, users_count: int, posts_per_user: int) -> None:
    """Seed deterministic, idempotent data into an open session.

    - Users are uniquely identified by email: user{n}@example.com
    - Each user gets N posts with slug post-{n}-{j}
    - Every post is tagged "python", plus a couple of others by parity
    """
    tag_map = get_or_create_tag_map(session)
    users = UserFactory(fake)

    existing_users = {u.email: u for u in session.scalars(select(User)).all()}

    for i in range(1, users_count + 1):
        email = f"user{i}@example.com"
        user = existing_users.get(email)
        if not user:
            user = users.create(session, email=email)
            existing_users[email] = user

        for j in range(1, posts_per_user + 1):
            slug = f"post-{i}-{j}"
            if session.scalar(select(Post.id).where(Post.slug == slug)) is not None:
                continue

            post = crud.create_post(
                session,
                user.id,
                {
                    "title": f"Post {j} by {user.name}",
                    "text": fake.paragraph(nb_sentences=5),
                    "slug": slug,
                },
            )
            tag_ids = {tag_map["python"].id}
            if i % 2 == 0:
                tag_ids.add(tag_map["sqlalchemy"].id)
            if j % 2 == 1:
                tag_ids.add(tag_map["fastapi"].id)
            crud.set_tags(session, post.id, tag_ids)


def seed(users_count: int, posts_per_user: int) -> None:
    Base.metadata.create_all(bind=engine)
    with session_scope() as session:
        seed_session(session, users_count, posts_per_user)
    logger.info("Seeded %s users with %s posts each", users_count, posts_per_user)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the database.")
    parser.add_argument(
        "--users",
        type=int,
        default=10,
        help="Number of users to create (default: 10).",
    )
    parser.add_argument(
        "--posts-per-user",
        type=int,
        default=3,
        help="Number of posts per user (default: 3).",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    seed(users_count=args.users, posts_per_user=args.posts_per_user)
    print("Seeding complete.")


if __name__ == "__main__":
    main()
