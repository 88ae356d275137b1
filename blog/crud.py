import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass
from typing import (
    Any,
    Generic,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
    TypeVar,
    Union,
)

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from . import models, schemas
from .auth import authorize_edit
from .config import settings
from .exceptions import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Attrs = Union[schemas.PostAttrs, Mapping[str, Any]]
Patch = Union[schemas.PostUpdate, Mapping[str, Any]]


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a listing. Iterating it any number of times yields the same items."""

    items: Tuple[T, ...]
    page: int
    page_size: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@contextmanager
def atomic(db: Session):
    """Commit everything done inside the block, or nothing at all."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def _coerce(model_cls, attrs):
    if isinstance(attrs, model_cls):
        return attrs
    try:
        return model_cls.model_validate(attrs)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationError(problems) from exc


def _check_bounds(field: str, value: Optional[str], limit: int) -> None:
    if value is None:
        return
    if not value.strip():
        raise ValidationError(f"{field} must not be blank")
    if len(value) > limit:
        raise ValidationError(f"{field} must be at most {limit} characters")


def _ensure_slug_free(db: Session, slug: str, exclude_id: Optional[int] = None) -> None:
    stmt = select(models.Post.id).where(models.Post.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(models.Post.id != exclude_id)
    if db.execute(stmt).first() is not None:
        raise ValidationError(f"slug '{slug}' is already taken")


def _flush(db: Session) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        raise ValidationError("Post violates a storage constraint") from exc


# Post CRUD


def create_post(db: Session, owner_id: int, attrs: Attrs) -> models.Post:
    attrs = _coerce(schemas.PostAttrs, attrs)
    _check_bounds("title", attrs.title, models.TITLE_MAX_LENGTH)
    _check_bounds("slug", attrs.slug, models.SLUG_MAX_LENGTH)
    if attrs.text is None:
        raise ValidationError("text is required")

    if db.get(models.User, owner_id) is None:
        raise NotFoundError(f"User {owner_id} not found")
    _ensure_slug_free(db, attrs.slug)

    now = models.utcnow()
    post = models.Post(
        user_id=owner_id,
        title=attrs.title,
        text=attrs.text,
        slug=attrs.slug,
        created_at=now,
        updated_at=now,
    )
    db.add(post)
    _flush(db)
    logger.info("Created post %s (%s) for user %s", post.id, post.slug, owner_id)
    return post


def get_post(db: Session, post_id: int) -> models.Post:
    stmt = (
        select(models.Post)
        .options(selectinload(models.Post.tags))
        .where(models.Post.id == post_id)
    )
    post = db.execute(stmt).scalar_one_or_none()
    if post is None:
        raise NotFoundError(f"Post {post_id} not found")
    return post


def get_post_by_slug(db: Session, slug: str) -> models.Post:
    stmt = (
        select(models.Post)
        .options(selectinload(models.Post.tags))
        .where(models.Post.slug == slug)
        .order_by(models.Post.id)
        .limit(1)
    )
    post = db.execute(stmt).scalars().first()
    if post is None:
        raise NotFoundError(f"Post '{slug}' not found")
    return post


def update_post(db: Session, post_id: int, attrs: Patch) -> models.Post:
    attrs = _coerce(schemas.PostUpdate, attrs)
    post = get_post(db, post_id)

    changes = attrs.model_dump(exclude_none=True)
    _check_bounds("title", changes.get("title"), models.TITLE_MAX_LENGTH)
    _check_bounds("slug", changes.get("slug"), models.SLUG_MAX_LENGTH)
    if "slug" in changes and changes["slug"] != post.slug:
        _ensure_slug_free(db, changes["slug"], exclude_id=post.id)

    for field, value in changes.items():
        setattr(post, field, value)
    post.updated_at = models.utcnow()
    _flush(db)
    logger.info("Updated post %s fields=%s", post.id, sorted(changes))
    return post


def delete_post(db: Session, post_id: int) -> None:
    post = get_post(db, post_id)
    db.delete(post)
    db.flush()
    logger.info("Deleted post %s", post_id)


def list_latest(db: Session, page_size: Optional[int] = None, page: int = 1) -> Page[models.Post]:
    if page_size is None:
        page_size = settings.posts_per_page
    if page_size < 1:
        raise ValidationError("page_size must be at least 1")
    if page < 1:
        raise ValidationError("page must be at least 1")

    total = db.scalar(select(func.count()).select_from(models.Post)) or 0
    stmt = (
        select(models.Post)
        .options(selectinload(models.Post.tags))
        .order_by(models.Post.created_at.desc(), models.Post.id.desc())
        .limit(page_size)
        .offset((page - 1) * page_size)
    )
    items = tuple(db.execute(stmt).scalars().all())
    return Page(items=items, page=page, page_size=page_size, total=total)


# Tag CRUD


def get_tag(db: Session, tag_id: int) -> models.Tag:
    tag = db.get(models.Tag, tag_id)
    if tag is None:
        raise NotFoundError(f"Tag {tag_id} not found")
    return tag


def list_tags(db: Session) -> List[models.Tag]:
    stmt = select(models.Tag).order_by(models.Tag.tag)
    return list(db.execute(stmt).scalars().all())


def create_tag(db: Session, label: str) -> models.Tag:
    label = (label or "").strip()
    _check_bounds("tag", label, models.TAG_MAX_LENGTH)

    stmt = select(models.Tag).where(models.Tag.tag == label)
    if db.execute(stmt).scalar_one_or_none() is not None:
        raise ValidationError(f"Tag '{label}' already exists")

    tag = models.Tag(tag=label)
    db.add(tag)
    db.flush()
    return tag


def set_tags(db: Session, post_id: int, tag_ids: Optional[Iterable[int]]) -> Set[int]:
    """Make the post's tags exactly ``tag_ids``.

    Rows for tags that stay are not touched; ``None`` or an empty
    collection removes every tag from the post.
    """
    post = get_post(db, post_id)
    wanted = set(tag_ids or ())

    if wanted:
        stmt = select(models.Tag.id).where(models.Tag.id.in_(sorted(wanted)))
        found = set(db.execute(stmt).scalars())
        missing = wanted - found
        if missing:
            raise NotFoundError(f"Tags not found: {sorted(missing)}")

    current = set(
        db.execute(
            select(models.PostTag.tag_id).where(models.PostTag.post_id == post.id)
        ).scalars()
    )
    stale = current - wanted
    fresh = wanted - current

    if stale:
        db.execute(
            delete(models.PostTag).where(
                models.PostTag.post_id == post.id,
                models.PostTag.tag_id.in_(sorted(stale)),
            )
        )
    for tag_id in sorted(fresh):
        db.add(models.PostTag(post_id=post.id, tag_id=tag_id))
    db.flush()
    db.expire(post, ["tags", "tag_links"])

    logger.info(
        "Synced tags for post %s: +%s -%s", post.id, sorted(fresh), sorted(stale)
    )
    return wanted


def tags_for(db: Session, post_id: int) -> List[models.Tag]:
    """Tags of a post. Order carries no meaning; ids ascending for stable output."""
    post = get_post(db, post_id)
    stmt = (
        select(models.Tag)
        .join(models.PostTag, models.PostTag.tag_id == models.Tag.id)
        .where(models.PostTag.post_id == post.id)
        .order_by(models.Tag.id)
    )
    return list(db.execute(stmt).scalars().all())


def posts_for(db: Session, tag_id: int) -> List[models.Post]:
    tag = get_tag(db, tag_id)
    stmt = (
        select(models.Post)
        .join(models.PostTag, models.PostTag.post_id == models.Post.id)
        .options(selectinload(models.Post.tags))
        .where(models.PostTag.tag_id == tag.id)
        .order_by(models.Post.created_at.desc(), models.Post.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


# Post workflows


def publish_post(
    db: Session,
    user: Optional[models.User],
    attrs: Attrs,
    tag_ids: Optional[Iterable[int]] = None,
) -> models.Post:
    if user is None:
        raise AuthorizationError("Log in to publish posts.")

    with atomic(db):
        post = create_post(db, user.id, attrs)
        set_tags(db, post.id, tag_ids)

    db.refresh(post)
    return post


def post_for_editing(db: Session, user: Optional[models.User], post_id: int) -> models.Post:
    post = get_post(db, post_id)
    authorize_edit(user, post)
    return post


def edit_post(
    db: Session,
    user: Optional[models.User],
    post_id: int,
    attrs: Patch,
    tag_ids: Optional[Iterable[int]] = None,
) -> models.Post:
    # attributes and tags land together or not at all
    with atomic(db):
        post = post_for_editing(db, user, post_id)
        update_post(db, post.id, attrs)
        set_tags(db, post.id, tag_ids)

    db.refresh(post)
    return post


def remove_post(db: Session, user: Optional[models.User], post_id: int) -> None:
    with atomic(db):
        post = post_for_editing(db, user, post_id)
        delete_post(db, post.id)


def add_tag(db: Session, label: str) -> models.Tag:
    with atomic(db):
        tag = create_tag(db, label)
    db.refresh(tag)
    return tag
