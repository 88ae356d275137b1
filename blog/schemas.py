from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from .models import SLUG_MAX_LENGTH, TAG_MAX_LENGTH, TITLE_MAX_LENGTH


# ----- Tag Schemas -----


class TagCreate(BaseModel):
    tag: str = Field(..., min_length=1, max_length=TAG_MAX_LENGTH)

    class Config:
        extra = "forbid"


class TagOut(BaseModel):
    id: int
    tag: str

    class Config:
        from_attributes = True


# ----- Post Schemas -----


class PostAttrs(BaseModel):
    """Everything a post can be created from, and nothing else."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    text: str
    slug: str = Field(..., min_length=1, max_length=SLUG_MAX_LENGTH)

    class Config:
        extra = "forbid"


class PostUpdate(BaseModel):
    """Partial patch; fields left as None are not touched."""

    title: Optional[str] = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    text: Optional[str] = None
    slug: Optional[str] = Field(None, min_length=1, max_length=SLUG_MAX_LENGTH)

    class Config:
        extra = "forbid"


class PostIn(PostAttrs):
    tags: Optional[List[int]] = None

    def attrs(self) -> PostAttrs:
        return PostAttrs(**self.model_dump(exclude={"tags"}))


class PostEditIn(PostUpdate):
    tags: Optional[List[int]] = None

    def attrs(self) -> PostUpdate:
        return PostUpdate(**self.model_dump(exclude={"tags"}, exclude_unset=True))


class PostOut(BaseModel):
    id: int
    user_id: int
    title: str
    text: str
    slug: str
    created_at: datetime
    updated_at: datetime
    tags: List[TagOut] = []

    class Config:
        from_attributes = True


class PostPage(BaseModel):
    items: List[PostOut]
    page: int
    page_size: int
    total: int
    pages: int
    has_next: bool
    has_previous: bool

    class Config:
        from_attributes = True


class TagPosts(BaseModel):
    tag: TagOut
    posts: List[PostOut]


# ----- User Schemas -----


class UserOut(BaseModel):
    id: int
    name: str
    email: EmailStr
    email_verified_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginIn(BaseModel):
    email: EmailStr
    password: str
