from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..auth import require_user
from ..database import get_db

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/", response_model=List[schemas.TagOut])
def list_tags(db: Session = Depends(get_db)):
    return crud.list_tags(db)


@router.post("/", response_model=schemas.TagOut, status_code=status.HTTP_201_CREATED)
def create_tag(
    tag_in: schemas.TagCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_user),
):
    return crud.add_tag(db, tag_in.tag)


@router.get("/{tag_id}", response_model=schemas.TagPosts)
def show_tag(tag_id: int, db: Session = Depends(get_db)):
    """Posts carrying a tag; 404 only when the tag itself is unknown."""
    tag = crud.get_tag(db, tag_id)
    return {"tag": tag, "posts": crud.posts_for(db, tag.id)}
