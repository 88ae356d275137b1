from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..auth import require_user
from ..database import get_db

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("/", response_model=schemas.PostPage)
def list_posts(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
):
    latest = crud.list_latest(db, page_size=page_size, page=page)
    return schemas.PostPage.model_validate(latest)


@router.post("/", response_model=schemas.PostOut, status_code=status.HTTP_201_CREATED)
def create_post(
    post_in: schemas.PostIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_user),
):
    return crud.publish_post(db, current_user, post_in.attrs(), post_in.tags)


@router.get("/{slug}", response_model=schemas.PostOut)
def show_post(slug: str, db: Session = Depends(get_db)):
    return crud.get_post_by_slug(db, slug)


@router.get("/{post_id}/edit", response_model=schemas.PostOut)
def edit_form(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_user),
):
    return crud.post_for_editing(db, current_user, post_id)


@router.get("/{post_id}/delete", response_model=schemas.PostOut)
def delete_form(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_user),
):
    return crud.post_for_editing(db, current_user, post_id)


@router.put("/{post_id}", response_model=schemas.PostOut)
def update_post(
    post_id: int,
    post_in: schemas.PostEditIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_user),
):
    return crud.edit_post(db, current_user, post_id, post_in.attrs(), post_in.tags)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_user),
):
    crud.remove_post(db, current_user, post_id)
