import pytest
from sqlalchemy import func, select

from blog import crud, models
from blog.exceptions import NotFoundError, ValidationError


@pytest.fixture()
def post(db_session, user_factory):
    user = user_factory()
    post = crud.create_post(
        db_session, user.id, {"title": "Tagged", "text": "body", "slug": "tagged"}
    )
    db_session.commit()
    return post


def _tag_ids(db_session, post_id):
    return {tag.id for tag in crud.tags_for(db_session, post_id)}


def test_set_tags_replaces_instead_of_appending(db_session, post, tag_factory):
    t1, t2, t3, t4 = tag_factory("one", "two", "three", "four")

    crud.set_tags(db_session, post.id, {t1.id, t2.id, t3.id})
    crud.set_tags(db_session, post.id, {t2.id, t3.id, t4.id})

    assert _tag_ids(db_session, post.id) == {t2.id, t3.id, t4.id}


@pytest.mark.parametrize("empty", [set(), [], None])
def test_set_tags_with_nothing_clears(db_session, post, tag_factory, empty):
    t1, t2 = tag_factory("one", "two")
    crud.set_tags(db_session, post.id, [t1.id, t2.id])

    crud.set_tags(db_session, post.id, empty)

    assert crud.tags_for(db_session, post.id) == []


def test_set_tags_leaves_common_rows_untouched(db_session, post, tag_factory):
    t1, t2, t3 = tag_factory("one", "two", "three")
    crud.set_tags(db_session, post.id, [t1.id, t2.id])
    db_session.commit()
    kept = db_session.get(models.PostTag, (post.id, t2.id))

    crud.set_tags(db_session, post.id, [t2.id, t3.id])

    # the same identity-mapped row survives; it was neither deleted nor re-inserted
    assert db_session.get(models.PostTag, (post.id, t2.id)) is kept
    assert db_session.get(models.PostTag, (post.id, t1.id)) is None


def test_set_tags_refreshes_post_tags_relationship(db_session, post, tag_factory):
    t1, t2 = tag_factory("one", "two")
    crud.set_tags(db_session, post.id, [t1.id])
    assert [tag.id for tag in post.tags] == [t1.id]

    crud.set_tags(db_session, post.id, [t2.id])

    assert [tag.id for tag in post.tags] == [t2.id]


def test_set_tags_unknown_tag_fails(db_session, post, tag_factory):
    (t1,) = tag_factory("one")

    with pytest.raises(NotFoundError):
        crud.set_tags(db_session, post.id, [t1.id, 999])


def test_set_tags_unknown_post_fails(db_session, tag_factory):
    (t1,) = tag_factory("one")

    with pytest.raises(NotFoundError):
        crud.set_tags(db_session, 404, [t1.id])


def test_tags_for_is_sorted_by_id(db_session, post, tag_factory):
    tags = tag_factory("c", "a", "b")
    crud.set_tags(db_session, post.id, [tag.id for tag in reversed(tags)])

    assert [tag.id for tag in crud.tags_for(db_session, post.id)] == sorted(t.id for t in tags)


def test_deleting_post_removes_associations(db_session, post, tag_factory):
    t1, t2 = tag_factory("one", "two")
    crud.set_tags(db_session, post.id, [t1.id, t2.id])
    db_session.commit()
    post_id = post.id

    crud.delete_post(db_session, post_id)
    db_session.commit()

    with pytest.raises(NotFoundError):
        crud.tags_for(db_session, post_id)
    with pytest.raises(NotFoundError):
        crud.get_post(db_session, post_id)
    orphans = db_session.scalar(
        select(func.count()).select_from(models.PostTag).where(models.PostTag.post_id == post_id)
    )
    assert orphans == 0
    # tags themselves are not owned by the post
    assert {t.tag for t in crud.list_tags(db_session)} == {"one", "two"}


def test_posts_for_unknown_tag_fails_but_unused_tag_is_empty(db_session, tag_factory):
    (unused,) = tag_factory("lonely")

    assert crud.posts_for(db_session, unused.id) == []
    with pytest.raises(NotFoundError):
        crud.posts_for(db_session, unused.id + 100)


def test_posts_for_lists_tagged_posts_newest_first(db_session, user_factory, tag_factory):
    user = user_factory()
    (python,) = tag_factory("python")
    for n in range(3):
        p = crud.create_post(
            db_session, user.id, {"title": f"P{n}", "text": "x", "slug": f"p-{n}"}
        )
        if n != 1:
            crud.set_tags(db_session, p.id, [python.id])

    posts = crud.posts_for(db_session, python.id)

    assert [p.slug for p in posts] == ["p-2", "p-0"]


def test_create_tag_rejects_duplicates_and_blank(db_session, tag_factory):
    tag_factory("python")

    with pytest.raises(ValidationError):
        crud.create_tag(db_session, "python")
    with pytest.raises(ValidationError):
        crud.create_tag(db_session, "   ")
    with pytest.raises(ValidationError):
        crud.create_tag(db_session, "x" * 101)


def test_get_tag_missing(db_session):
    with pytest.raises(NotFoundError):
        crud.get_tag(db_session, 1)
