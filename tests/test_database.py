import pytest
from bson import ObjectId
from conftest import make_review

from reviewhub.domain.errors import Conflict
from reviewhub.domain.models import GridSettings, ListSettings, Source
from reviewhub.infrastructure.persistence import to_object_id, url_hash


@pytest.fixture
def owner(db):
    return db.create_user("Owner@Example.com", "owner", "hash", full_name="Olive Owner")


@pytest.fixture
def listing(db, owner):
    return db.create_business_url(owner.id, "Corner Cafe", "https://maps.google.com/?cid=1", Source.GOOGLE)


def test_to_object_id():
    oid = ObjectId()
    assert to_object_id(str(oid)) == oid
    assert to_object_id("not-an-id") is None
    assert to_object_id(None) is None


def test_create_and_find_user(db, owner):
    assert owner.email == "owner@example.com"
    assert db.get_user_by_email("OWNER@example.com").id == owner.id
    assert db.get_user_by_id(owner.id).full_name == "Olive Owner"
    assert db.get_user_by_id("nope") is None


def test_duplicate_email_conflicts(db, owner):
    with pytest.raises(Conflict):
        db.create_user("owner@example.com", "other", "hash")


def test_business_url_unique_per_source_across_users(db, owner, listing):
    rival = db.create_user("rival@example.com", "rival", "hash")

    assert listing.url_hash == url_hash("https://maps.google.com/?cid=1")
    with pytest.raises(Conflict):
        db.create_business_url(rival.id, "Copy", listing.url, Source.GOOGLE)

    facebook = db.create_business_url(rival.id, "Copy", listing.url, Source.FACEBOOK)
    assert facebook.source is Source.FACEBOOK
    assert [b.id for b in db.list_business_urls(owner.id)] == [listing.id]


def test_replace_reviews_upserts_and_replaces(db, listing):
    first = db.replace_reviews(listing, [make_review("a", 5), make_review("b", 4)])
    second = db.replace_reviews(listing, [make_review("c", 3)])

    assert first.id == second.id
    stored = db.get_review_batch(listing.id, Source.GOOGLE)
    assert [r.author for r in stored.reviews] == ["c"]
    assert stored.last_scraped_at is not None
    assert db.get_review_batch(listing.id, Source.FACEBOOK) is None


def test_mark_scraped(db, listing):
    assert listing.last_scraped_at is None
    assert db.mark_scraped(listing.id).last_scraped_at is not None


def test_widget_lifecycle(db, owner, listing):
    widget = db.create_widget(owner.id, listing.id, "Homepage", GridSettings(), min_rating=0, max_reviews=10)
    assert widget.views == 0
    assert widget.type.value == "grid"
    assert [w.id for w in db.list_widgets(owner.id)] == [widget.id]

    updated = db.update_widget(widget.id, name="Sidebar", settings=ListSettings(show_dates=False))
    assert updated.name == "Sidebar"
    assert updated.type.value == "list"
    assert updated.settings.show_dates is False

    assert db.delete_widget(widget.id) is True
    assert db.get_widget(widget.id) is None
    assert db.delete_widget(widget.id) is False


def test_increment_views(db, owner, listing):
    widget = db.create_widget(owner.id, listing.id, "Homepage", GridSettings(), min_rating=0, max_reviews=10)
    db.increment_views(widget.id)
    assert db.increment_views(widget.id).views == 2
    assert db.increment_views("missing") is None
    assert db.increment_views(str(ObjectId())) is None


def test_latest_reviews_and_stats(db, owner, listing):
    db.replace_reviews(listing, [make_review("a", 5), make_review("b", 3), make_review("c")])
    widget = db.create_widget(owner.id, listing.id, "Homepage", GridSettings(), min_rating=0, max_reviews=10)
    db.increment_views(widget.id)

    feed = db.get_latest_reviews(owner.id, limit=2)
    assert [r.author for r in feed] == ["a", "b"]
    assert feed[0].business_name == "Corner Cafe"

    stats = db.get_stats(owner.id).to_json()
    assert stats["totalBusinessUrls"] == 1
    assert stats["totalReviews"] == 3
    assert stats["averageRating"] == 4.0
    assert stats["totalViews"] == 1
    assert stats["reviewsBySource"]["google"] == 3
