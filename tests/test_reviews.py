from datetime import datetime, timedelta, timezone

from conftest import make_review

from reviewhub.domain.models import BusinessUrl, ReviewBatch, Source, Widget
from reviewhub.domain.reviews import (
    average_rating,
    filter_reviews,
    latest_reviews,
    paginate,
    review_stats,
    summarize_batch,
)


def _listing(listing_id, name, source=Source.GOOGLE):
    return BusinessUrl(
        id=listing_id,
        user_id="u1",
        name=name,
        url=f"https://example.com/{listing_id}",
        url_hash=listing_id,
        source=source,
    )


def _batch(listing, reviews, scraped_at=None):
    return ReviewBatch(
        id=f"b-{listing.id}",
        business_url_id=listing.id,
        url_hash=listing.url_hash,
        url=listing.url,
        source=listing.source,
        reviews=reviews,
        last_scraped_at=scraped_at,
    )


def test_average_ignores_unrated_reviews():
    reviews = [make_review("a", 5), make_review("b"), make_review("c", 3)]
    assert average_rating(reviews) == 4.0


def test_average_is_zero_without_ratings():
    assert average_rating([make_review("a"), make_review("b")]) == 0.0
    assert average_rating([]) == 0.0


def test_zero_min_rating_keeps_everything():
    reviews = [make_review("a", 1), make_review("b"), make_review("c", 4)]
    assert filter_reviews(reviews, 0) == reviews
    assert filter_reviews(reviews, None) == reviews


def test_min_rating_keeps_unrated_reviews():
    reviews = [make_review("low", 2), make_review("fb"), make_review("high", 4.5)]
    kept = filter_reviews(reviews, 4)
    assert [r.author for r in kept] == ["fb", "high"]


def test_paginate_slices():
    assert paginate(list(range(10)), 2, 3) == [2, 3, 4]
    assert paginate(list(range(3)), 5, 3) == []
    assert paginate(list(range(3)), 1) == [1, 2]


def test_summarize_batch_reports_filtered_total_and_average():
    listing = _listing("l1", "Cafe")
    reviews = [make_review(str(i), rating) for i, rating in enumerate([5, 4, 2, None, 1])]
    page = summarize_batch(_batch(listing, reviews), min_rating=4, offset=0, limit=2)

    assert page.total == 3
    assert len(page.reviews) == 2
    assert page.average_rating == 4.5

    data = page.to_json()
    assert data["averageRating"] == 4.5
    assert data["reviews"][0]["rating"] == 5
    assert "profilePicture" not in data["reviews"][0]


def test_summarize_without_batch_is_empty():
    page = summarize_batch(None)
    assert page.to_json() == {"reviews": [], "total": 0, "averageRating": 0.0, "lastScrapedAt": None}


def test_latest_reviews_puts_most_recent_scrape_first():
    now = datetime.now(timezone.utc)
    old = _listing("l1", "Old Place")
    new = _listing("l2", "New Place", Source.FACEBOOK)
    entries = [
        (old, _batch(old, [make_review("o1", 5), make_review("o2", 4)], now - timedelta(days=2))),
        (new, _batch(new, [make_review("n1")], now)),
    ]

    feed = latest_reviews(entries, limit=2)

    assert [r.author for r in feed] == ["n1", "o1"]
    assert feed[0].business_name == "New Place"
    assert feed[0].source is Source.FACEBOOK
    assert feed[1].business_url == old.url


def test_review_stats_totals():
    listing = _listing("l1", "Cafe")
    fb = _listing("l2", "Cafe FB", Source.FACEBOOK)
    batches = [
        _batch(listing, [make_review("a", 5), make_review("b", 3)]),
        _batch(fb, [make_review("c")]),
    ]
    widget = Widget(
        id="w1", user_id="u1", business_url_id="l1", name="W", type="list",
        settings={"layout": "list"}, views=7,
    )

    stats = review_stats([listing, fb], batches, [widget]).to_json()

    assert stats["totalBusinessUrls"] == 2
    assert stats["totalWidgets"] == 1
    assert stats["totalReviews"] == 3
    assert stats["averageRating"] == 4.0
    assert stats["totalViews"] == 7
    assert stats["reviewsBySource"] == {"google": 2, "facebook": 1}


def test_review_stats_for_new_user():
    stats = review_stats([], [], []).to_json()
    assert stats["totalReviews"] == 0
    assert stats["averageRating"] == 0.0
    assert stats["reviewsBySource"] == {"google": 0, "facebook": 0}
