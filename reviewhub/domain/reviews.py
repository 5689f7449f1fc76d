"""
Review filtering & aggregation.

Policy:
- A review without a numeric rating always passes the rating filter.
- Averages are taken over rated reviews only; unrated reviews do not count
  in the denominator.
- Pagination is a plain offset/limit slice.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import BusinessUrl, LatestReview, ReviewBatch, ReviewItem, Source, Widget


def filter_reviews(reviews: Sequence[ReviewItem], min_rating: Optional[float] = None) -> List[ReviewItem]:
    """Keep unrated reviews and rated reviews at or above ``min_rating``."""
    if not min_rating:
        return list(reviews)
    return [r for r in reviews if r.rating is None or r.rating >= min_rating]


def average_rating(reviews: Iterable[ReviewItem]) -> float:
    """Mean rating over reviews that carry one; 0.0 when none do."""
    ratings = [r.rating for r in reviews if r.rating is not None]
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


def paginate(items: Sequence, offset: int = 0, limit: Optional[int] = None) -> list:
    offset = max(offset or 0, 0)
    if limit is None:
        return list(items[offset:])
    return list(items[offset:offset + max(limit, 0)])


@dataclass
class ReviewPage:
    """Filtered, paginated reviews of one batch plus its aggregate."""
    reviews: List[ReviewItem]
    total: int
    average_rating: float
    last_scraped_at: Optional[datetime] = None

    def to_json(self) -> dict:
        return {
            "reviews": [r.to_json(exclude_none=True) for r in self.reviews],
            "total": self.total,
            "averageRating": round(self.average_rating, 2),
            "lastScrapedAt": self.last_scraped_at.isoformat() if self.last_scraped_at else None,
        }


def summarize_batch(
    batch: Optional[ReviewBatch],
    min_rating: Optional[float] = None,
    offset: int = 0,
    limit: Optional[int] = None,
) -> ReviewPage:
    if batch is None:
        return ReviewPage(reviews=[], total=0, average_rating=0.0)

    matching = filter_reviews(batch.reviews, min_rating)
    return ReviewPage(
        reviews=paginate(matching, offset, limit),
        total=len(matching),
        average_rating=average_rating(matching),
        last_scraped_at=batch.last_scraped_at,
    )


def latest_reviews(
    entries: Iterable[Tuple[BusinessUrl, ReviewBatch]],
    limit: int = 10,
) -> List[LatestReview]:
    """
    Flatten the latest batch of each listing into one feed.

    Batches scraped most recently come first; within a batch the provider's
    order is kept (posting dates are free-form strings and not sortable).
    """
    ordered = sorted(
        entries,
        key=lambda pair: pair[1].last_scraped_at.timestamp() if pair[1].last_scraped_at else 0.0,
        reverse=True,
    )
    feed: List[LatestReview] = []
    for business_url, batch in ordered:
        for review in batch.reviews:
            if len(feed) >= limit:
                return feed
            feed.append(LatestReview(
                **review.model_dump(),
                business_name=business_url.name,
                source=business_url.source,
                business_url=business_url.url,
            ))
    return feed


@dataclass
class DashboardStats:
    total_business_urls: int = 0
    total_widgets: int = 0
    total_reviews: int = 0
    average_rating: float = 0.0
    total_views: int = 0
    reviews_by_source: dict = field(default_factory=lambda: {s.value: 0 for s in Source})

    def to_json(self) -> dict:
        return {
            "totalBusinessUrls": self.total_business_urls,
            "totalWidgets": self.total_widgets,
            "totalReviews": self.total_reviews,
            "averageRating": self.average_rating,
            "totalViews": self.total_views,
            "reviewsBySource": dict(self.reviews_by_source),
        }


def review_stats(
    business_urls: Sequence[BusinessUrl],
    batches: Iterable[ReviewBatch],
    widgets: Sequence[Widget],
) -> DashboardStats:
    stats = DashboardStats(
        total_business_urls=len(business_urls),
        total_widgets=len(widgets),
        total_views=sum(w.views for w in widgets),
    )
    if not business_urls:
        return stats

    all_reviews: List[ReviewItem] = []
    for batch in batches:
        stats.reviews_by_source[batch.source.value] += len(batch.reviews)
        all_reviews.extend(batch.reviews)

    stats.total_reviews = len(all_reviews)
    stats.average_rating = round(average_rating(all_reviews), 2)
    return stats
