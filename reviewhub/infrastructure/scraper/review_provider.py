"""
Review Provider - External Review Scraping
==========================================

Scraping itself runs on Apify actors; this module only starts a synchronous
actor run over HTTP and normalizes the dataset items into ReviewItems.

USAGE:
    provider = ApifyReviewProvider()
    reviews = provider.scrape(business_url, max_reviews=100)

A failed run raises ScraperError. Nothing is retried.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

import requests

from ...domain.models import BusinessUrl, ReviewItem, Source, utcnow
from ..config import get_settings
from ..config.settings import ScraperSettings

logger = logging.getLogger(__name__)


class ScraperError(Exception):
    """Raised when the scraping provider fails or returns unusable data."""
    pass


class ReviewProvider(ABC):
    """
    Abstract base class for review scraping backends.
    Implement this interface to add a new provider.
    """

    @abstractmethod
    def scrape(self, business_url: BusinessUrl, max_reviews: int) -> List[ReviewItem]:
        """Fetch up to ``max_reviews`` reviews for the listing."""
        ...


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def normalize_google_review(item: dict, scraped_at: datetime) -> Optional[ReviewItem]:
    """Map a Google Maps reviews dataset item; None when it has no author."""
    author = _clean(item.get("name"))
    if not author:
        return None

    stars = item.get("stars")
    rating = float(stars) if isinstance(stars, (int, float)) and 0 <= stars <= 5 else None

    return ReviewItem(
        review_id=_clean(item.get("reviewId")),
        author=author,
        content=_clean(item.get("text")) or "",
        rating=rating,
        posted_at=_clean(item.get("publishedAtDate")) or _clean(item.get("publishAt")) or "",
        profile_picture=_clean(item.get("reviewerPhotoUrl")),
        user_profile=_clean(item.get("reviewerUrl")),
        scraped_at=scraped_at,
    )


def normalize_facebook_review(item: dict, scraped_at: datetime) -> Optional[ReviewItem]:
    """Map a Facebook reviews dataset item. Facebook has no stars, only a recommendation."""
    user = item.get("user") or {}
    author = _clean(user.get("name"))
    if not author:
        return None

    recommended = item.get("isRecommended")
    if recommended is True:
        status = "recommended"
    elif recommended is False:
        status = "not_recommended"
    else:
        status = None

    return ReviewItem(
        review_id=_clean(item.get("id")),
        author=author,
        content=_clean(item.get("text")) or "",
        posted_at=_clean(item.get("date")) or "",
        profile_picture=_clean(user.get("profilePic")),
        recommendation_status=status,
        user_profile=_clean(user.get("profileUrl")),
        scraped_at=scraped_at,
    )


class ApifyReviewProvider(ReviewProvider):
    """Runs the Google or Facebook reviews actor and waits for its dataset."""

    def __init__(self, settings: Optional[ScraperSettings] = None):
        settings = settings or get_settings().scraper
        self._api_token = settings.api_token
        self._api_url = settings.api_url
        self._timeout = settings.timeout_seconds
        self._actors = {
            Source.GOOGLE: settings.google_actor,
            Source.FACEBOOK: settings.facebook_actor,
        }

        if not self._api_token:
            logger.warning("No APIFY_TOKEN set. Scrape requests will fail.")

    def _actor_input(self, business_url: BusinessUrl, max_reviews: int) -> dict:
        start_urls = [{"url": business_url.url}]
        if business_url.source is Source.GOOGLE:
            return {
                "startUrls": start_urls,
                "maxReviews": max_reviews,
                "reviewsSort": "newest",
                "language": "en",
            }
        return {"startUrls": start_urls, "resultsLimit": max_reviews}

    def scrape(self, business_url: BusinessUrl, max_reviews: int) -> List[ReviewItem]:
        if not self._api_token:
            raise ScraperError("Scraping provider is not configured.")

        actor = self._actors[business_url.source]
        endpoint = f"{self._api_url}/acts/{actor}/run-sync-get-dataset-items"

        logger.info(f"Scraping {business_url.source.value} listing {business_url.id} (max {max_reviews})")
        try:
            response = requests.post(
                endpoint,
                params={"token": self._api_token},
                json=self._actor_input(business_url, max_reviews),
                timeout=self._timeout,
            )
            response.raise_for_status()
            items = response.json()
        except requests.Timeout:
            logger.warning(f"Scraper timeout for listing {business_url.id}")
            raise ScraperError("Scraping service timed out.")
        except requests.RequestException as e:
            logger.warning(f"Scraper API error for listing {business_url.id}: {e}")
            raise ScraperError("Scraping service request failed.")
        except ValueError:
            raise ScraperError("Scraping service returned invalid JSON.")

        if not isinstance(items, list):
            raise ScraperError("Scraping service returned an unexpected payload.")

        normalize = normalize_google_review if business_url.source is Source.GOOGLE else normalize_facebook_review
        scraped_at = utcnow()
        reviews = []
        for item in items[:max_reviews]:
            if not isinstance(item, dict):
                continue
            review = normalize(item, scraped_at)
            if review is not None:
                reviews.append(review)

        logger.info(f"Scraped {len(reviews)} reviews for listing {business_url.id}")
        return reviews
