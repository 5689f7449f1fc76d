"""
MongoDB Repository - Users, Listings, Reviews & Widgets
=======================================================

Every document belongs to one user; ownership is checked by the web layer.
The MongoClient is created lazily once per process and reused (it keeps its
own connection pool).
"""

import hashlib
import logging
from functools import lru_cache
from typing import Iterable, List, Optional, Tuple

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database as MongoDatabase
from pymongo.errors import DuplicateKeyError

from ...domain.errors import Conflict
from ...domain.models import (
    BusinessUrl,
    LatestReview,
    ReviewBatch,
    ReviewItem,
    Source,
    User,
    Widget,
    utcnow,
)
from ...domain.reviews import DashboardStats, latest_reviews, review_stats
from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

USERS = "users"
BUSINESS_URLS = "business_urls"
REVIEW_BATCHES = "review_batches"
WIDGETS = "widgets"


def to_object_id(value) -> Optional[ObjectId]:
    """Parse an id string; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def url_hash(url: str) -> str:
    """Content hash of a listing URL, used as its uniqueness key."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


@lru_cache(maxsize=None)
def get_client(url: str, timeout_ms: int = 5000) -> MongoClient:
    logger.info("Creating MongoDB client")
    return MongoClient(url, serverSelectionTimeoutMS=timeout_ms, tz_aware=True)


class Database:
    """
    MongoDB repository for ReviewHub.

    Usage:
        db = connect()

        listing = db.create_business_url(user_id, "Cafe", "https://maps.google.com/...", Source.GOOGLE)
        db.replace_reviews(listing, reviews)
        widgets = db.list_widgets(user_id)
    """

    def __init__(self, mongo_db: MongoDatabase):
        self._db = mongo_db

    def init(self):
        """Create indexes (idempotent)."""
        self._db[USERS].create_index("email", unique=True)
        self._db[BUSINESS_URLS].create_index(
            [("urlHash", ASCENDING), ("source", ASCENDING)], unique=True
        )
        self._db[BUSINESS_URLS].create_index("userId")
        self._db[REVIEW_BATCHES].create_index(
            [("businessUrlId", ASCENDING), ("source", ASCENDING)], unique=True
        )
        self._db[WIDGETS].create_index("userId")
        self._db[WIDGETS].create_index("businessUrlId")
        logger.info(f"Database initialized: {self._db.name}")

    def ping(self) -> bool:
        self._db.command("ping")
        return True

    def collection_names(self) -> List[str]:
        return self._db.list_collection_names()

    # ── Users ──────────────────────────────────────────────────────

    def create_user(
        self,
        email: str,
        username: str,
        password_hash: str,
        full_name: Optional[str] = None,
        is_verified: bool = True,
    ) -> User:
        doc = {
            "email": email.strip().lower(),
            "username": username,
            "fullName": full_name,
            "passwordHash": password_hash,
            "isVerified": is_verified,
            "createdAt": utcnow(),
        }
        try:
            result = self._db[USERS].insert_one(doc)
        except DuplicateKeyError:
            logger.warning(f"Signup rejected, email already registered: {doc['email']}")
            raise Conflict("An account with this email already exists.")
        doc["_id"] = result.inserted_id
        logger.info(f"Created user {result.inserted_id}")
        return User.from_document(doc)

    def get_user_by_email(self, email: str) -> Optional[User]:
        doc = self._db[USERS].find_one({"email": email.strip().lower()})
        return User.from_document(doc) if doc else None

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = self._db[USERS].find_one({"_id": oid})
        return User.from_document(doc) if doc else None

    # ── Business URLs ──────────────────────────────────────────────

    def create_business_url(self, user_id: str, name: str, url: str, source: Source) -> BusinessUrl:
        """
        Register a listing. A URL may be registered once per source across
        all users; a second registration raises Conflict.
        """
        source = Source(source)
        digest = url_hash(url)
        if self._db[BUSINESS_URLS].find_one({"urlHash": digest, "source": source.value}):
            raise Conflict("This business URL has already been added.")

        doc = {
            "userId": ObjectId(user_id),
            "name": name,
            "url": url,
            "urlHash": digest,
            "source": source.value,
            "addedAt": utcnow(),
            "lastScrapedAt": None,
        }
        try:
            result = self._db[BUSINESS_URLS].insert_one(doc)
        except DuplicateKeyError:
            raise Conflict("This business URL has already been added.")
        doc["_id"] = result.inserted_id
        logger.info(f"User {user_id} added {source.value} listing {result.inserted_id}")
        return BusinessUrl.from_document(doc)

    def get_business_url(self, business_url_id: str) -> Optional[BusinessUrl]:
        oid = to_object_id(business_url_id)
        if oid is None:
            return None
        doc = self._db[BUSINESS_URLS].find_one({"_id": oid})
        return BusinessUrl.from_document(doc) if doc else None

    def list_business_urls(self, user_id: str) -> List[BusinessUrl]:
        oid = to_object_id(user_id)
        if oid is None:
            return []
        docs = self._db[BUSINESS_URLS].find({"userId": oid}).sort("addedAt", DESCENDING)
        return [BusinessUrl.from_document(d) for d in docs]

    def mark_scraped(self, business_url_id: str) -> Optional[BusinessUrl]:
        doc = self._db[BUSINESS_URLS].find_one_and_update(
            {"_id": ObjectId(business_url_id)},
            {"$set": {"lastScrapedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return BusinessUrl.from_document(doc) if doc else None

    # ── Reviews ────────────────────────────────────────────────────

    def get_review_batch(self, business_url_id: str, source: Source) -> Optional[ReviewBatch]:
        oid = to_object_id(business_url_id)
        if oid is None:
            return None
        doc = self._db[REVIEW_BATCHES].find_one({"businessUrlId": oid, "source": Source(source).value})
        return ReviewBatch.from_document(doc) if doc else None

    def replace_reviews(self, business_url: BusinessUrl, reviews: Iterable[ReviewItem]) -> ReviewBatch:
        """
        Upsert the batch for (listing, source). The stored review list is
        replaced, never merged; concurrent scrapes resolve to the last write.
        """
        items = [r.model_dump(by_alias=True, exclude_none=True) for r in reviews]
        doc = self._db[REVIEW_BATCHES].find_one_and_update(
            {"businessUrlId": ObjectId(business_url.id), "source": business_url.source.value},
            {"$set": {
                "url": business_url.url,
                "urlHash": business_url.url_hash,
                "reviews": items,
                "lastScrapedAt": utcnow(),
            }},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        logger.info(f"Stored {len(items)} reviews for listing {business_url.id}")
        return ReviewBatch.from_document(doc)

    def list_review_batches(self, business_urls: List[BusinessUrl]) -> List[Tuple[BusinessUrl, ReviewBatch]]:
        """Latest batch per listing, paired with the listing it belongs to."""
        by_key = {(b.id, b.source.value): b for b in business_urls}
        if not by_key:
            return []
        ids = [ObjectId(b.id) for b in business_urls]
        pairs = []
        for doc in self._db[REVIEW_BATCHES].find({"businessUrlId": {"$in": ids}}):
            batch = ReviewBatch.from_document(doc)
            listing = by_key.get((batch.business_url_id, batch.source.value))
            if listing is not None:
                pairs.append((listing, batch))
        return pairs

    def get_latest_reviews(self, user_id: str, limit: int = 10) -> List[LatestReview]:
        return latest_reviews(self.list_review_batches(self.list_business_urls(user_id)), limit)

    # ── Widgets ────────────────────────────────────────────────────

    def create_widget(
        self,
        user_id: str,
        business_url_id: str,
        name: str,
        settings,
        min_rating: float,
        max_reviews: int,
    ) -> Widget:
        now = utcnow()
        doc = {
            "userId": ObjectId(user_id),
            "businessUrlId": ObjectId(business_url_id),
            "name": name,
            "type": settings.layout,
            "maxReviews": max_reviews,
            "minRating": min_rating,
            "settings": settings.model_dump(by_alias=True),
            "views": 0,
            "createdAt": now,
            "updatedAt": now,
        }
        result = self._db[WIDGETS].insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"User {user_id} created {settings.layout} widget {result.inserted_id}")
        return Widget.from_document(doc)

    def get_widget(self, widget_id: str) -> Optional[Widget]:
        oid = to_object_id(widget_id)
        if oid is None:
            return None
        doc = self._db[WIDGETS].find_one({"_id": oid})
        return Widget.from_document(doc) if doc else None

    def list_widgets(self, user_id: str) -> List[Widget]:
        oid = to_object_id(user_id)
        if oid is None:
            return []
        docs = self._db[WIDGETS].find({"userId": oid}).sort("createdAt", DESCENDING)
        return [Widget.from_document(d) for d in docs]

    def update_widget(self, widget_id: str, **updates) -> Optional[Widget]:
        """Update widget fields (snake_case keys); ``settings`` is a settings model."""
        fields = {"updatedAt": utcnow()}
        for key, column in (("name", "name"), ("min_rating", "minRating"), ("max_reviews", "maxReviews")):
            if key in updates:
                fields[column] = updates[key]
        if "business_url_id" in updates:
            fields["businessUrlId"] = ObjectId(updates["business_url_id"])
        if "settings" in updates:
            fields["settings"] = updates["settings"].model_dump(by_alias=True)
            fields["type"] = updates["settings"].layout

        doc = self._db[WIDGETS].find_one_and_update(
            {"_id": ObjectId(widget_id)},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        return Widget.from_document(doc) if doc else None

    def delete_widget(self, widget_id: str) -> bool:
        oid = to_object_id(widget_id)
        if oid is None:
            return False
        return self._db[WIDGETS].delete_one({"_id": oid}).deleted_count > 0

    def increment_views(self, widget_id: str) -> Optional[Widget]:
        """Atomic ``$inc`` so concurrent renders never lose a view."""
        oid = to_object_id(widget_id)
        if oid is None:
            return None
        doc = self._db[WIDGETS].find_one_and_update(
            {"_id": oid},
            {"$inc": {"views": 1}},
            return_document=ReturnDocument.AFTER,
        )
        return Widget.from_document(doc) if doc else None

    # ── Stats ──────────────────────────────────────────────────────

    def get_stats(self, user_id: str) -> DashboardStats:
        business_urls = self.list_business_urls(user_id)
        batches = [batch for _, batch in self.list_review_batches(business_urls)]
        return review_stats(business_urls, batches, self.list_widgets(user_id))


def connect(settings: Optional[Settings] = None) -> Database:
    """Open (or reuse) the process-wide client and return an initialized repository."""
    settings = settings or get_settings()
    client = get_client(settings.database.url, settings.database.server_selection_timeout_ms)
    db = Database(client[settings.database.name])
    db.init()
    return db
