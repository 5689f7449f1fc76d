"""
Document models for ReviewHub.

Each model maps to a MongoDB document. Field names are snake_case in Python
and camelCase in MongoDB and JSON (``business_url_id`` <-> ``businessUrlId``).

Collections:
- users
- business_urls
- review_batches
- widgets
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_THEME_COLOR = "#3182CE"
DEFAULT_MAX_REVIEWS = 10
MAX_REVIEWS_LIMIT = 50


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Source(str, Enum):
    """Review provider."""
    GOOGLE = "google"
    FACEBOOK = "facebook"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Layout(str, Enum):
    """Widget layout variants."""
    GRID = "grid"
    CAROUSEL = "carousel"
    LIST = "list"
    MASONRY = "masonry"
    BADGE = "badge"


class DocumentModel(BaseModel):
    """Base model: camelCase aliases, accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_document(cls, doc: dict):
        """Build a model from a raw MongoDB document (``_id`` -> ``id``)."""
        data = {}
        for key, value in doc.items():
            if key == "_id":
                key = "id"
            data[key] = str(value) if isinstance(value, ObjectId) else value
        return cls.model_validate(data)

    def to_json(self, **kwargs) -> dict:
        return self.model_dump(by_alias=True, mode="json", **kwargs)


# ── Users ──────────────────────────────────────────────────────────

class User(DocumentModel):
    id: str
    email: str
    username: str
    full_name: Optional[str] = None
    password_hash: str
    is_verified: bool = True
    created_at: Optional[datetime] = None

    def public_json(self) -> dict:
        return self.to_json(exclude={"password_hash"})


# ── Business listings & reviews ────────────────────────────────────

class BusinessUrl(DocumentModel):
    id: str
    user_id: str
    name: str
    url: str
    url_hash: str
    source: Source
    added_at: Optional[datetime] = None
    last_scraped_at: Optional[datetime] = None


class ReviewItem(DocumentModel):
    """A single review embedded in a batch. Facebook reviews may be unrated."""
    review_id: Optional[str] = None
    author: str
    content: str = ""
    rating: Optional[float] = Field(None, ge=0, le=5)
    posted_at: str = ""
    profile_picture: Optional[str] = None
    recommendation_status: Optional[str] = None
    user_profile: Optional[str] = None
    scraped_at: Optional[datetime] = None

    @property
    def is_recommended(self) -> bool:
        return self.recommendation_status == "recommended"


class ReviewBatch(DocumentModel):
    id: str
    business_url_id: str
    url_hash: str
    url: str
    source: Source
    reviews: list[ReviewItem] = Field(default_factory=list)
    last_scraped_at: Optional[datetime] = None


class LatestReview(ReviewItem):
    """A review tagged with the listing it came from (dashboard feed)."""
    business_name: str
    source: Source
    business_url: str


# ── Widget settings (tagged union keyed by layout) ─────────────────

class DisplayToggles(DocumentModel):
    theme_color: str = DEFAULT_THEME_COLOR
    show_ratings: bool = True
    show_dates: bool = True
    show_profile_pictures: bool = True


class GridSettings(DisplayToggles):
    layout: Literal["grid"] = "grid"


class CarouselSettings(DisplayToggles):
    layout: Literal["carousel"] = "carousel"


class ListSettings(DisplayToggles):
    layout: Literal["list"] = "list"


class MasonrySettings(DisplayToggles):
    layout: Literal["masonry"] = "masonry"


class BadgeSettings(DocumentModel):
    """Aggregate-only badge: no per-review cards, so no date/avatar toggles."""
    layout: Literal["badge"] = "badge"
    theme_color: str = DEFAULT_THEME_COLOR
    show_ratings: bool = True


WidgetSettings = Annotated[
    Union[GridSettings, CarouselSettings, ListSettings, MasonrySettings, BadgeSettings],
    Field(discriminator="layout"),
]

SETTINGS_BY_LAYOUT = {
    Layout.GRID: GridSettings,
    Layout.CAROUSEL: CarouselSettings,
    Layout.LIST: ListSettings,
    Layout.MASONRY: MasonrySettings,
    Layout.BADGE: BadgeSettings,
}


def build_settings(layout: Layout, values: dict[str, Any]):
    """
    Build the settings variant for ``layout`` from a flat dict of values.
    Keys the variant does not use are dropped; missing toggles default to True.
    """
    model = SETTINGS_BY_LAYOUT[Layout(layout)]
    known = {k: v for k, v in values.items() if k in model.model_fields and k != "layout"}
    return model(**known)


class WidgetConfig(DocumentModel):
    """Everything the layout renderer needs, saved or not."""
    settings: WidgetSettings
    min_rating: float = 0
    max_reviews: int = DEFAULT_MAX_REVIEWS
    business_name: str = "Business Name"
    source: Source = Source.GOOGLE
    business_url: Optional[str] = None

    @property
    def layout(self) -> Layout:
        return Layout(self.settings.layout)


class Widget(DocumentModel):
    id: str
    user_id: str
    business_url_id: str
    name: str
    type: Layout
    max_reviews: int = DEFAULT_MAX_REVIEWS
    min_rating: float = 0
    settings: WidgetSettings
    views: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: dict):
        # Older documents stored free-form settings without the tag
        settings = dict(doc.get("settings") or {})
        settings.setdefault("layout", doc.get("type", Layout.LIST.value))
        return super().from_document({**doc, "settings": settings})

    def config(self, business_url: Optional[BusinessUrl] = None) -> WidgetConfig:
        extra = {}
        if business_url is not None:
            extra = {
                "business_name": business_url.name,
                "source": business_url.source,
                "business_url": business_url.url,
            }
        return WidgetConfig(
            settings=self.settings,
            min_rating=self.min_rating,
            max_reviews=self.max_reviews,
            **extra,
        )
