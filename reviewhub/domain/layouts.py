"""
Layout renderer - widget configuration + reviews -> renderable structure.

``render_widget`` is pure and deterministic. The result is plain data that
the iframe page (``reviewhub.web.pages``) and the public JSON endpoint share.

Variants:
- grid:     up to 6 cards, 1-3 responsive columns
- carousel: up to 10 cards, one slide each, manual prev/next
- list:     up to 6 cards, single column
- masonry:  up to 9 cards, balanced over 3 columns
- badge:    aggregate only (rounded average + total count)
"""

from typing import List, Literal, Optional, Sequence

from pydantic import Field

from .models import DocumentModel, Layout, ReviewItem, Source, WidgetConfig
from .reviews import average_rating, filter_reviews

LAYOUT_LIMITS = {
    Layout.GRID: 6,
    Layout.CAROUSEL: 10,
    Layout.LIST: 6,
    Layout.MASONRY: 9,
    Layout.BADGE: 0,
}

RESPONSIVE_COLUMNS = {"sm": 1, "md": 2, "lg": 3}
SINGLE_COLUMN = {"sm": 1, "md": 1, "lg": 1}
MASONRY_COLUMNS = 3


class RatingDisplay(DocumentModel):
    kind: Literal["stars", "recommended", "none"]
    value: Optional[float] = None
    label: str


class Avatar(DocumentModel):
    url: Optional[str] = None   # None -> placeholder icon
    alt: str


class ReviewCard(DocumentModel):
    author: str
    content: str
    posted_at: Optional[str] = None
    avatar: Optional[Avatar] = None
    rating: Optional[RatingDisplay] = None


class Slide(DocumentModel):
    index: int
    card: ReviewCard


class WidgetHeader(DocumentModel):
    business_name: str
    source: Source
    source_label: str
    average_rating: float
    display_rating: str
    review_count: int


class BadgeSummary(DocumentModel):
    average_rating: float
    display_rating: str
    stars: Optional[int] = None
    review_count: int
    review_label: str
    source_label: str
    business_url: Optional[str] = None


class RenderedWidget(DocumentModel):
    layout: Layout
    theme_color: str
    header: WidgetHeader
    cards: List[ReviewCard] = Field(default_factory=list)
    columns: dict = Field(default_factory=dict)
    column_cards: List[List[ReviewCard]] = Field(default_factory=list)
    slides: List[Slide] = Field(default_factory=list)
    manual_navigation: bool = False
    badge: Optional[BadgeSummary] = None


def format_rating(value: float) -> str:
    return f"{value:.1f}"


def rating_display(review: ReviewItem) -> RatingDisplay:
    """Stars when rated, else a recommendation badge, else "No Rating"."""
    if review.rating is not None:
        return RatingDisplay(kind="stars", value=review.rating, label=f"{format_rating(review.rating)} out of 5")
    if review.is_recommended:
        return RatingDisplay(kind="recommended", label="Recommended")
    return RatingDisplay(kind="none", label="No Rating")


def review_card(review: ReviewItem, settings) -> ReviewCard:
    show_dates = getattr(settings, "show_dates", True)
    show_pictures = getattr(settings, "show_profile_pictures", True)
    return ReviewCard(
        author=review.author,
        content=review.content,
        posted_at=review.posted_at if show_dates else None,
        avatar=Avatar(url=review.profile_picture, alt=review.author) if show_pictures else None,
        rating=rating_display(review) if settings.show_ratings else None,
    )


def _card_height(card: ReviewCard) -> int:
    # Rough line count: header + rating + wrapped content
    height = 2 + (1 if card.rating else 0)
    return height + max(1, len(card.content) // 60 + 1)


def balance_columns(cards: Sequence[ReviewCard], count: int = MASONRY_COLUMNS) -> List[List[ReviewCard]]:
    """Greedy shortest-column placement; ties go to the leftmost column."""
    columns: List[List[ReviewCard]] = [[] for _ in range(count)]
    heights = [0] * count
    for card in cards:
        target = heights.index(min(heights))
        columns[target].append(card)
        heights[target] += _card_height(card)
    return columns


def _badge_summary(config: WidgetConfig, avg: float, count: int) -> BadgeSummary:
    return BadgeSummary(
        average_rating=round(avg, 2),
        display_rating=format_rating(avg),
        stars=min(5, int(avg + 0.5)) if config.settings.show_ratings else None,
        review_count=count,
        review_label=f"Based on {count} {'review' if count == 1 else 'reviews'}",
        source_label=f"{config.source.label} Rating",
        business_url=config.business_url,
    )


def render_widget(config: WidgetConfig, reviews: Sequence[ReviewItem]) -> RenderedWidget:
    filtered = filter_reviews(reviews, config.min_rating)
    avg = average_rating(filtered)
    layout = config.layout

    rendered = RenderedWidget(
        layout=layout,
        theme_color=config.settings.theme_color,
        header=WidgetHeader(
            business_name=config.business_name,
            source=config.source,
            source_label=config.source.label,
            average_rating=round(avg, 2),
            display_rating=format_rating(avg),
            review_count=len(filtered),
        ),
    )

    if layout is Layout.BADGE:
        rendered.badge = _badge_summary(config, avg, len(filtered))
        return rendered

    limit = min(LAYOUT_LIMITS[layout], config.max_reviews)
    cards = [review_card(r, config.settings) for r in filtered[:limit]]
    rendered.cards = cards

    if layout is Layout.GRID:
        rendered.columns = dict(RESPONSIVE_COLUMNS)
    elif layout is Layout.LIST:
        rendered.columns = dict(SINGLE_COLUMN)
    elif layout is Layout.MASONRY:
        rendered.columns = dict(RESPONSIVE_COLUMNS)
        rendered.column_cards = balance_columns(cards)
    elif layout is Layout.CAROUSEL:
        rendered.slides = [Slide(index=i, card=card) for i, card in enumerate(cards)]
        rendered.manual_navigation = True

    return rendered
