"""
Public embed pages - HTML for the iframe route and the loader script.

Everything user-supplied (review text, names, URLs) goes through
``html.escape`` before it reaches the markup.
"""

import html
import json

from ..domain.embed import EMBED_PATH
from ..domain.layouts import RenderedWidget, ReviewCard
from ..domain.models import Layout

# ══════════════════════════════════════════════════════════════════
#  WIDGET CSS — shared by every layout
# ══════════════════════════════════════════════════════════════════

WIDGET_CSS = """
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body {
        font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif;
        color: #1f2937;
        background: transparent;
        padding: 16px;
    }
    .rh-header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 20px; }
    .rh-business { font-weight: 600; font-size: 16px; }
    .rh-average { font-size: 13px; color: #6b7280; }
    .rh-source { font-size: 12px; color: var(--widget-theme-color); font-weight: 600; }

    .rh-card {
        background: #fff;
        border: 1px solid #e5e7eb;
        border-radius: 10px;
        padding: 16px;
        break-inside: avoid;
    }
    .rh-author { display: flex; align-items: center; gap: 10px; margin-bottom: 8px; }
    .rh-avatar { width: 36px; height: 36px; border-radius: 50%; object-fit: cover; background: #e5e7eb; }
    .rh-name { font-weight: 600; font-size: 14px; }
    .rh-date { font-size: 12px; color: #6b7280; }
    .rh-stars { color: #f59e0b; font-size: 14px; margin-bottom: 6px; }
    .rh-recommended { color: #16a34a; font-size: 12px; font-weight: 500; margin-bottom: 6px; }
    .rh-no-rating { color: #9ca3af; font-size: 12px; margin-bottom: 6px; }
    .rh-content { font-size: 14px; line-height: 1.5; }

    .rh-grid { display: grid; grid-template-columns: 1fr; gap: 16px; }
    @media (min-width: 768px) { .rh-grid { grid-template-columns: repeat(2, 1fr); } }
    @media (min-width: 1024px) { .rh-grid { grid-template-columns: repeat(3, 1fr); } }

    .rh-list { display: flex; flex-direction: column; gap: 16px; }

    .rh-masonry { display: flex; gap: 16px; align-items: flex-start; }
    .rh-masonry-col { flex: 1; display: flex; flex-direction: column; gap: 16px; }
    @media (max-width: 767px) { .rh-masonry { flex-direction: column; } }

    .rh-carousel { position: relative; padding: 0 40px; }
    .rh-track { overflow: hidden; }
    .rh-slides { display: flex; transition: transform 0.3s ease; }
    .rh-slide { flex: 0 0 100%; padding: 0 8px; }
    .rh-nav {
        position: absolute; top: 50%; transform: translateY(-50%);
        width: 32px; height: 32px; border-radius: 50%;
        border: 1px solid #e5e7eb; background: #fff; cursor: pointer;
    }
    .rh-prev { left: 0; }
    .rh-next { right: 0; }

    .rh-badge {
        max-width: 320px; margin: 0 auto; border: 2px solid var(--widget-theme-color);
        border-radius: 10px; overflow: hidden; text-align: center;
    }
    .rh-badge-top { background: var(--widget-theme-color); color: #fff; padding: 10px 14px;
        display: flex; justify-content: space-between; font-size: 13px; font-weight: 600; }
    .rh-badge-top a { color: #fff; }
    .rh-badge-body { padding: 16px; }
    .rh-badge-score { font-size: 28px; font-weight: 700; color: var(--widget-theme-color); }
    .rh-badge-count { font-size: 13px; font-weight: 600; margin-top: 6px; }
    .rh-empty { text-align: center; color: #6b7280; font-size: 14px; padding: 24px; }
"""


def _e(value) -> str:
    return html.escape(str(value), quote=True)


def _stars(count: float) -> str:
    full = min(5, int(count + 0.5))
    return "★" * full + "☆" * (5 - full)


def render_card(card: ReviewCard) -> str:
    avatar = ""
    if card.avatar is not None:
        if card.avatar.url:
            avatar = f'<img class="rh-avatar" src="{_e(card.avatar.url)}" alt="{_e(card.avatar.alt)}">'
        else:
            avatar = '<div class="rh-avatar"></div>'

    date = f'<div class="rh-date">{_e(card.posted_at)}</div>' if card.posted_at else ""

    rating = ""
    if card.rating is not None:
        if card.rating.kind == "stars":
            rating = f'<div class="rh-stars" title="{_e(card.rating.label)}">{_stars(card.rating.value)}</div>'
        elif card.rating.kind == "recommended":
            rating = f'<div class="rh-recommended">👍 {_e(card.rating.label)}</div>'
        else:
            rating = f'<div class="rh-no-rating">{_e(card.rating.label)}</div>'

    return f"""
        <div class="rh-card">
            <div class="rh-author">{avatar}<div><div class="rh-name">{_e(card.author)}</div>{date}</div></div>
            {rating}
            <p class="rh-content">{_e(card.content)}</p>
        </div>"""


def _render_body(rendered: RenderedWidget) -> str:
    if rendered.layout is Layout.BADGE:
        badge = rendered.badge
        link = f'<a href="{_e(badge.business_url)}" target="_blank" rel="noopener noreferrer">View</a>' if badge.business_url else ""
        stars = f'<div class="rh-stars">{_stars(badge.stars)}</div>' if badge.stars is not None else ""
        return f"""
        <div class="rh-badge">
            <div class="rh-badge-top"><span>{_e(badge.source_label)}</span>{link}</div>
            <div class="rh-badge-body">
                <div class="rh-business">{_e(rendered.header.business_name)}</div>
                <div class="rh-badge-score">{_e(badge.display_rating)}</div>
                {stars}
                <div class="rh-badge-count">{_e(badge.review_label)}</div>
            </div>
        </div>"""

    if not rendered.cards:
        return '<div class="rh-empty">No reviews yet.</div>'

    if rendered.layout is Layout.MASONRY:
        columns = "".join(
            f'<div class="rh-masonry-col">{"".join(render_card(c) for c in column)}</div>'
            for column in rendered.column_cards
        )
        return f'<div class="rh-masonry">{columns}</div>'

    if rendered.layout is Layout.CAROUSEL:
        slides = "".join(
            f'<div class="rh-slide" data-index="{slide.index}">{render_card(slide.card)}</div>'
            for slide in rendered.slides
        )
        return f"""
        <div class="rh-carousel">
            <button class="rh-nav rh-prev" aria-label="Previous review" onclick="rhMove(-1)">‹</button>
            <div class="rh-track"><div class="rh-slides" id="rh-slides">{slides}</div></div>
            <button class="rh-nav rh-next" aria-label="Next review" onclick="rhMove(1)">›</button>
        </div>
        <script>
            var rhIndex = 0, rhCount = {len(rendered.slides)};
            function rhMove(step) {{
                rhIndex = Math.max(0, Math.min(rhCount - 1, rhIndex + step));
                document.getElementById('rh-slides').style.transform = 'translateX(' + (-100 * rhIndex) + '%)';
            }}
        </script>"""

    css_class = "rh-list" if rendered.layout is Layout.LIST else "rh-grid"
    return f'<div class="{css_class}">{"".join(render_card(c) for c in rendered.cards)}</div>'


def render_widget_page(rendered: RenderedWidget, title: str = "Reviews") -> str:
    header = rendered.header
    header_html = ""
    if rendered.layout is not Layout.BADGE:
        header_html = f"""
        <div class="rh-header">
            <div>
                <div class="rh-business">{_e(header.business_name)}</div>
                <div class="rh-average">{_e(header.display_rating)} out of 5 &middot; Based on {header.review_count} reviews</div>
            </div>
            <div class="rh-source">{_e(header.source_label)}</div>
        </div>"""

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{_e(title)}</title>
    <style>{WIDGET_CSS}</style>
</head>
<body style="--widget-theme-color: {_e(rendered.theme_color)};">
    {header_html}
    {_render_body(rendered)}
</body>
</html>"""


def render_missing_widget_page() -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>Widget not found</title><style>{WIDGET_CSS}</style></head>
<body><div class="rh-empty">This review widget is no longer available.</div></body>
</html>"""


def loader_script(base_url: str) -> str:
    """JavaScript served at /widget.js; exposes window.ReviewHub.initWidget."""
    embed_template = base_url.rstrip("/") + EMBED_PATH.format(widget_id="__ID__")
    return f"""(function() {{
  if (window.ReviewHub && window.ReviewHub.initWidget) {{ return; }}
  var EMBED_URL = {json.dumps(embed_template)};
  function initWidget(options) {{
    options = options || {{}};
    var container = document.getElementById(options.containerId);
    if (!container || !options.widgetId) {{
      console.warn('ReviewHub: missing container or widget id.');
      return null;
    }}
    var frame = document.createElement('iframe');
    frame.src = EMBED_URL.replace('__ID__', encodeURIComponent(options.widgetId));
    frame.title = options.title || 'Review Widget';
    frame.loading = 'lazy';
    frame.style.width = '100%';
    frame.style.minHeight = '400px';
    frame.style.border = 'none';
    container.innerHTML = '';
    container.appendChild(frame);
    return frame;
  }}
  window.ReviewHub = {{ initWidget: initWidget }};
}})();
"""
