"""
Payload validation.

Every validator reports all failing fields at once as a ``ValidationFailed``
with ``{path, message}`` entries keyed by the camelCase field name.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Type, TypeVar

from pydantic import BaseModel, EmailStr, StrictBool, StrictFloat, StrictInt, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from .errors import FieldError, ValidationFailed
from .models import (
    DEFAULT_MAX_REVIEWS,
    MAX_REVIEWS_LIMIT,
    BusinessUrl,
    DocumentModel,
    Layout,
    Source,
    Widget,
    build_settings,
)

SETTINGS_FIELDS = ("layout", "theme_color", "show_ratings", "show_dates", "show_profile_pictures")

HEX_COLOR = re.compile(r"#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})")
HTTP_URL = re.compile(r"https?://\S+", re.IGNORECASE)
USERNAME = re.compile(r"[A-Za-z0-9_.-]+")

M = TypeVar("M", bound=BaseModel)


def _field_errors(exc: ValidationError) -> List[FieldError]:
    errors = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err["loc"]) or "body"
        errors.append(FieldError(path=path, message=err["msg"]))
    return errors


def _require_object(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationFailed([FieldError("body", "Request body must be a JSON object.")])
    return payload


def parse_payload(model: Type[M], payload: Any) -> M:
    """Validate ``payload`` against ``model``, collecting every field error."""
    try:
        return model.model_validate(_require_object(payload))
    except ValidationError as exc:
        raise ValidationFailed(_field_errors(exc)) from None


# ── Auth ───────────────────────────────────────────────────────────

class SignupPayload(DocumentModel):
    email: EmailStr
    password: str
    username: Optional[str] = None
    full_name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("password")
    @classmethod
    def _password_length(cls, value: str) -> str:
        if len(value) < 8:
            raise PydanticCustomError("password_too_short", "Password must be at least 8 characters long.")
        return value

    @field_validator("username")
    @classmethod
    def _username_format(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if len(value) < 3 or not USERNAME.fullmatch(value):
            raise PydanticCustomError(
                "username_invalid",
                "Username must be at least 3 characters: letters, digits, '.', '_' or '-'.",
            )
        return value

    @field_validator("full_name")
    @classmethod
    def _strip_full_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @property
    def resolved_username(self) -> str:
        return self.username or self.email.split("@", 1)[0]


# ── Business URLs ──────────────────────────────────────────────────

class BusinessUrlPayload(DocumentModel):
    name: str
    url: str
    source: Source

    @field_validator("name")
    @classmethod
    def _name_present(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise PydanticCustomError("name_required", "Business name is required.")
        return value

    @field_validator("url")
    @classmethod
    def _url_format(cls, value: str) -> str:
        value = value.strip()
        if not HTTP_URL.fullmatch(value):
            raise PydanticCustomError("url_invalid", "Please enter a valid http(s) URL.")
        return value


# ── Widgets ────────────────────────────────────────────────────────

class WidgetChanges(DocumentModel):
    """Partial widget edit; ``None`` means the field was not sent."""

    name: Optional[str] = None
    business_url_id: Optional[str] = None
    theme_color: Optional[str] = None
    layout: Optional[Layout] = None
    min_rating: Optional[StrictFloat] = None
    max_reviews: Optional[StrictInt] = None
    show_ratings: Optional[StrictBool] = None
    show_dates: Optional[StrictBool] = None
    show_profile_pictures: Optional[StrictBool] = None

    @field_validator("name")
    @classmethod
    def _name_length(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if len(value) < 2:
            raise PydanticCustomError("name_too_short", "Widget name must be at least 2 characters long.")
        return value

    @field_validator("business_url_id")
    @classmethod
    def _business_url_present(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise PydanticCustomError("business_url_required", "Please select a business source.")
        return value

    @field_validator("theme_color")
    @classmethod
    def _hex_color(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not HEX_COLOR.fullmatch(value):
            raise PydanticCustomError("theme_color_invalid", "Theme color must be a hex color like #RGB or #RRGGBB.")
        return value

    @field_validator("min_rating")
    @classmethod
    def _rating_range(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not 0 <= value <= 5:
            raise PydanticCustomError("min_rating_range", "Rating must be between 0 and 5.")
        return value

    @field_validator("max_reviews")
    @classmethod
    def _max_reviews_range(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not 1 <= value <= MAX_REVIEWS_LIMIT:
            raise PydanticCustomError(
                "max_reviews_range",
                "Max reviews must be between 1 and {limit}.",
                {"limit": MAX_REVIEWS_LIMIT},
            )
        return value

    def values(self) -> dict:
        return self.model_dump(exclude_none=True)

    def apply_to(self, widget: Widget) -> dict:
        """
        Turn this edit into field updates for ``widget``. Settings are rebuilt
        for the resulting layout so a layout change keeps the shared fields.
        """
        values = self.values()
        updates = {k: values[k] for k in ("name", "business_url_id", "min_rating", "max_reviews") if k in values}
        changed = {k: values[k] for k in SETTINGS_FIELDS if k in values}
        if changed:
            merged = {**widget.settings.model_dump(), **changed}
            updates["settings"] = build_settings(merged["layout"], merged)
        return updates


class WidgetPayload(WidgetChanges):
    """Full widget configuration. There is no default layout."""

    name: str
    business_url_id: str
    theme_color: str
    layout: Layout
    min_rating: StrictFloat
    max_reviews: StrictInt = DEFAULT_MAX_REVIEWS
    show_ratings: StrictBool = True
    show_dates: StrictBool = True
    show_profile_pictures: StrictBool = True

    def settings(self):
        return build_settings(self.layout, self.model_dump())


@dataclass
class ValidatedWidget:
    payload: WidgetChanges
    business_url: Optional[BusinessUrl] = None


def validate_widget_payload(
    payload: Any,
    *,
    user_id: str,
    find_business_url: Callable[[str], Optional[BusinessUrl]],
    partial: bool = False,
) -> ValidatedWidget:
    """
    Validate a widget create (or, with ``partial``, edit) payload.

    ``businessUrlId`` must resolve to a listing owned by ``user_id``; the
    error does not say whether the listing is missing or someone else's.
    """
    payload = _require_object(payload)
    model = WidgetChanges if partial else WidgetPayload

    errors: List[FieldError] = []
    parsed = None
    try:
        parsed = model.model_validate(payload)
    except ValidationError as exc:
        errors.extend(_field_errors(exc))

    business_url = None
    raw_id = payload.get("businessUrlId", payload.get("business_url_id"))
    if "businessUrlId" not in {e.path for e in errors} and isinstance(raw_id, str) and raw_id.strip():
        business_url = find_business_url(raw_id.strip())
        if business_url is None or business_url.user_id != user_id:
            business_url = None
            errors.append(FieldError("businessUrlId", "Selected business source was not found."))

    if errors:
        raise ValidationFailed(errors)
    return ValidatedWidget(payload=parsed, business_url=business_url)
