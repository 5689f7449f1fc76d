import pytest

from reviewhub.domain.errors import ValidationFailed
from reviewhub.domain.models import BadgeSettings, BusinessUrl, GridSettings, Source, Widget
from reviewhub.domain.validation import (
    BusinessUrlPayload,
    SignupPayload,
    parse_payload,
    validate_widget_payload,
)

OWNER = "owner-1"

LISTING = BusinessUrl(
    id="listing-1",
    user_id=OWNER,
    name="Corner Cafe",
    url="https://maps.google.com/?cid=1",
    url_hash="abc",
    source=Source.GOOGLE,
)


def find_listing(listing_id):
    return LISTING if listing_id == LISTING.id else None


def _validate(payload, **kwargs):
    kwargs.setdefault("user_id", OWNER)
    return validate_widget_payload(payload, find_business_url=find_listing, **kwargs)


def _valid_payload(**overrides):
    payload = {
        "name": "Homepage",
        "businessUrlId": LISTING.id,
        "themeColor": "#3182CE",
        "layout": "masonry",
        "minRating": 3,
    }
    payload.update(overrides)
    return payload


def test_valid_widget_payload():
    validated = _validate(_valid_payload())
    assert validated.business_url is LISTING
    settings = validated.payload.settings()
    assert settings.layout == "masonry"
    assert settings.show_dates is True
    assert validated.payload.max_reviews == 10


def test_empty_payload_lists_every_required_field():
    with pytest.raises(ValidationFailed) as exc_info:
        _validate({})
    assert set(exc_info.value.paths) == {"name", "businessUrlId", "themeColor", "layout", "minRating"}


def test_all_invalid_fields_reported_together():
    payload = _valid_payload(name="x", themeColor="blue", minRating=7, maxReviews=0)
    with pytest.raises(ValidationFailed) as exc_info:
        _validate(payload)

    errors = {e.path: e.message for e in exc_info.value.errors}
    assert errors["name"] == "Widget name must be at least 2 characters long."
    assert errors["themeColor"] == "Theme color must be a hex color like #RGB or #RRGGBB."
    assert errors["minRating"] == "Rating must be between 0 and 5."
    assert errors["maxReviews"] == "Max reviews must be between 1 and 50."


def test_layout_is_required_and_checked():
    payload = _valid_payload()
    del payload["layout"]
    with pytest.raises(ValidationFailed) as exc_info:
        _validate(payload)
    assert exc_info.value.paths == ["layout"]

    with pytest.raises(ValidationFailed) as exc_info:
        _validate(_valid_payload(layout="spiral"))
    assert exc_info.value.paths == ["layout"]


@pytest.mark.parametrize("color", ["#3182CE\n", "#3182CE ", "x#3182CE", "#3182CEFF"])
def test_theme_color_must_be_exact_hex(color):
    with pytest.raises(ValidationFailed) as exc_info:
        _validate(_valid_payload(themeColor=color))
    assert exc_info.value.paths == ["themeColor"]


@pytest.mark.parametrize("field, value", [
    ("minRating", True),
    ("minRating", "4"),
    ("maxReviews", "7"),
    ("maxReviews", 7.5),
    ("showRatings", "yes"),
    ("showDates", 1),
    ("showProfilePictures", "false"),
])
def test_wrong_json_types_are_not_coerced(field, value):
    with pytest.raises(ValidationFailed) as exc_info:
        _validate(_valid_payload(**{field: value}))
    assert exc_info.value.paths == [field]

    with pytest.raises(ValidationFailed) as exc_info:
        _validate({field: value}, partial=True)
    assert exc_info.value.paths == [field]


def test_integer_min_rating_accepted():
    assert _validate(_valid_payload(minRating=4)).payload.min_rating == 4


def test_url_with_trailing_newline_inside_rejected():
    with pytest.raises(ValidationFailed) as exc_info:
        parse_payload(BusinessUrlPayload, {"name": "Cafe", "url": "https://fb.com/cafe\nextra", "source": "facebook"})
    assert exc_info.value.paths == ["url"]


def test_short_hex_color_accepted():
    assert _validate(_valid_payload(themeColor="#abc")).payload.theme_color == "#abc"


@pytest.mark.parametrize("user_id, listing_id", [("someone-else", LISTING.id), (OWNER, "missing")])
def test_foreign_or_missing_listing_is_a_field_error(user_id, listing_id):
    with pytest.raises(ValidationFailed) as exc_info:
        _validate(_valid_payload(businessUrlId=listing_id), user_id=user_id)
    assert exc_info.value.errors[0].path == "businessUrlId"
    assert exc_info.value.errors[0].message == "Selected business source was not found."


def test_non_object_body_rejected():
    with pytest.raises(ValidationFailed) as exc_info:
        _validate(["not", "an", "object"])
    assert exc_info.value.paths == ["body"]


def test_partial_edit_accepts_subset():
    validated = _validate({"name": "Renamed"}, partial=True)
    assert validated.business_url is None
    assert validated.payload.values() == {"name": "Renamed"}


def test_partial_edit_rebuilds_settings_for_new_layout():
    widget = Widget(
        id="w1",
        user_id=OWNER,
        business_url_id=LISTING.id,
        name="Homepage",
        type="grid",
        settings=GridSettings(theme_color="#112233", show_dates=False),
    )
    changes = _validate({"layout": "badge", "maxReviews": 5}, partial=True).payload

    updates = changes.apply_to(widget)

    assert updates["max_reviews"] == 5
    assert isinstance(updates["settings"], BadgeSettings)
    assert updates["settings"].theme_color == "#112233"


def test_partial_edit_without_settings_changes():
    widget = Widget(
        id="w1", user_id=OWNER, business_url_id=LISTING.id, name="Homepage",
        type="grid", settings=GridSettings(),
    )
    updates = _validate({"minRating": 4}, partial=True).payload.apply_to(widget)
    assert updates == {"min_rating": 4}


def test_signup_payload_defaults_username_to_email_local_part():
    data = parse_payload(SignupPayload, {"email": "Jane.Doe@Example.com", "password": "longenough"})
    assert data.email == "jane.doe@example.com"
    assert data.resolved_username == "jane.doe"


def test_signup_payload_errors():
    with pytest.raises(ValidationFailed) as exc_info:
        parse_payload(SignupPayload, {"email": "not-an-email", "password": "short"})
    errors = {e.path: e.message for e in exc_info.value.errors}
    assert set(errors) == {"email", "password"}
    assert errors["password"] == "Password must be at least 8 characters long."


def test_business_url_payload():
    data = parse_payload(BusinessUrlPayload, {"name": " Cafe ", "url": "https://fb.com/cafe", "source": "facebook"})
    assert data.name == "Cafe"
    assert data.source is Source.FACEBOOK

    with pytest.raises(ValidationFailed) as exc_info:
        parse_payload(BusinessUrlPayload, {"name": " ", "url": "ftp://x", "source": "yelp"})
    assert set(exc_info.value.paths) == {"name", "url", "source"}
