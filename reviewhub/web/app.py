"""
FastAPI Web Application - ReviewHub API
=======================================

JSON API for business owners (listings, reviews, widgets, dashboard) plus
the public embed surface (loader script, iframe page, public widget JSON).
Every owner-facing handler receives an explicit AuthContext.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Form, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pymongo.errors import PyMongoError

from ..domain.embed import EmbedCode
from ..domain.errors import (
    AuthenticationRequired,
    Conflict,
    FieldError,
    NotFound,
    PermissionDenied,
    ReviewHubError,
    UpstreamFailure,
    ValidationFailed,
)
from ..domain.layouts import RenderedWidget, render_widget
from ..domain.models import BusinessUrl, Widget, WidgetConfig
from ..domain.reviews import summarize_batch
from ..domain.validation import (
    BusinessUrlPayload,
    SignupPayload,
    parse_payload,
    validate_widget_payload,
)
from ..infrastructure.config import Settings, get_settings
from ..infrastructure.persistence import Database, connect
from ..infrastructure.scraper import ApifyReviewProvider, ReviewProvider, ScraperError
from .auth import (
    AuthContext,
    clear_session_cookie,
    create_session_token,
    get_auth_context,
    hash_password,
    set_session_cookie,
    verify_password,
)
from .pages import loader_script, render_missing_widget_page, render_widget_page

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An unexpected server error occurred."

router = APIRouter()


# ── Dependencies ───────────────────────────────────────────────────

def get_database(request: Request) -> Database:
    return request.app.state.db


def get_scraper(request: Request) -> ReviewProvider:
    return request.app.state.scraper


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# ── Ownership helpers ──────────────────────────────────────────────

def _owned_business_url(db: Database, auth: AuthContext, business_url_id: str) -> BusinessUrl:
    business_url = db.get_business_url(business_url_id)
    if business_url is None:
        raise NotFound("Business URL not found.")
    if not auth.owns(business_url.user_id):
        logger.warning(f"User {auth.user_id} denied access to listing {business_url_id}")
        raise PermissionDenied()
    return business_url


def _owned_widget(db: Database, auth: AuthContext, widget_id: str) -> Widget:
    widget = db.get_widget(widget_id)
    if widget is None:
        raise NotFound("Widget not found.")
    if not auth.owns(widget.user_id):
        logger.warning(f"User {auth.user_id} denied access to widget {widget_id}")
        raise PermissionDenied()
    return widget


def _business_url_summary(business_url: BusinessUrl) -> dict:
    return {
        "id": business_url.id,
        "name": business_url.name,
        "url": business_url.url,
        "source": business_url.source.value,
    }


def _widget_json(widget: Widget, business_url: Optional[BusinessUrl] = None) -> dict:
    data = widget.to_json()
    data["businessUrl"] = _business_url_summary(business_url) if business_url else None
    return data


def _render_saved_widget(db: Database, widget: Widget) -> RenderedWidget:
    business_url = db.get_business_url(widget.business_url_id)
    reviews = []
    if business_url is not None:
        batch = db.get_review_batch(business_url.id, business_url.source)
        reviews = batch.reviews if batch else []
    return render_widget(widget.config(business_url), reviews)


# ── Auth routes ────────────────────────────────────────────────────

@router.post("/auth/signup", status_code=201)
def signup(
    payload: Any = Body(None),
    db: Database = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
):
    data = parse_payload(SignupPayload, payload)
    if db.get_user_by_email(data.email):
        raise Conflict("An account with this email already exists.")

    user = db.create_user(
        email=data.email,
        username=data.resolved_username,
        password_hash=hash_password(data.password),
        full_name=data.full_name,
    )
    response = JSONResponse({"user": user.public_json()}, status_code=201)
    set_session_cookie(response, create_session_token(user, settings.auth), settings.auth)
    return response


@router.post("/auth/login")
def login(
    email: str = Form(...),
    password: str = Form(...),
    db: Database = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
):
    user = db.get_user_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info(f"Failed login for {email.strip().lower()}")
        raise AuthenticationRequired("Invalid email or password.")

    response = JSONResponse({"user": user.public_json()})
    set_session_cookie(response, create_session_token(user, settings.auth), settings.auth)
    return response


@router.post("/auth/logout")
def logout(settings: Settings = Depends(get_app_settings)):
    response = JSONResponse({"message": "Logged out."})
    clear_session_cookie(response, settings.auth)
    return response


@router.get("/auth/me")
def me(auth: AuthContext = Depends(get_auth_context)):
    return {"user": auth.to_json()}


# ── Business URLs ──────────────────────────────────────────────────

@router.get("/business-urls")
def list_business_urls(
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    return [b.to_json() for b in db.list_business_urls(auth.user_id)]


@router.post("/business-urls", status_code=201)
def create_business_url(
    payload: Any = Body(None),
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    data = parse_payload(BusinessUrlPayload, payload)
    business_url = db.create_business_url(auth.user_id, data.name, data.url, data.source)
    return business_url.to_json()


@router.get("/business-urls/{business_url_id}/reviews")
def list_reviews(
    business_url_id: str,
    limit: int = Query(10, ge=1, le=500),
    offset: int = Query(0, ge=0),
    min_rating: Optional[float] = Query(None, ge=0, le=5, alias="minRating"),
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    business_url = _owned_business_url(db, auth, business_url_id)
    batch = db.get_review_batch(business_url.id, business_url.source)
    return summarize_batch(batch, min_rating=min_rating, offset=offset, limit=limit).to_json()


@router.post("/business-urls/{business_url_id}/scrape")
def scrape_business_url(
    business_url_id: str,
    max_reviews: Optional[int] = Query(None, ge=1, le=1000, alias="maxReviews"),
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
    scraper: ReviewProvider = Depends(get_scraper),
    settings: Settings = Depends(get_app_settings),
):
    business_url = _owned_business_url(db, auth, business_url_id)
    max_reviews = max_reviews or settings.scraper.default_max_reviews

    try:
        reviews = scraper.scrape(business_url, max_reviews)
    except ScraperError as e:
        logger.warning(f"Scrape failed for listing {business_url.id}: {e}")
        raise UpstreamFailure(str(e) or None)

    batch = db.replace_reviews(business_url, reviews)
    db.mark_scraped(business_url.id)
    return {
        "success": True,
        "message": f"Scraped {len(batch.reviews)} reviews.",
        "reviewCount": len(batch.reviews),
        "lastScrapedAt": batch.last_scraped_at.isoformat() if batch.last_scraped_at else None,
    }


# ── Widgets ────────────────────────────────────────────────────────

@router.get("/widgets")
def list_widgets(
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    listings = {b.id: b for b in db.list_business_urls(auth.user_id)}
    widgets = db.list_widgets(auth.user_id)
    return {"widgets": [_widget_json(w, listings.get(w.business_url_id)) for w in widgets]}


@router.post("/widgets", status_code=201)
def create_widget(
    payload: Any = Body(None),
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    validated = validate_widget_payload(payload, user_id=auth.user_id, find_business_url=db.get_business_url)
    data = validated.payload
    widget = db.create_widget(
        user_id=auth.user_id,
        business_url_id=validated.business_url.id,
        name=data.name,
        settings=data.settings(),
        min_rating=data.min_rating,
        max_reviews=data.max_reviews,
    )
    return _widget_json(widget, validated.business_url)


@router.post("/widgets/preview")
def preview_unsaved_widget(
    payload: Any = Body(None),
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    validated = validate_widget_payload(payload, user_id=auth.user_id, find_business_url=db.get_business_url)
    data = validated.payload
    business_url = validated.business_url
    batch = db.get_review_batch(business_url.id, business_url.source)
    config = WidgetConfig(
        settings=data.settings(),
        min_rating=data.min_rating,
        max_reviews=data.max_reviews,
        business_name=business_url.name,
        source=business_url.source,
        business_url=business_url.url,
    )
    return render_widget(config, batch.reviews if batch else []).to_json()


@router.get("/widgets/{widget_id}")
def get_widget(
    widget_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    widget = _owned_widget(db, auth, widget_id)
    return _widget_json(widget, db.get_business_url(widget.business_url_id))


@router.patch("/widgets/{widget_id}")
def update_widget(
    widget_id: str,
    payload: Any = Body(None),
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    widget = _owned_widget(db, auth, widget_id)
    validated = validate_widget_payload(
        payload, user_id=auth.user_id, find_business_url=db.get_business_url, partial=True
    )
    updates = validated.payload.apply_to(widget)
    if updates:
        widget = db.update_widget(widget.id, **updates)
        if widget is None:
            raise NotFound("Widget not found.")
        logger.info(f"User {auth.user_id} updated widget {widget_id}: {sorted(updates)}")
    return _widget_json(widget, db.get_business_url(widget.business_url_id))


@router.delete("/widgets/{widget_id}")
def delete_widget(
    widget_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    widget = _owned_widget(db, auth, widget_id)
    db.delete_widget(widget.id)
    logger.info(f"User {auth.user_id} deleted widget {widget_id}")
    return {"message": "Widget deleted."}


@router.get("/widgets/{widget_id}/embed-code")
def widget_embed_code(
    widget_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
):
    widget = _owned_widget(db, auth, widget_id)
    return EmbedCode.for_widget(widget.id, settings.app_url, widget.name).to_json()


@router.get("/widgets/{widget_id}/preview")
def preview_widget(
    widget_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    widget = _owned_widget(db, auth, widget_id)
    return _render_saved_widget(db, widget).to_json()


# ── Dashboard ──────────────────────────────────────────────────────

@router.get("/dashboard/latest-reviews")
def dashboard_latest_reviews(
    limit: int = Query(10, ge=1, le=100),
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    reviews = db.get_latest_reviews(auth.user_id, limit)
    return {"reviews": [r.to_json(exclude_none=True) for r in reviews]}


@router.get("/dashboard/stats")
def dashboard_stats(
    auth: AuthContext = Depends(get_auth_context),
    db: Database = Depends(get_database),
):
    return db.get_stats(auth.user_id).to_json()


# ── Public embed surface ───────────────────────────────────────────

@router.get("/widget.js")
def widget_loader(settings: Settings = Depends(get_app_settings)):
    return Response(
        content=loader_script(settings.app_url),
        media_type="application/javascript",
        headers={"Cache-Control": "public, max-age=300"},
    )


@router.get("/embed/widget/{widget_id}", response_class=HTMLResponse)
def embed_widget_page(widget_id: str, db: Database = Depends(get_database)):
    widget = db.increment_views(widget_id)
    if widget is None:
        return HTMLResponse(render_missing_widget_page(), status_code=404)
    return HTMLResponse(render_widget_page(_render_saved_widget(db, widget), title=widget.name))


@router.get("/public/widgets/{widget_id}")
def public_widget(widget_id: str, db: Database = Depends(get_database)):
    widget = db.increment_views(widget_id)
    if widget is None:
        raise NotFound("Widget not found.")
    return {
        "widget": {"id": widget.id, "name": widget.name, "layout": widget.type.value},
        "rendered": _render_saved_widget(db, widget).to_json(),
    }


@router.get("/health")
def health(db: Database = Depends(get_database)):
    response = {"backend": "running", "database": "unavailable", "collections": []}
    try:
        db.ping()
        response["database"] = "connected"
        response["collections"] = db.collection_names()[:20]
    except PyMongoError as e:
        logger.warning(f"Health check database error: {e}")
        response["database"] = f"error: {str(e)[:80]}"
    return response


# ── Error handlers ─────────────────────────────────────────────────

async def handle_reviewhub_error(request: Request, exc: ReviewHubError):
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if len(loc) > 1 and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        errors.append(FieldError(path=".".join(loc) or "body", message=err.get("msg", "Invalid value")))
    return JSONResponse(ValidationFailed(errors).to_dict(), status_code=400)


async def handle_database_error(request: Request, exc: PyMongoError):
    logger.exception(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse({"message": GENERIC_ERROR}, status_code=500)


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse({"message": GENERIC_ERROR}, status_code=500)


# ── App factory ────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    for issue in settings.validate():
        logger.warning(issue)
    if app.state.db is None:
        app.state.db = connect(settings)
    logger.info("Database ready")
    yield


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    scraper: Optional[ReviewProvider] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="ReviewHub",
        description="Review aggregation and embeddable review widgets",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = database
    app.state.scraper = scraper or ApifyReviewProvider(settings.scraper)

    origins = list(settings.cors_origins) or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ReviewHubError, handle_reviewhub_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(PyMongoError, handle_database_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(router)
    return app


app = create_app()
