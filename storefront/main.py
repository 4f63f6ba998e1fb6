from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, TypeAdapter, ValidationError
from pymongo.errors import PyMongoError

from storefront.catalog import LOAD_ERROR_MESSAGE, fetch_products, filter_products, load_catalog
from storefront.config import settings
from storefront.database import DocumentStore, MongoStore, StoreError, close_db, count_documents, create_document, describe
from storefront.logging_config import setup_logging
from storefront.orders import submit_order
from storefront.presenter import ProductCard, ViewModel, product_card, render
from storefront.reviews import average_rating, reviews_for
from storefront.schemas import Review
from storefront.sessions import SESSION_COOKIE, THEME_COOKIE, SessionRegistry
from storefront.share import share_product
from storefront.state import Event, ShareProduct, SubmitOrder, ToggleTheme, UnknownProduct, ViewState, reduce, show_notice

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    logger.info("storefront API starting (database %s)", settings.DATABASE_NAME)
    yield
    close_db()


app = FastAPI(title="Storefront API", lifespan=lifespan)
app.state.sessions = SessionRegistry(maxsize=settings.SESSION_MAX, ttl=settings.SESSION_TTL_SECONDS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_event_adapter: TypeAdapter[Any] = TypeAdapter(Event)

# Seed data: accessories and watches
SEED_PRODUCTS: list[dict] = [
    {"name": "Gold Plated Ring", "price": 149.0, "image_url": "https://images.unsplash.com/photo-1605100804763-247f67b3557e?q=80&w=1200&auto=format&fit=crop",
     "description": "Delicate gold plated ring with a polished band.", "details": ["Gold plated", "Adjustable size"], "specifications": ["Material: brass", "Weight: 3 g"]},
    {"name": "Rose Gold Watch", "price": 399.0, "image_url": "https://images.unsplash.com/photo-1524592094714-0f0654e20314?q=80&w=1200&auto=format&fit=crop",
     "additional_images": ["https://images.unsplash.com/photo-1522312346375-d1a52e2b99b3?q=80&w=1200&auto=format&fit=crop"],
     "details": ["Water resistant", "Leather strap"], "specifications": ["Case: 36 mm", "Quartz movement"]},
    {"name": "Pearl Bracelet", "price": "89.5", "image_url": "https://images.unsplash.com/photo-1611591437281-460bfbe1220a?q=80&w=1200&auto=format&fit=crop",
     "details": ["Freshwater pearls"]},
    {"name": "Silver Hoop Earrings", "price": 120.0, "image_url": "https://images.unsplash.com/photo-1535632066927-ab7c9ab60908?q=80&w=1200&auto=format&fit=crop"},
]


def get_store() -> DocumentStore:
    return MongoStore()


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def _now() -> datetime:
    return datetime.now(timezone.utc)


@app.get("/")
async def root():
    return {"message": "Storefront Backend Running"}


@app.get("/test")
async def test():
    info = await describe()
    return {
        "backend": "✅ Running",
        "database": "✅ Available" if info["connected"] else "❌ Not Available",
        "database_url": "✅ Set" if "DATABASE_URL" in settings.model_fields_set else "❌ Not Set",
        "database_name": info["database_name"],
        "collections": info["collections"],
    }


class SeedResponse(BaseModel):
    inserted: int


@app.post("/seed", response_model=SeedResponse)
async def seed_products():
    # Insert only if the products collection is empty
    try:
        if await count_documents(settings.PRODUCTS_COLLECTION) > 0:
            return SeedResponse(inserted=0)
        for p in SEED_PRODUCTS:
            await create_document(settings.PRODUCTS_COLLECTION, p)
    except PyMongoError as exc:
        logger.exception("seeding products failed")
        raise HTTPException(status_code=503, detail="Database not available") from exc
    return SeedResponse(inserted=len(SEED_PRODUCTS))


@app.get("/products", response_model=list[ProductCard])
async def list_products(q: Optional[str] = Query(None), store: DocumentStore = Depends(get_store)):
    try:
        products = await fetch_products(store)
    except StoreError as exc:
        logger.exception("listing products failed")
        raise HTTPException(status_code=503, detail=LOAD_ERROR_MESSAGE) from exc
    return [product_card(p) for p in filter_products(products, q or "")]


class ReviewsOut(BaseModel):
    reviews: list[Review]
    average_rating: Optional[float] = None


@app.get("/products/{product_id}/reviews", response_model=ReviewsOut)
async def product_reviews(product_id: str):
    reviews = reviews_for(product_id)
    return ReviewsOut(reviews=reviews, average_rating=average_rating(reviews))


def _set_session_cookies(response: Response, session_id: str, state: ViewState) -> None:
    response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
    response.set_cookie(THEME_COOKIE, "dark" if state.dark_mode else "light", max_age=365 * 24 * 3600, samesite="lax")


@app.get("/state", response_model=ViewModel)
async def activate(
    request: Request,
    response: Response,
    product: Optional[str] = Query(None),
    store: DocumentStore = Depends(get_store),
    sessions: SessionRegistry = Depends(get_sessions),
):
    session_id = request.cookies.get(SESSION_COOKIE)
    state = sessions.get(session_id)
    if state is None:
        # First activation: one catalog read, deep link honored only here
        session_id = sessions.new_id()
        state = ViewState(dark_mode=request.cookies.get(THEME_COOKIE) == "dark")
        sessions.put(session_id, state)
        state = await load_catalog(state, store, deep_link=product)
        sessions.put(session_id, state)
    _set_session_cookies(response, session_id, state)
    return render(state, _now())


@app.post("/events", response_model=ViewModel)
async def dispatch(
    request: Request,
    response: Response,
    payload: dict[str, Any] = Body(...),
    store: DocumentStore = Depends(get_store),
    sessions: SessionRegistry = Depends(get_sessions),
):
    try:
        event = _event_adapter.validate_python(payload)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc

    session_id = request.cookies.get(SESSION_COOKIE)
    state = sessions.get(session_id)
    if state is None:
        raise HTTPException(status_code=409, detail="Session not started; GET /state first")
    if state.submitting:
        # The outcome of the write in flight is applied to this snapshot
        raise HTTPException(status_code=409, detail="Order submission in progress")

    if isinstance(event, SubmitOrder):
        state = await submit_order(state, store, publish=lambda s: sessions.put(session_id, s))
    elif isinstance(event, ShareProduct):
        if state.selected is None:
            raise HTTPException(status_code=409, detail="No product selected")
        notice = await share_product(state.selected, settings.PUBLIC_BASE_URL, now=_now())
        state = show_notice(state, notice)
    else:
        try:
            state = reduce(state, event)
        except UnknownProduct as exc:
            raise HTTPException(status_code=404, detail=f"Unknown product {exc.product_id}") from exc

    sessions.put(session_id, state)
    if isinstance(event, ToggleTheme):
        _set_session_cookies(response, session_id, state)
    return render(state, _now())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
