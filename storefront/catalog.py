from __future__ import annotations
import logging
import math
import re
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any, Iterable, Optional

from storefront.config import settings
from storefront.database import DocumentStore, StoreError
from storefront.schemas import Product
from storefront.state import ViewState, catalog_failed, catalog_loaded

logger = logging.getLogger(__name__)

PLACEHOLDER_DESCRIPTION = "High-quality product made from the finest materials."
LOAD_ERROR_MESSAGE = "Failed to load products. Please try again later."

# Stored key => value used when the key is missing or empty
PRODUCT_DEFAULTS: dict[str, Any] = {
    "name": "",
    "price": 0,
    "image_url": "",
    "description": PLACEHOLDER_DESCRIPTION,
}
LIST_FIELDS = ("additional_images", "details", "specifications")

# Leading decimal number, the way browsers' parseFloat reads "19.9 MAD"
_LEADING_NUMBER = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)", re.ASCII)
_CENTS = Decimal("0.01")
# Enough digits to quantize any finite float
_WIDE = Context(prec=400)


def normalize_product(doc: dict[str, Any]) -> Product:
    data: dict[str, Any] = {"id": str(doc.get("id") or doc.get("_id") or "")}
    for key, default in PRODUCT_DEFAULTS.items():
        value = doc.get(key) or default
        if key == "price":
            # Numbers and strings pass through untouched; anything else is
            # kept as text and left to format_price
            if isinstance(value, bool) or not isinstance(value, (int, float, str)):
                value = str(value)
        elif not isinstance(value, str):
            value = str(value)
        data[key] = value
    for key in LIST_FIELDS:
        value = doc.get(key)
        data[key] = tuple(str(v) for v in value) if isinstance(value, list) else ()
    return Product(**data)


def parse_price(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if not match:
            return None
        number = float(match.group(1))
    else:
        return None
    return number if math.isfinite(number) else None


def format_price(value: Any) -> str:
    number = parse_price(value)
    if number is None:
        return "0.00"
    # -0.0 would otherwise render as "-0.00"
    number = number or 0.0
    return str(Decimal(number).quantize(_CENTS, rounding=ROUND_HALF_UP, context=_WIDE))


def filter_products(products: Iterable[Product], term: str) -> list[Product]:
    needle = term.lower()
    return [p for p in products if needle in p.name.lower()]


async def fetch_products(store: DocumentStore) -> list[Product]:
    docs = await store.list_documents(settings.PRODUCTS_COLLECTION)
    return [normalize_product(d) for d in docs]


async def load_catalog(state: ViewState, store: DocumentStore, deep_link: Optional[str] = None) -> ViewState:
    # deep_link: the ?product= value the session was opened with
    try:
        products = await fetch_products(store)
    except StoreError:
        logger.exception("loading products failed")
        return catalog_failed(state, LOAD_ERROR_MESSAGE)
    logger.info("loaded %d products", len(products))
    return catalog_loaded(state, products, deep_link)
