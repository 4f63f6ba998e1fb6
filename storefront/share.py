from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol
from urllib.parse import quote
from pydantic import BaseModel

from storefront.config import settings
from storefront.schemas import Product
from storefront.state import Notice, transient

logger = logging.getLogger(__name__)

SHARED_MESSAGE = "Shared successfully!"
SHARE_FAILED_MESSAGE = "Sharing failed, please try again."
COPIED_MESSAGE = "Product link copied!"
COPY_FAILED_MESSAGE = "Could not copy the link, copy it manually."
MANUAL_COPY_MESSAGE = "Copy the product link below."


class ShareData(BaseModel):
    title: str
    text: str
    url: str


class NativeShare(Protocol):
    def can_share(self, data: ShareData) -> bool: ...

    async def share(self, data: ShareData) -> None: ...


class Clipboard(Protocol):
    async def write_text(self, text: str) -> None: ...


def build_share_link(base_url: str, product_id: str) -> str:
    return f"{base_url.rstrip('/')}/?product={quote(product_id, safe='')}"


def build_share_data(product: Product, base_url: str) -> ShareData:
    return ShareData(
        title=product.name,
        text=f"Check out this product: {product.name} - {product.description}",
        url=build_share_link(base_url, product.id),
    )


async def share_product(
    product: Product,
    base_url: str,
    native: Optional[NativeShare] = None,
    clipboard: Optional[Clipboard] = None,
    now: Optional[datetime] = None,
) -> Notice:
    now = now or datetime.now(timezone.utc)
    seconds = settings.NOTICE_SECONDS
    data = build_share_data(product, base_url)

    if native is not None and native.can_share(data):
        try:
            await native.share(data)
        except Exception as exc:
            logger.warning("native share of %s failed: %s", product.id, exc)
            return transient(SHARE_FAILED_MESSAGE, now, seconds, level="error")
        return transient(SHARED_MESSAGE, now, seconds)

    if clipboard is None:
        return transient(MANUAL_COPY_MESSAGE, now, seconds, manual_copy_url=data.url)
    try:
        await clipboard.write_text(data.url)
    except Exception as exc:
        logger.warning("copying link for %s failed: %s", product.id, exc)
    else:
        return transient(COPIED_MESSAGE, now, seconds)

    return transient(COPY_FAILED_MESSAGE, now, seconds, level="error", manual_copy_url=data.url)
