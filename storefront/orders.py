from __future__ import annotations
import logging
import re
from typing import Callable, Optional

from storefront.config import settings
from storefront.database import DocumentStore, StoreError
from storefront.schemas import Order, OrderDetails, OrderStatus, Product
from storefront.state import (
    ViewState,
    submission_failed,
    submission_rejected,
    submission_started,
    submission_succeeded,
)

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"\+?\d{9,15}", re.ASCII)

INVALID_PHONE_MESSAGE = "Please enter a valid phone number."
MISSING_FIELDS_MESSAGE = "Please fill in all required fields."
ORDER_PLACED_MESSAGE = "Your order has been received! We will call you shortly to confirm it."
ORDER_FAILED_MESSAGE = "Sorry, something went wrong while placing your order. Please try again."


class OrderValidationError(ValueError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def validate_order_details(details: OrderDetails) -> None:
    # Phone first, then the required text fields
    if not PHONE_PATTERN.fullmatch(details.phone):
        raise OrderValidationError(INVALID_PHONE_MESSAGE)
    if not (details.full_name.strip() and details.address.strip() and details.city.strip()):
        raise OrderValidationError(MISSING_FIELDS_MESSAGE)


def build_order(product: Product, details: OrderDetails) -> Order:
    return Order(
        product_id=product.id,
        product_name=product.name,
        product_price=product.price,
        customer_details=details,
        status=OrderStatus.pending,
    )


async def submit_order(
    state: ViewState,
    store: DocumentStore,
    publish: Optional[Callable[[ViewState], None]] = None,
) -> ViewState:
    # publish() sees the "submitting" state before the write and the final
    # state if anything other than StoreError escapes it
    product = state.selected
    if product is None or state.submitting:
        return state

    try:
        validate_order_details(state.draft)
    except OrderValidationError as exc:
        return submission_rejected(state, exc.message)

    state = submission_started(state)
    if publish is not None:
        publish(state)

    order = build_order(product, state.draft)
    outcome = state
    try:
        saved = await store.append_document(
            settings.ORDERS_COLLECTION,
            order.model_dump(mode="json", exclude={"created_at"}),
        )
    except StoreError:
        logger.exception("placing order for product %s failed", product.id)
        outcome = submission_failed(state, ORDER_FAILED_MESSAGE)
    else:
        logger.info("order %s placed for product %s", saved.get("id", "?"), product.id)
        outcome = submission_succeeded(state, ORDER_PLACED_MESSAGE)
    finally:
        if outcome.submitting:
            outcome = submission_failed(state, ORDER_FAILED_MESSAGE)
            if publish is not None:
                publish(outcome)
    return outcome
