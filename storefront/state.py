from __future__ import annotations
from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas import OrderDetails, Product


class View(str, Enum):
    catalog = "catalog"
    detail = "detail"
    checkout = "checkout"


class Notice(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    level: Literal["info", "error"] = "info"
    # None means the notice stays until dismissed
    expires_at: Optional[datetime] = None
    manual_copy_url: Optional[str] = None

    def expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


def transient(text: str, now: datetime, seconds: float, level: Literal["info", "error"] = "info",
              manual_copy_url: Optional[str] = None) -> Notice:
    return Notice(text=text, level=level, expires_at=now + timedelta(seconds=seconds),
                  manual_copy_url=manual_copy_url)


class ViewState(BaseModel):
    model_config = ConfigDict(frozen=True)

    products: tuple[Product, ...] = ()
    loading: bool = True
    error: Optional[str] = None
    view: View = View.catalog
    selected: Optional[Product] = None
    selected_image: str = ""
    search_term: str = ""
    draft: OrderDetails = OrderDetails()
    submitting: bool = False
    notice: Optional[Notice] = None
    dark_mode: bool = False

    def find_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)


# Catalog

def catalog_loaded(state: ViewState, products: list[Product], deep_link: Optional[str] = None) -> ViewState:
    state = state.model_copy(update={"products": tuple(products), "loading": False, "error": None})
    if deep_link:
        match = state.find_product(deep_link)
        if match is not None:
            state = select_product(state, match)
    return state


def catalog_failed(state: ViewState, message: str) -> ViewState:
    return state.model_copy(update={"products": (), "loading": False, "error": message})


def set_search(state: ViewState, term: str) -> ViewState:
    return state.model_copy(update={"search_term": term})


# Navigation

def select_product(state: ViewState, product: Product) -> ViewState:
    return state.model_copy(update={
        "selected": product,
        "selected_image": product.image_url,
        "view": View.detail,
    })


def select_image(state: ViewState, image: str) -> ViewState:
    if state.selected is None:
        return state
    return state.model_copy(update={"selected_image": image})


def buy_now(state: ViewState) -> ViewState:
    if state.selected is None:
        return state
    return state.model_copy(update={"view": View.checkout})


def back_to_catalog(state: ViewState) -> ViewState:
    return state.model_copy(update={"selected": None, "selected_image": "", "view": View.catalog})


# Checkout form

def edit_draft(state: ViewState, **fields: str) -> ViewState:
    return state.model_copy(update={"draft": state.draft.model_copy(update=fields)})


def submission_started(state: ViewState) -> ViewState:
    return state.model_copy(update={"submitting": True, "notice": None})


def submission_rejected(state: ViewState, message: str) -> ViewState:
    return state.model_copy(update={"submitting": False, "notice": Notice(text=message, level="error")})


def submission_succeeded(state: ViewState, message: str) -> ViewState:
    state = back_to_catalog(state)
    return state.model_copy(update={
        "submitting": False,
        "draft": OrderDetails(),
        "notice": Notice(text=message),
    })


def submission_failed(state: ViewState, message: str) -> ViewState:
    return state.model_copy(update={"submitting": False, "notice": Notice(text=message, level="error")})


# Chrome

def toggle_theme(state: ViewState) -> ViewState:
    return state.model_copy(update={"dark_mode": not state.dark_mode})


def show_notice(state: ViewState, notice: Notice) -> ViewState:
    return state.model_copy(update={"notice": notice})


def dismiss_notice(state: ViewState) -> ViewState:
    return state.model_copy(update={"notice": None})


def expire_notice(state: ViewState, now: datetime) -> ViewState:
    if state.notice is not None and state.notice.expired(now):
        return dismiss_notice(state)
    return state


# Synchronous events, as posted by the client

class SelectProduct(BaseModel):
    type: Literal["select_product"] = "select_product"
    product_id: str


class SelectImage(BaseModel):
    type: Literal["select_image"] = "select_image"
    image: str


class BuyNow(BaseModel):
    type: Literal["buy_now"] = "buy_now"


class Back(BaseModel):
    type: Literal["back"] = "back"


class Search(BaseModel):
    type: Literal["search"] = "search"
    term: str = ""


class EditDraft(BaseModel):
    type: Literal["edit_draft"] = "edit_draft"
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    notes: Optional[str] = None


class ToggleTheme(BaseModel):
    type: Literal["toggle_theme"] = "toggle_theme"


class DismissNotice(BaseModel):
    type: Literal["dismiss_notice"] = "dismiss_notice"


class SubmitOrder(BaseModel):
    type: Literal["submit_order"] = "submit_order"


class ShareProduct(BaseModel):
    type: Literal["share_product"] = "share_product"


Event = Annotated[
    Union[SelectProduct, SelectImage, BuyNow, Back, Search, EditDraft, ToggleTheme,
          DismissNotice, SubmitOrder, ShareProduct],
    Field(discriminator="type"),
]


class UnknownProduct(LookupError):
    def __init__(self, product_id: str):
        super().__init__(product_id)
        self.product_id = product_id


def reduce(state: ViewState, event: BaseModel) -> ViewState:
    # submit_order and share_product need I/O and live in orders / share
    if isinstance(event, SelectProduct):
        product = state.find_product(event.product_id)
        if product is None:
            raise UnknownProduct(event.product_id)
        return select_product(state, product)
    if isinstance(event, SelectImage):
        return select_image(state, event.image)
    if isinstance(event, BuyNow):
        return buy_now(state)
    if isinstance(event, Back):
        return back_to_catalog(state)
    if isinstance(event, Search):
        return set_search(state, event.term)
    if isinstance(event, EditDraft):
        return edit_draft(state, **event.model_dump(exclude={"type"}, exclude_none=True))
    if isinstance(event, ToggleTheme):
        return toggle_theme(state)
    if isinstance(event, DismissNotice):
        return dismiss_notice(state)
    raise ValueError(f"{type(event).__name__} is not a synchronous event")
