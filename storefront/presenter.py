from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from storefront.catalog import filter_products, format_price
from storefront.reviews import average_rating, reviews_for
from storefront.schemas import OrderDetails, Product, Review
from storefront.state import Notice, View, ViewState, expire_notice


class ProductCard(BaseModel):
    id: str
    name: str
    price: str
    image_url: str


class ProductDetail(BaseModel):
    id: str
    name: str
    price: str
    description: str
    gallery: list[str]
    details: list[str]
    specifications: list[str]
    reviews: list[Review]
    average_rating: Optional[float] = None


class ViewModel(BaseModel):
    view: View
    loading: bool
    error: Optional[str] = None
    search_term: str
    products: list[ProductCard]
    selected: Optional[ProductDetail] = None
    selected_image: str = ""
    draft: OrderDetails
    submitting: bool
    notice: Optional[Notice] = None
    dark_mode: bool


def product_card(product: Product) -> ProductCard:
    return ProductCard(id=product.id, name=product.name, price=format_price(product.price),
                       image_url=product.image_url)


def product_detail(product: Product) -> ProductDetail:
    reviews = reviews_for(product.id)
    return ProductDetail(
        id=product.id,
        name=product.name,
        price=format_price(product.price),
        description=product.description,
        gallery=[product.image_url, *product.additional_images],
        details=list(product.details),
        specifications=list(product.specifications),
        reviews=reviews,
        average_rating=average_rating(reviews),
    )


def render(state: ViewState, now: datetime) -> ViewModel:
    state = expire_notice(state, now)
    return ViewModel(
        view=state.view,
        loading=state.loading,
        error=state.error,
        search_term=state.search_term,
        products=[product_card(p) for p in filter_products(state.products, state.search_term)],
        selected=product_detail(state.selected) if state.selected else None,
        selected_image=state.selected_image,
        draft=state.draft,
        submitting=state.submitting,
        notice=state.notice,
        dark_mode=state.dark_mode,
    )
