from __future__ import annotations
from typing import Optional

from storefront.schemas import Review

# Mock reviews shown on the product page; nothing is stored remotely
REVIEWS: tuple[Review, ...] = (
    Review(id="r1", product_id="p1", customer_name="Salma B.", rating=5,
           comment="Beautiful ring, exactly like the photos.", created_at="2024-11-02"),
    Review(id="r2", product_id="p1", customer_name="Nadia K.", rating=4,
           comment="Lovely finish, delivery took two days.", created_at="2024-11-15"),
    Review(id="r3", product_id="p2", customer_name="Hiba A.", rating=5,
           comment="Elegant watch, the strap is very comfortable.", created_at="2024-12-01"),
    Review(id="r4", product_id="p2", customer_name="Imane T.", rating=3,
           comment="Nice design but the box was slightly damaged.", created_at="2024-12-09"),
    Review(id="r5", product_id="p3", customer_name="Meryem L.", rating=4,
           comment="Good quality bracelet for the price.", created_at="2025-01-04"),
)


def reviews_for(product_id: str) -> list[Review]:
    return [r for r in REVIEWS if r.product_id == product_id]


def average_rating(reviews: list[Review]) -> Optional[float]:
    if not reviews:
        return None
    return round(sum(r.rating for r in reviews) / len(reviews), 1)
