from __future__ import annotations

import math
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from app.db.models import Category, Product


class ProductOut(BaseModel):
    id: str = Field(..., description="Product identifier")
    name: str = Field(..., description="Product name")
    description: str | None = Field(None, description="Long-form product description")
    price: float = Field(..., ge=0, description="List price")
    discountPct: int | None = Field(None, description="Discount percentage applied to the list price")
    finalPrice: int = Field(..., ge=0, description="Discounted price, floored to a whole unit")
    stock: int = Field(0, description="Units in stock")
    images: list[str] = Field(default_factory=list, description="Image URLs")
    tags: list[str] = Field(default_factory=list, description="Exact-match keywords")
    categoryId: str | None = Field(None, description="Owning category identifier")
    createdAt: datetime = Field(..., description="Creation timestamp")

    @classmethod
    def from_row(cls, product: Product) -> "ProductOut":
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            discountPct=product.discount_pct,
            finalPrice=final_price(product.price, product.discount_pct),
            stock=product.stock,
            images=list(product.images or []),
            tags=product.tags,
            categoryId=product.category_id,
            createdAt=product.created_at,
        )


class ProductListResponse(BaseModel):
    products: List[ProductOut] = Field(default_factory=list)


class CategoryOut(BaseModel):
    id: str
    name: str
    image: str | None = None

    @classmethod
    def from_row(cls, category: Category) -> "CategoryOut":
        return cls(id=category.id, name=category.name, image=category.image)


def final_price(price: float, discount_pct: int | None) -> int:
    discount = discount_pct or 0
    # rounded first so 92.99999999999999 floors to 93, not 92
    return max(0, math.floor(round(price * (100 - discount) / 100, 6)))
