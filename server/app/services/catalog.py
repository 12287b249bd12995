from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, UpstreamStoreError
from app.db.models import Category, Product
from app.models.products import CategoryOut, ProductListResponse, ProductOut

logger = logging.getLogger("app.catalog")


@dataclass
class CatalogService:
    """Public read paths over products and categories."""

    session: Session

    async def list_products_async(self) -> ProductListResponse:
        products = await self._run(self._list_products, failure="Internal Server Error")
        return ProductListResponse(products=products)

    async def get_product_async(self, product_id: str) -> ProductOut:
        product = await self._run(self._get_product, product_id, failure="Internal Server Error")
        if product is None:
            raise NotFoundError("Product not found", details={"id": product_id})
        return product

    async def list_categories_async(self) -> list[CategoryOut]:
        return await self._run(self._list_categories, failure="Internal Server Error")

    async def list_category_products_async(self, category_id: str) -> list[ProductOut]:
        products = await self._run(
            self._list_category_products,
            category_id,
            failure="Failed to fetch products for this category",
        )
        if products is None:
            raise NotFoundError("Category not found", details={"id": category_id})
        return products

    async def _run(self, fn, *args, failure: str):
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as exc:
            logger.exception("catalog.read_failed", extra={"operation": fn.__name__.lstrip("_")})
            raise UpstreamStoreError(failure) from exc

    def _list_products(self) -> list[ProductOut]:
        stmt = select(Product).order_by(Product.created_at.desc(), Product.id.desc())
        return [ProductOut.from_row(row) for row in self.session.scalars(stmt)]

    def _get_product(self, product_id: str) -> ProductOut | None:
        product = self.session.get(Product, product_id)
        return ProductOut.from_row(product) if product is not None else None

    def _list_categories(self) -> list[CategoryOut]:
        stmt = select(Category).order_by(Category.name.asc())
        return [CategoryOut.from_row(row) for row in self.session.scalars(stmt)]

    def _list_category_products(self, category_id: str) -> list[ProductOut] | None:
        if self.session.get(Category, category_id) is None:
            return None
        stmt = (
            select(Product)
            .where(Product.category_id == category_id)
            .order_by(Product.created_at.desc(), Product.id.desc())
        )
        return [ProductOut.from_row(row) for row in self.session.scalars(stmt)]
