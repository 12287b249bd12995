from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from sqlalchemy import ColumnElement, and_, or_, select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import ClientInputError, UpstreamStoreError
from app.db.models import Product, ProductTag
from app.models.products import ProductOut
from app.models.search import (
    DEFAULT_PAGE_SIZE,
    AutocompleteSuggestion,
    ProductSearchResponse,
    SearchParams,
)

logger = logging.getLogger("app.search")

LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class SearchCriteria:
    query: str = ""
    min_price: float | None = None
    max_price: float | None = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_params(cls, params: SearchParams) -> "SearchCriteria":
        return cls(
            query=params.q,
            min_price=params.minPrice,
            max_price=params.maxPrice,
            page=params.page,
            limit=params.limit,
        )


class ProductCatalog(Protocol):
    def find_products(  # pragma: no cover - protocol definition
        self, criteria: SearchCriteria, *, take: int
    ) -> Sequence[Product]:
        ...

    def find_names_by_prefix(  # pragma: no cover - protocol definition
        self, prefix: str, *, limit: int
    ) -> Sequence[tuple[str, str]]:
        ...


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


def build_product_filter(
    query: str,
    min_price: float | None = None,
    max_price: float | None = None,
) -> ColumnElement[bool] | None:
    """
    Compose the WHERE clause for a catalog search.

    Each optional filter contributes at most one fragment: the text OR-group
    (name or description substring, case-insensitive, or an exact tag), a lower
    and an upper price bound. Fragments are ANDed together; with none present
    the result is ``None`` and the read is unconstrained.
    """

    conditions: list[ColumnElement[bool]] = []

    term = (query or "").strip()
    if term:
        pattern = f"%{escape_like(term)}%"
        conditions.append(
            or_(
                Product.name.ilike(pattern, escape=LIKE_ESCAPE),
                Product.description.ilike(pattern, escape=LIKE_ESCAPE),
                Product.tag_rows.any(ProductTag.tag == term),
            )
        )

    if min_price is not None:
        conditions.append(Product.price >= min_price)
    if max_price is not None:
        conditions.append(Product.price <= max_price)

    if not conditions:
        return None
    return and_(*conditions)


class SqlProductCatalog:
    def __init__(self, session: Session) -> None:
        self._session = session

    def find_products(self, criteria: SearchCriteria, *, take: int) -> Sequence[Product]:
        stmt = select(Product)
        predicate = build_product_filter(criteria.query, criteria.min_price, criteria.max_price)
        if predicate is not None:
            stmt = stmt.where(predicate)
        stmt = (
            stmt.order_by(Product.created_at.desc(), Product.id.desc())
            .offset(criteria.skip)
            .limit(take)
        )
        return list(self._session.scalars(stmt).all())

    def find_names_by_prefix(self, prefix: str, *, limit: int) -> Sequence[tuple[str, str]]:
        stmt = (
            select(Product.id, Product.name)
            .where(Product.name.ilike(f"{escape_like(prefix)}%", escape=LIKE_ESCAPE))
            .order_by(Product.name.asc())
            .limit(limit)
        )
        return [(row.id, row.name) for row in self._session.execute(stmt)]


class ProductSearchService:
    AUTOCOMPLETE_LIMIT = 10

    def __init__(self, catalog: ProductCatalog, *, probe_has_more: bool = False) -> None:
        self._catalog = catalog
        self._probe_has_more = probe_has_more

    @classmethod
    def from_session(cls, session: Session) -> "ProductSearchService":
        settings = get_settings()
        return cls(SqlProductCatalog(session), probe_has_more=settings.search_probe_has_more)

    async def search_async(self, criteria: SearchCriteria) -> ProductSearchResponse:
        try:
            products, has_more = await asyncio.to_thread(self._fetch_page, criteria)
        except Exception as exc:
            logger.exception(
                "search.failed",
                extra={"query": criteria.query, "page": criteria.page, "limit": criteria.limit},
            )
            raise UpstreamStoreError("Search failed") from exc

        logger.info(
            "search.executed",
            extra={
                "query": criteria.query,
                "page": criteria.page,
                "limit": criteria.limit,
                "returned": len(products),
                "has_more": has_more,
            },
        )
        return ProductSearchResponse(products=products, hasMore=has_more)

    def search(self, criteria: SearchCriteria) -> ProductSearchResponse:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.search_async(criteria))

        raise RuntimeError("search() cannot be called from an active event loop; use search_async().")

    async def autocomplete_async(self, query: str | None) -> list[AutocompleteSuggestion]:
        prefix = (query or "").strip()
        if not prefix:
            raise ClientInputError("Query too short", details={"field": "q"})

        try:
            rows = await asyncio.to_thread(
                self._catalog.find_names_by_prefix,
                prefix,
                limit=self.AUTOCOMPLETE_LIMIT,
            )
        except Exception as exc:
            logger.exception("autocomplete.failed", extra={"query": prefix})
            raise UpstreamStoreError("Autocomplete failed") from exc

        return [
            AutocompleteSuggestion(id=product_id, name=name)
            for product_id, name in list(rows)[: self.AUTOCOMPLETE_LIMIT]
        ]

    def autocomplete(self, query: str | None) -> list[AutocompleteSuggestion]:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.autocomplete_async(query))

        raise RuntimeError(
            "autocomplete() cannot be called from an active event loop; use autocomplete_async()."
        )

    def _fetch_page(self, criteria: SearchCriteria) -> tuple[list[ProductOut], bool]:
        take = criteria.limit + 1 if self._probe_has_more else criteria.limit
        rows = list(self._catalog.find_products(criteria, take=take))

        if self._probe_has_more:
            has_more = len(rows) > criteria.limit
        else:
            # a full page reports more even when it happens to be the last one
            has_more = len(rows) == criteria.limit

        products = [ProductOut.from_row(row) for row in rows[: criteria.limit]]
        return products, has_more
