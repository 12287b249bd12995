import logging

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.exceptions import ClientInputError
from app.db.session import get_session
from app.models.search import AutocompleteSuggestion, ProductSearchResponse, SearchParams
from app.services.search import ProductSearchService, SearchCriteria

logger = logging.getLogger("app.search")

router = APIRouter(prefix="/search", tags=["search"])


def get_product_search_service(session: Session = Depends(get_session)) -> ProductSearchService:
    return ProductSearchService.from_session(session)


def get_search_params(
    q: str | None = Query(None, description="Free-text query."),
    min_price: str | None = Query(None, alias="minPrice", description="Inclusive lower price bound."),
    max_price: str | None = Query(None, alias="maxPrice", description="Inclusive upper price bound."),
    page: str | None = Query(None, description="1-based page number (default 1)."),
    limit: str | None = Query(None, description="Page size (default 20)."),
) -> SearchParams:
    raw = {"q": q, "minPrice": min_price, "maxPrice": max_price, "page": page, "limit": limit}
    try:
        return SearchParams.model_validate(raw)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        logger.warning("search.invalid_params", extra={"fields": fields})
        raise ClientInputError("Invalid query parameters", details={"fields": fields}) from exc


@router.get("", response_model=ProductSearchResponse)
async def search_products(
    params: SearchParams = Depends(get_search_params),
    service: ProductSearchService = Depends(get_product_search_service),
) -> ProductSearchResponse:
    return await service.search_async(SearchCriteria.from_params(params))


@router.get("/autocomplete", response_model=list[AutocompleteSuggestion])
async def autocomplete_products(
    q: str | None = Query(None, description="Name prefix to complete."),
    service: ProductSearchService = Depends(get_product_search_service),
) -> list[AutocompleteSuggestion]:
    return await service.autocomplete_async(q)
