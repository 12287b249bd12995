from fastapi import APIRouter, Depends

from app.api.routes.products import get_catalog_service
from app.models.products import CategoryOut, ProductOut
from app.services.catalog import CatalogService

router = APIRouter(tags=["categories"])


@router.get("/categories", response_model=list[CategoryOut])
async def list_categories(service: CatalogService = Depends(get_catalog_service)) -> list[CategoryOut]:
    return await service.list_categories_async()


@router.get("/category/{category_id}/products", response_model=list[ProductOut])
async def list_category_products(
    category_id: str,
    service: CatalogService = Depends(get_catalog_service),
) -> list[ProductOut]:
    return await service.list_category_products_async(category_id)
