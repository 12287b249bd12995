from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_session
from app.models.products import ProductListResponse, ProductOut
from app.services.catalog import CatalogService

router = APIRouter(prefix="/products", tags=["products"])


def get_catalog_service(session: Session = Depends(get_session)) -> CatalogService:
    return CatalogService(session=session)


@router.get("", response_model=ProductListResponse)
async def list_products(service: CatalogService = Depends(get_catalog_service)) -> ProductListResponse:
    return await service.list_products_async()


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(
    product_id: str,
    service: CatalogService = Depends(get_catalog_service),
) -> ProductOut:
    return await service.get_product_async(product_id)
