from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db

from .schemas import ProductResponse
from .service import ProductService

# Read-only catalogue for the storefront; prices here are what checkout snapshots
router = APIRouter()
public_router = APIRouter()

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "product", "status": "running"}


@router.get("/", response_model=list[ProductResponse])
async def list_products(
    query: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    return await ProductService.list_products(db, query)

@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, db: AsyncSession = Depends(get_db)):
    return await ProductService.get_product(db, product_id)
