"""
Catalog routes.

- GET /: landing page with one card per active product
- GET /api/catalog/products: same catalog as JSON
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from saaskit.api.deps import get_catalog, get_settings
from saaskit.api.pages import render_landing_page
from saaskit.core.config import Settings
from saaskit.features.catalog.service import CatalogService
from saaskit.models.catalog import Price

router = APIRouter(tags=["catalog"])


class ProductResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    features: List[str]
    price: Optional[Price] = None
    display_price: str


@router.get("/", response_class=HTMLResponse)
async def landing_page(
    cfg: Settings = Depends(get_settings),
    catalog: CatalogService = Depends(get_catalog),
) -> HTMLResponse:
    products = await run_in_threadpool(catalog.get_products)
    return HTMLResponse(content=render_landing_page(cfg.SITE_NAME, products))


@router.get("/api/catalog/products", response_model=List[ProductResponse])
async def list_products(catalog: CatalogService = Depends(get_catalog)):
    products = await run_in_threadpool(catalog.get_products)
    return [
        ProductResponse(
            id=p.id,
            name=p.name,
            description=p.description,
            features=p.features,
            price=p.price,
            display_price=p.display_price,
        )
        for p in products
    ]
