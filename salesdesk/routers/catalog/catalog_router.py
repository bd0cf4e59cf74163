from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from salesdesk.core.config import DEFAULT_CURRENCY
from salesdesk.core.db import get_db
from salesdesk.utils.check_roles import require_role
from salesdesk.utils.response import success_response, APIResponse

from salesdesk.constants.pagination import DEFAULT_LIMIT
from salesdesk.schemas.catalog.catalog_schemas import CatalogItemOut, CatalogPage, CurrencyOut
from salesdesk.services.cart.filter_view import FilterCriteria
from salesdesk.services.catalog.catalog_service import (
    fetch_catalog_all,
    fetch_catalog_page,
    list_currencies,
)

router = APIRouter(
    prefix="/catalog",
    tags=["Catalog"],
)

ALL_ROLES = ["admin", "sales", "finance"]


@router.get(
    "/items",
    response_model=APIResponse[CatalogPage],
)
async def list_catalog_items_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
    currency: str = Query(DEFAULT_CURRENCY, min_length=3, max_length=3),
    category: str | None = Query(None),
    brand: str | None = Query(None),
    model: str | None = Query(None),
    year: int | None = Query(None),
    color: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT),
):
    criteria = FilterCriteria().update(
        category=category, brand=brand, model=model, year=year, color=color
    )
    data = await fetch_catalog_page(db, currency, criteria.active(), page, limit)
    return success_response("Catalog items retrieved successfully", data)


@router.get(
    "/items/all",
    response_model=APIResponse[List[CatalogItemOut]],
)
async def list_all_catalog_items_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
    currency: str = Query(DEFAULT_CURRENCY, min_length=3, max_length=3),
):
    data = await fetch_catalog_all(db, currency)
    return success_response("Catalog items retrieved successfully", data)


@router.get(
    "/currencies",
    response_model=APIResponse[List[CurrencyOut]],
)
async def list_currencies_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    data = await list_currencies(db)
    return success_response("Currencies retrieved successfully", data)
