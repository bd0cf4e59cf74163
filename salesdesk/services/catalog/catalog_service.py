# salesdesk/services/catalog/catalog_service.py

from decimal import Decimal
import logging
import math
from typing import Dict, Iterable, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, asc

from salesdesk.models.catalog.catalog_models import CatalogItem, CurrencyRate
from salesdesk.schemas.catalog.catalog_schemas import (
    CatalogItemOut,
    CatalogPage,
    CurrencyInfo,
    CurrencyOut,
    FacetSummary,
    PaginationMeta,
)

from salesdesk.core.config import BASE_CURRENCY
from salesdesk.core.exceptions import AppException
from salesdesk.constants.error_codes import ErrorCode
from salesdesk.constants.pagination import PAGE_LIMIT_OPTIONS
from salesdesk.utils.decimal_utils import to_decimal

logger = logging.getLogger(__name__)

FACET_COLUMNS = {
    "category": CatalogItem.category,
    "brand": CatalogItem.brand,
    "model": CatalogItem.model,
    "year": CatalogItem.year,
    "color": CatalogItem.color,
}


# =====================================================
# CURRENCY
# =====================================================
async def get_rate(db: AsyncSession, currency: str) -> Decimal:
    currency = (currency or "").upper()
    if currency == BASE_CURRENCY:
        return Decimal("1")

    rate = await db.scalar(
        select(CurrencyRate.rate_to_base).where(CurrencyRate.code == currency)
    )
    if rate is None:
        raise AppException(
            400,
            f"Currency {currency} is not supported",
            ErrorCode.CURRENCY_NOT_SUPPORTED,
            {"currency": currency},
        )
    return Decimal(str(rate))


def convert(base_price, rate: Decimal) -> Decimal:
    return to_decimal(Decimal(str(base_price)) * rate)


async def list_currencies(db: AsyncSession) -> List[CurrencyOut]:
    result = await db.execute(select(CurrencyRate).order_by(asc(CurrencyRate.code)))
    currencies = [CurrencyOut.model_validate(r) for r in result.scalars()]

    if not any(c.code == BASE_CURRENCY for c in currencies):
        currencies.insert(0, CurrencyOut(code=BASE_CURRENCY, name=BASE_CURRENCY))
    return currencies


# =====================================================
# ITEMS
# =====================================================
def _map_item(item: CatalogItem, currency: str, rate: Decimal) -> CatalogItemOut:
    return CatalogItemOut(
        id=item.id,
        name=item.name,
        sku=item.sku,
        category=item.category,
        brand=item.brand,
        model=item.model,
        year=item.year,
        color=item.color,
        unit_price=convert(item.base_price, rate),
        currency=currency,
        stock_quantity=item.stock_quantity,
    )


def _apply_filters(query, filters: dict):
    for name, value in (filters or {}).items():
        if value is None:
            continue
        column = FACET_COLUMNS.get(name)
        if column is None:
            raise AppException(400, f"Unknown filter '{name}'", ErrorCode.VALIDATION_ERROR)
        query = query.where(column == value)
    return query


async def _facet_summary(db: AsyncSession, category: str | None) -> FacetSummary:
    active = CatalogItem.is_active.is_(True)

    categories = await db.scalars(
        select(CatalogItem.category).where(active).distinct().order_by(asc(CatalogItem.category))
    )
    summary = FacetSummary(category=list(categories))
    if not category:
        return summary

    for name in ("brand", "model", "year", "color"):
        column = FACET_COLUMNS[name]
        values = await db.scalars(
            select(column)
            .where(active, CatalogItem.category == category, column.is_not(None))
            .distinct()
            .order_by(asc(column))
        )
        setattr(summary, name, list(values))
    return summary


async def fetch_catalog_page(
    db: AsyncSession,
    currency: str,
    filters: dict | None = None,
    page: int = 1,
    limit: int = 20,
) -> CatalogPage:
    if limit not in PAGE_LIMIT_OPTIONS:
        raise AppException(
            400,
            "Unsupported page size",
            ErrorCode.VALIDATION_ERROR,
            {"limit": limit, "options": list(PAGE_LIMIT_OPTIONS)},
        )
    page = max(page, 1)
    currency = currency.upper()
    rate = await get_rate(db, currency)

    base_query = _apply_filters(
        select(CatalogItem).where(CatalogItem.is_active.is_(True)),
        filters,
    )

    total = await db.scalar(
        select(func.count()).select_from(base_query.subquery())
    ) or 0

    result = await db.execute(
        base_query
        .order_by(asc(CatalogItem.name), asc(CatalogItem.id))
        .offset((page - 1) * limit)
        .limit(limit)
    )

    pages = math.ceil(total / limit) if total else 0

    return CatalogPage(
        items=[_map_item(i, currency, rate) for i in result.scalars()],
        facet_summary=await _facet_summary(db, (filters or {}).get("category")),
        pagination=PaginationMeta(
            page=page,
            limit=limit,
            total=total,
            pages=pages,
            has_next=page < pages,
            has_prev=page > 1,
        ),
        currency_info=CurrencyInfo(
            currency=currency,
            exchange_rate=rate,
            base_currency=BASE_CURRENCY,
        ),
    )


async def fetch_catalog_all(db: AsyncSession, currency: str) -> List[CatalogItemOut]:
    currency = currency.upper()
    rate = await get_rate(db, currency)

    result = await db.execute(
        select(CatalogItem)
        .where(CatalogItem.is_active.is_(True))
        .order_by(asc(CatalogItem.name), asc(CatalogItem.id))
    )
    return [_map_item(i, currency, rate) for i in result.scalars()]


async def get_items_priced(
    db: AsyncSession,
    item_ids: Iterable[int],
    currency: str,
) -> Dict[int, CatalogItemOut]:
    """Active items by id, priced in ``currency``. Any unknown id fails the whole lookup."""
    item_ids = set(item_ids)
    rate = await get_rate(db, currency)

    result = await db.execute(
        select(CatalogItem).where(
            CatalogItem.id.in_(item_ids),
            CatalogItem.is_active.is_(True),
        )
    )
    items = {i.id: _map_item(i, currency.upper(), rate) for i in result.scalars()}

    missing = item_ids - set(items)
    if missing:
        raise AppException(
            404,
            "Invalid catalog item IDs",
            ErrorCode.CATALOG_ITEM_NOT_FOUND,
            {"item_ids": sorted(missing)},
        )
    return items
