"""
Shared fixtures.

The environment is fixed before anything from ``salesdesk`` is imported:
config is validated at import time and the engine is built from it.
"""

import asyncio
import math
import os
import tempfile
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

_TMP = tempfile.mkdtemp(prefix="salesdesk-tests-")
os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["SQLITE_PATH"] = os.path.join(_TMP, "salesdesk-test.db")
os.environ["BASE_CURRENCY"] = "USD"
os.environ["DEFAULT_CURRENCY"] = "USD"
os.environ["DEFAULT_VAT_PERCENT"] = "5"

import pytest  # noqa: E402

from salesdesk.constants.error_codes import ErrorCode  # noqa: E402
from salesdesk.core.db import AsyncSessionLocal, dispose_engine, reset_models  # noqa: E402
from salesdesk.core.exceptions import AppException  # noqa: E402
from salesdesk.models.catalog.catalog_models import CatalogItem, CurrencyRate  # noqa: E402
from salesdesk.models.masters.customer_models import Customer  # noqa: E402
from salesdesk.models.users.user_models import User  # noqa: E402
from salesdesk.models.enums.discount_type import DiscountType  # noqa: E402
from salesdesk.models.enums.quotation_status import QuotationStatus  # noqa: E402
from salesdesk.schemas.billing.quotation_schemas import (  # noqa: E402
    GatewayResult,
    QuotationItemOut,
    QuotationLineIn,
    QuotationOut,
    StatusEntryOut,
    TransitionResult,
)
from salesdesk.schemas.catalog.catalog_schemas import (  # noqa: E402
    CatalogItemOut,
    CatalogPage,
    CurrencyInfo,
    PaginationMeta,
)
from salesdesk.services.billing import status_machine  # noqa: E402
from salesdesk.services.cart.filter_view import FilterCriteria, facet_summary  # noqa: E402
from salesdesk.services.cart.orchestrator import Orchestrator, workflow_from  # noqa: E402
from salesdesk.services.cart.pricing import DiscountPolicy, discount_amount  # noqa: E402
from salesdesk.services.cart.session import Actor, CartSession  # noqa: E402
from salesdesk.utils.decimal_utils import percent_of, to_decimal  # noqa: E402


# ============================================================
# Catalog data
# ============================================================

RATES = {"USD": Decimal("1"), "AED": Decimal("3.67"), "EUR": Decimal("0.92")}

BASE_ITEMS = [
    {"id": 1, "name": "Aero Office Chair", "sku": "CH-001", "category": "Seating", "brand": "Aero",
     "model": "A1", "year": 2023, "color": "Black", "base_price": Decimal("100.00")},
    {"id": 2, "name": "Oak Side Table", "sku": "TB-002", "category": "Tables", "brand": "Oak",
     "model": "S2", "year": 2022, "color": "Brown", "base_price": Decimal("50.00")},
    {"id": 3, "name": "Flex Stool", "sku": "CH-003", "category": "Seating", "brand": "Flex",
     "model": "F3", "year": 2024, "color": "Grey", "base_price": Decimal("20.00")},
] + [
    {"id": 100 + n, "name": f"Desk Lamp {n:02d}", "sku": f"LP-{n:03d}", "category": "Lighting",
     "brand": "Lumo", "model": "L", "year": 2021, "color": "White", "base_price": Decimal("10.00")}
    for n in range(22)
]


def priced(raw: dict, currency: str) -> CatalogItemOut:
    return CatalogItemOut(
        id=raw["id"],
        name=raw["name"],
        sku=raw["sku"],
        category=raw["category"],
        brand=raw["brand"],
        model=raw["model"],
        year=raw["year"],
        color=raw["color"],
        unit_price=to_decimal(raw["base_price"] * RATES[currency]),
        currency=currency,
        stock_quantity=5,
    )


class FakeCatalog:
    """In-memory catalog. ``gates`` holds one optional Event per upcoming page call."""

    def __init__(self, items=None):
        self.items = list(items if items is not None else BASE_ITEMS)
        self.page_calls = []
        self.all_calls = []
        self.gates = []
        self.fail_with = None

    async def fetch_catalog_all(self, currency):
        self.all_calls.append(currency)
        if self.fail_with is not None:
            raise self.fail_with
        return [priced(i, currency) for i in sorted(self.items, key=lambda r: (r["name"], r["id"]))]

    async def fetch_catalog_page(self, currency, filters, page, limit):
        self.page_calls.append((currency, dict(filters), page, limit))
        gate = self.gates.pop(0) if self.gates else None
        if gate is not None:
            await gate.wait()
        if self.fail_with is not None:
            raise self.fail_with

        everything = [priced(i, currency) for i in sorted(self.items, key=lambda r: (r["name"], r["id"]))]
        criteria = FilterCriteria(**filters)
        matching = [i for i in everything if criteria.matches(i)]
        start = (page - 1) * limit
        pages = math.ceil(len(matching) / limit) if matching else 0

        return CatalogPage(
            items=matching[start:start + limit],
            facet_summary=facet_summary(everything, criteria),
            pagination=PaginationMeta(
                page=page, limit=limit, total=len(matching), pages=pages,
                has_next=page < pages, has_prev=page > 1,
            ),
            currency_info=CurrencyInfo(currency=currency, exchange_rate=RATES[currency], base_currency="USD"),
        )


# ============================================================
# Quotation backend
# ============================================================

def _now():
    return datetime.now(timezone.utc)


def _totals(lines, discount_type, discount_value, vat_percent):
    subtotal = to_decimal(sum((ln.total_price for ln in lines), Decimal("0")))
    disc = discount_amount(subtotal, DiscountPolicy(discount_type, discount_value))
    vat = percent_of(subtotal - disc, vat_percent)
    return subtotal, disc, vat, to_decimal(subtotal - disc + vat)


class FakeQuotations:
    """
    Keeps quotations as ``QuotationOut`` values and applies the same status
    rules as the database service. ``fail_with`` makes the next remote call
    raise; ``delay`` makes every call slow.
    """

    def __init__(self):
        self.store: dict[int, QuotationOut] = {}
        self.calls = []
        self.fail_with = None
        self.delay = 0.0
        self.invoiced = set()
        self._next_id = 1

    async def _tick(self, name):
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            exc, self.fail_with = self.fail_with, None
            raise exc

    def _lines(self, items, currency):
        by_id = {i["id"]: i for i in BASE_ITEMS}
        lines = []
        for n, line in enumerate(items, start=1):
            p = priced(by_id[line.item_id], currency)
            lines.append(QuotationItemOut(
                id=n, item_id=p.id, name=p.name, sku=p.sku, category=p.category,
                brand=p.brand, model=p.model, year=p.year, color=p.color,
                quantity=line.quantity, unit_price=p.unit_price,
                total_price=to_decimal(p.unit_price * line.quantity),
            ))
        return lines

    def seed(self, status=QuotationStatus.draft, items=((1, 3), (2, 1)), currency="USD",
             discount_type=DiscountType.amount, discount_value=Decimal("0"), history=None):
        qid = self._next_id
        self._next_id += 1
        lines = self._lines([QuotationLineIn(item_id=i, quantity=q) for i, q in items], currency)
        subtotal, disc, vat, total = _totals(lines, discount_type, discount_value, Decimal("5"))
        entries = history or [StatusEntryOut(status=QuotationStatus.draft, changed_at=_now())]
        if entries[-1].status != status:
            entries = entries + [StatusEntryOut(status=status, changed_at=_now())]

        q = QuotationOut(
            id=qid, quotation_number=f"QT-{qid:06d}", customer_id=1, status=status,
            status_display=status_machine.display_name(status), status_history=entries,
            currency=currency, discount_type=discount_type, discount_value=discount_value,
            vat_percent=Decimal("5"), subtotal=subtotal, total_discount=disc, vat_amount=vat,
            total_amount=total, valid_till=None, notes=None, version=1,
            created_by_id=None, updated_by_id=None, created_by_name=None, updated_by_name=None,
            created_at=_now(), updated_at=None, items=lines,
        )
        self.store[qid] = q
        return q

    def _get(self, quotation_id):
        if quotation_id not in self.store:
            raise AppException(404, "Quotation not found", ErrorCode.QUOTATION_NOT_FOUND)
        return self.store[quotation_id]

    async def get_quotation(self, quotation_id, actor):
        await self._tick("get_quotation")
        return self._get(quotation_id)

    async def create_quotation(self, payload, actor):
        await self._tick("create_quotation")
        q = self.seed(
            items=[(ln.item_id, ln.quantity) for ln in payload.items],
            currency=payload.currency,
            discount_type=payload.discount_type,
            discount_value=payload.discount_value,
        )
        return q

    async def update_lines(self, quotation_id, payload, actor):
        await self._tick("update_lines")
        q = self._get(quotation_id)
        if q.version != payload.version:
            raise AppException(409, "Version conflict", ErrorCode.QUOTATION_VERSION_CONFLICT)
        currency = payload.currency or q.currency
        lines = self._lines(payload.items, currency)
        subtotal, disc, vat, total = _totals(lines, q.discount_type, q.discount_value, q.vat_percent)
        q = q.model_copy(update={
            "items": lines, "currency": currency, "subtotal": subtotal, "total_discount": disc,
            "vat_amount": vat, "total_amount": total, "version": q.version + 1,
        })
        self.store[quotation_id] = q
        return q

    async def submit_transition(self, quotation_id, target, actor, review_reason=None):
        await self._tick("submit_transition")
        q = self._get(quotation_id)
        try:
            outcome = status_machine.transition(workflow_from(q), target, actor.role)
        except AppException as exc:
            return TransitionResult(success=False, message=exc.message, error_code=exc.error_code, details=exc.details)

        entry = StatusEntryOut(status=outcome.status, changed_at=_now(), review_reason=outcome.review_reason)
        q = q.model_copy(update={
            "status": outcome.status,
            "status_display": status_machine.display_name(outcome.status),
            "status_history": q.status_history + [entry],
            "version": q.version + 1,
        })
        self.store[quotation_id] = q
        return TransitionResult(
            success=True, message=outcome.message, new_status=outcome.status,
            review_reason=outcome.review_reason, version=q.version,
        )

    async def update_discount(self, quotation_id, payload, actor):
        await self._tick("update_discount")
        q = self._get(quotation_id)
        q = q.model_copy(update={
            "discount_type": payload.discount_type,
            "discount_value": payload.discount,
            "version": q.version + 1,
        })
        self.store[quotation_id] = q
        return GatewayResult(success=True, message="Discount updated", version=q.version)

    async def delete_quotation(self, quotation_id, actor):
        await self._tick("delete_quotation")
        self.store.pop(quotation_id, None)
        return GatewayResult(success=True, message="Quotation deleted")

    async def create_invoice(self, quotation_id, fields, actor):
        await self._tick("create_invoice")
        if quotation_id in self.invoiced:
            return GatewayResult(
                success=False, message="Quotation has already been invoiced",
                error_code=ErrorCode.INVOICE_ALREADY_EXISTS,
            )
        self.invoiced.add(quotation_id)
        return GatewayResult(success=True, message="Invoice created")


# ============================================================
# Actors
# ============================================================

@pytest.fixture
def sales_actor():
    return Actor(id=2, username="sam.sales", role="sales")


@pytest.fixture
def admin_actor():
    return Actor(id=1, username="ada.admin", role="admin")


@pytest.fixture
def finance_actor():
    return Actor(id=3, username="fin.finance", role="finance")


# ============================================================
# Orchestrator wiring
# ============================================================

@pytest.fixture
def fake_catalog():
    return FakeCatalog()


@pytest.fixture
def fake_quotations():
    return FakeQuotations()


@pytest.fixture
def orchestrator(fake_catalog, fake_quotations):
    return Orchestrator(
        fake_catalog,
        fake_quotations,
        transition_timeout=0.2,
        catalog_timeout=0.2,
    )


@pytest.fixture
async def session(orchestrator, sales_actor):
    s = CartSession(sales_actor, currency="USD")
    await orchestrator.open(s)
    return s


def session_for(actor, currency="USD"):
    return CartSession(actor, currency=currency)


# ============================================================
# Database
# ============================================================

@pytest.fixture
async def db():
    await reset_models()

    async with AsyncSessionLocal() as session:
        yield session

    await dispose_engine()


@pytest.fixture
async def seeded(db):
    """Three users, one customer, the first three catalog items and an AED rate."""
    admin = User(username="ada.admin", role="admin")
    sales = User(username="sam.sales", role="sales")
    finance = User(username="fin.finance", role="finance")
    customer = Customer(customer_code="CUST-001", name="Acme Interiors", email="buyer@acme.test")

    db.add_all([admin, sales, finance, customer])
    db.add(CurrencyRate(code="AED", name="UAE Dirham", rate_to_base=Decimal("3.67")))
    db.add_all([
        CatalogItem(
            id=raw["id"], name=raw["name"], sku=raw["sku"], category=raw["category"],
            brand=raw["brand"], model=raw["model"], year=raw["year"], color=raw["color"],
            base_price=raw["base_price"], stock_quantity=5,
        )
        for raw in BASE_ITEMS[:3]
    ])
    await db.commit()

    return SimpleNamespace(admin=admin, sales=sales, finance=finance, customer=customer)
