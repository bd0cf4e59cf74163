# salesdesk/services/cart/session.py

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from salesdesk.core.config import DEFAULT_CURRENCY, DEFAULT_VAT_PERCENT
from salesdesk.constants.pagination import DEFAULT_LIMIT
from salesdesk.services.billing.status_machine import WorkflowState
from salesdesk.services.cart.catalog_cache import CatalogCache
from salesdesk.services.cart.currency_reconciler import CurrencyReconciler
from salesdesk.services.cart.filter_view import FilterCriteria
from salesdesk.services.cart.pagination import PaginationCursor
from salesdesk.services.cart.pricing import DiscountPolicy, PricingSummary, price
from salesdesk.services.cart.selection_store import SelectionStore


@dataclass(frozen=True)
class Actor:
    id: Optional[int]
    username: str
    role: str

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(id=user.id, username=user.username, role=user.role)


@dataclass
class BoundQuotation:
    """The stored quotation a session is editing. ``workflow`` only ever holds remotely confirmed state."""

    id: int
    quotation_number: str
    customer_id: int
    workflow: WorkflowState
    version: int
    line_details: dict = field(default_factory=dict)

    @property
    def status(self):
        return self.workflow.status


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CartSession:
    """
    Everything one user's quotation builder holds between requests.

    Mutating intents run under ``lock`` so that no two of them interleave
    on the same session.
    """

    def __init__(
        self,
        actor: Actor,
        *,
        currency: str = DEFAULT_CURRENCY,
        vat_percent: Decimal = DEFAULT_VAT_PERCENT,
        limit: int = DEFAULT_LIMIT,
        session_id: str | None = None,
    ):
        self.id = session_id or str(uuid.uuid4())
        self.actor = actor
        self.vat_percent = vat_percent

        self.selection = SelectionStore()
        self.filters = FilterCriteria()
        self.search_term: str | None = None
        self.pagination = PaginationCursor(limit=limit)
        self.catalog = CatalogCache()
        self.reconciler = CurrencyReconciler(currency, self.selection, self.pagination, self.catalog)
        self.discount = DiscountPolicy()
        self.quotation: BoundQuotation | None = None

        self.lock = asyncio.Lock()
        self.created_at = _now()
        self.last_activity = self.created_at

    @property
    def currency(self) -> str:
        return self.reconciler.active_currency

    def touch(self) -> None:
        self.last_activity = _now()

    def idle_for(self, now: datetime | None = None) -> float:
        return ((now or _now()) - self.last_activity).total_seconds()

    def pricing(self) -> PricingSummary:
        return price(self.selection.lines(), self.discount)

    def reset(self) -> None:
        """Return to a fresh builder. Currency and page size are kept."""
        self.selection.clear()
        self.filters = FilterCriteria()
        self.search_term = None
        self.pagination.reset()
        self.pagination.resume()
        self.catalog.invalidate()
        self.reconciler.pending = None
        self.discount = DiscountPolicy()
        self.quotation = None

    def __repr__(self):
        return f"<CartSession id={self.id} user={self.actor.username} items={len(self.selection)}>"
