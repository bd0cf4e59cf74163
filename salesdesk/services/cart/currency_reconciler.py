# salesdesk/services/cart/currency_reconciler.py
"""
Currency changes and inventory refreshes against a possibly non-empty cart.

Unit prices in the cart were captured in the active currency, so switching
currency (or re-pulling prices) would leave the totals meaningless. An empty
cart switches immediately; a non-empty one stages the request until the
user confirms (clear the cart, then switch) or cancels (nothing changes).
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional

from salesdesk.constants.error_codes import ErrorCode
from salesdesk.core.exceptions import AppException, StaleCurrencyState, ValidationError
from salesdesk.utils.logger import get_logger

logger = get_logger("salesdesk.services.cart")


class ChangeKind(str, Enum):
    currency = "currency"
    refresh = "refresh"


@dataclass(frozen=True)
class CurrencyChangeRequest:
    proposed_currency: str
    previous_currency: str
    requires_confirmation: bool
    kind: ChangeKind = ChangeKind.currency

    @property
    def is_noop(self) -> bool:
        return self.kind is ChangeKind.currency and self.proposed_currency == self.previous_currency

    def as_dict(self) -> dict:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


def normalise_currency(code) -> str:
    code = str(code or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError("Currency must be a 3-letter code", {"currency": code})
    return code


class CurrencyReconciler:
    """
    Owns the active currency and at most one pending change. Applying a
    change clears the selection, the cached catalog and the page position;
    refetching is left to the caller.
    """

    def __init__(self, currency: str, selection, pagination, catalog):
        self.active_currency = normalise_currency(currency)
        self.pending: Optional[CurrencyChangeRequest] = None
        self._selection = selection
        self._pagination = pagination
        self._catalog = catalog

    @property
    def displayed_currency(self) -> str:
        """What the currency control shows: the proposal while it awaits an answer."""
        if self.pending is not None:
            return self.pending.proposed_currency
        return self.active_currency

    def ensure_no_pending(self) -> None:
        if self.pending is not None:
            raise StaleCurrencyState(self.pending.as_dict())

    # -------------------------
    # REQUESTS
    # -------------------------
    def plan_change(self, proposed) -> CurrencyChangeRequest:
        """Describe what a change would do without touching any state."""
        self.ensure_no_pending()
        proposed = normalise_currency(proposed)
        return CurrencyChangeRequest(
            proposed_currency=proposed,
            previous_currency=self.active_currency,
            requires_confirmation=not self._selection.is_empty and proposed != self.active_currency,
        )

    def plan_refresh(self) -> CurrencyChangeRequest:
        self.ensure_no_pending()
        return CurrencyChangeRequest(
            proposed_currency=self.active_currency,
            previous_currency=self.active_currency,
            requires_confirmation=not self._selection.is_empty,
            kind=ChangeKind.refresh,
        )

    def request_change(self, proposed) -> CurrencyChangeRequest:
        return self.settle(self.plan_change(proposed))

    def request_refresh(self) -> CurrencyChangeRequest:
        return self.settle(self.plan_refresh())

    def settle(self, request: CurrencyChangeRequest) -> CurrencyChangeRequest:
        """Stage a request that needs an answer, apply one that does not."""
        if request.is_noop:
            return request
        if request.requires_confirmation:
            self.pending = request
            logger.info("Currency change staged", extra=request.as_dict())
            return request
        self._apply(request)
        return request

    # -------------------------
    # RESOLUTION
    # -------------------------
    def peek_pending(self) -> CurrencyChangeRequest:
        if self.pending is None:
            raise AppException(409, "No currency change is awaiting confirmation", ErrorCode.NO_PENDING_CHANGE)
        return self.pending

    def confirm(self) -> CurrencyChangeRequest:
        request = self._take_pending()
        self._apply(request)
        return request

    def cancel(self) -> CurrencyChangeRequest:
        request = self._take_pending()
        logger.info("Currency change cancelled", extra=request.as_dict())
        return request

    def force(self, currency) -> None:
        """Adopt a currency outright, e.g. when loading a stored quotation."""
        self.pending = None
        self.active_currency = normalise_currency(currency)

    def _take_pending(self) -> CurrencyChangeRequest:
        request = self.peek_pending()
        self.pending = None
        return request

    def _apply(self, request: CurrencyChangeRequest) -> None:
        self._selection.clear()
        self._catalog.invalidate()
        self._pagination.reset()
        self.active_currency = request.proposed_currency
        logger.info("Currency change applied", extra=request.as_dict())
