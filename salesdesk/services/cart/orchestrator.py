# salesdesk/services/cart/orchestrator.py
"""
Turns user intents against a cart session into component calls.

Every intent that changes session state runs under the session lock.
Remote outcomes (status changes, discount writes on a stored quotation,
deletes, invoices) are committed to the session only after the
collaborator has answered with success; on failure the session keeps its
last confirmed state.

Catalog reads are the one exception to holding the lock across an await:
browsing intents take a request token under the lock, fetch without it,
and the cache drops any reply that has since been superseded.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from salesdesk.core.config import CATALOG_TIMEOUT_SECONDS, TRANSITION_TIMEOUT_SECONDS
from salesdesk.core.exceptions import (
    AppException,
    NetworkError,
    NotFound,
    Timeout,
    ValidationError,
)
from salesdesk.constants.error_codes import ErrorCode
from salesdesk.models.enums.quotation_status import QuotationStatus
from salesdesk.schemas.billing.invoice_schemas import InvoiceFields
from salesdesk.schemas.billing.quotation_schemas import (
    DiscountUpdate,
    GatewayResult,
    QuotationCreate,
    QuotationLineIn,
    QuotationLinesUpdate,
    QuotationOut,
)
from salesdesk.schemas.cart.cart_schemas import (
    BoundQuotationOut,
    CartLineOut,
    CatalogRowOut,
    PaginationOut,
    PendingChangeOut,
    PricingOut,
    SessionView,
)
from salesdesk.services.billing import status_machine
from salesdesk.services.billing.status_machine import StatusEntry, TransitionOutcome, WorkflowState
from salesdesk.services.cart.currency_reconciler import CurrencyChangeRequest
from salesdesk.services.cart.filter_view import hidden_ids, visible_ids, visible_items
from salesdesk.services.cart.ports import CatalogGateway, QuotationGateway, raise_for_result
from salesdesk.services.cart.pricing import DiscountPolicy
from salesdesk.services.cart.session import BoundQuotation, CartSession
from salesdesk.utils.logger import get_logger

logger = get_logger("salesdesk.services.cart")

S = QuotationStatus


def workflow_from(quotation: QuotationOut) -> WorkflowState:
    history = tuple(
        StatusEntry(h.status, h.changed_at, h.actor_id, h.review_reason)
        for h in quotation.status_history
    )
    if not history:
        history = (StatusEntry(quotation.status, datetime.now(timezone.utc)),)
    return WorkflowState(status=quotation.status, history=history)


class Orchestrator:
    def __init__(
        self,
        catalog: CatalogGateway,
        quotations: QuotationGateway,
        *,
        transition_timeout: float = TRANSITION_TIMEOUT_SECONDS,
        catalog_timeout: float = CATALOG_TIMEOUT_SECONDS,
    ):
        self.catalog = catalog
        self.quotations = quotations
        self.transition_timeout = transition_timeout
        self.catalog_timeout = catalog_timeout

    # =====================================================
    # PLUMBING
    # =====================================================
    async def _call(self, awaitable, operation: str, timeout: float):
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError:
            logger.warning("Collaborator timed out", extra={"operation": operation})
            raise Timeout(operation)
        except NetworkError:
            logger.warning("Collaborator unreachable", extra={"operation": operation})
            raise

    async def _remote(self, awaitable, operation: str) -> GatewayResult:
        result = await self._call(awaitable, operation, self.transition_timeout)
        raise_for_result(result)
        return result

    def _bound(self, session: CartSession) -> BoundQuotation:
        if session.quotation is None:
            raise NotFound("No quotation is open in this session", ErrorCode.QUOTATION_NOT_FOUND)
        return session.quotation

    def _cart_status(self, session: CartSession) -> QuotationStatus:
        return session.quotation.status if session.quotation else S.draft

    def _require_mutable_cart(self, session: CartSession) -> None:
        session.reconciler.ensure_no_pending()
        status_machine.check_cart_edit(self._cart_status(session), session.actor.role)

    async def _reload(self, session: CartSession, *, master: bool = False) -> None:
        currency = session.currency
        filters = session.filters.active()
        page, limit = session.pagination.page, session.pagination.limit

        if master:
            token = session.catalog.begin_master_request()
            items = await self._call(
                self.catalog.fetch_catalog_all(currency), "Catalog fetch", self.catalog_timeout
            )
            session.catalog.accept_master(token, currency, items)

        token = session.catalog.begin_page_request()
        data = await self._call(
            self.catalog.fetch_catalog_page(currency, filters, page, limit),
            "Catalog fetch",
            self.catalog_timeout,
        )
        if session.catalog.accept_page(token, currency, data):
            session.pagination.apply_meta(data.pagination)

    async def _prefetch(self, session: CartSession, currency: str):
        """Fetch a fresh master list and first page in another currency, touching nothing."""
        items = await self._call(
            self.catalog.fetch_catalog_all(currency), "Catalog fetch", self.catalog_timeout
        )
        page = await self._call(
            self.catalog.fetch_catalog_page(currency, session.filters.active(), 1, session.pagination.limit),
            "Catalog fetch",
            self.catalog_timeout,
        )
        return items, page

    def _install(self, session: CartSession, fetched) -> None:
        items, page = fetched
        session.catalog.accept_master(session.catalog.begin_master_request(), session.currency, items)
        if session.catalog.accept_page(session.catalog.begin_page_request(), session.currency, page):
            session.pagination.apply_meta(page.pagination)

    async def _apply_after_fetch(self, session: CartSession, request: CurrencyChangeRequest, commit):
        # the session only changes once the new catalog is in hand
        fetched = await self._prefetch(session, request.proposed_currency)
        commit()
        self._install(session, fetched)

    def _bind(self, session: CartSession, quotation: QuotationOut) -> bool:
        """Load a stored quotation into the session. True if the currency moved."""
        session.selection.clear()
        for line in quotation.items:
            session.selection.set_line(line.item_id, line.quantity, line.unit_price)

        session.discount = DiscountPolicy(quotation.discount_type, quotation.discount_value)
        session.vat_percent = quotation.vat_percent

        changed = quotation.currency.upper() != session.currency
        session.reconciler.force(quotation.currency)
        if changed:
            session.catalog.invalidate()
            session.pagination.reset()

        session.quotation = BoundQuotation(
            id=quotation.id,
            quotation_number=quotation.quotation_number,
            customer_id=quotation.customer_id,
            workflow=workflow_from(quotation),
            version=quotation.version,
            line_details={i.item_id: i for i in quotation.items},
        )
        return changed

    # =====================================================
    # SESSION LIFECYCLE
    # =====================================================
    async def open(self, session: CartSession, quotation_id: Optional[int] = None) -> None:
        if quotation_id is not None:
            await self.load_quotation(session, quotation_id)
            return
        async with session.lock:
            await self._reload(session, master=True)

    async def close(self, session: CartSession) -> None:
        async with session.lock:
            session.reset()
            logger.info("Cart session reset", extra={"session_id": session.id})

    # =====================================================
    # SELECTION
    # =====================================================
    async def select_item(self, session: CartSession, item_id: int) -> int:
        async with session.lock:
            self._require_mutable_cart(session)
            item = session.catalog.get(item_id)
            if item is None:
                raise NotFound("Catalog item not found", ErrorCode.CATALOG_ITEM_NOT_FOUND)
            session.touch()
            return session.selection.select(item_id, item.unit_price)

    async def deselect_item(self, session: CartSession, item_id: int) -> bool:
        async with session.lock:
            self._require_mutable_cart(session)
            session.touch()
            return session.selection.deselect(item_id)

    async def adjust_quantity(self, session: CartSession, item_id: int, delta: int) -> int:
        async with session.lock:
            self._require_mutable_cart(session)
            session.touch()
            return session.selection.adjust_quantity(item_id, delta)

    async def set_discount(self, session: CartSession, discount_type, value) -> DiscountPolicy:
        async with session.lock:
            session.reconciler.ensure_no_pending()
            policy = DiscountPolicy(discount_type, value)
            status_machine.check_discount_edit(self._cart_status(session), session.actor.role)

            q = session.quotation
            if q is not None:
                result = await self._remote(
                    self.quotations.update_discount(
                        q.id,
                        DiscountUpdate(discount=policy.value, discount_type=policy.type),
                        session.actor,
                    ),
                    "Discount update",
                )
                if result.version is not None:
                    q.version = result.version

            session.discount = policy
            session.touch()
            return policy

    # =====================================================
    # BROWSING
    # =====================================================
    async def change_filters(self, session: CartSession, **changes) -> None:
        async with session.lock:
            session.filters = session.filters.update(**changes)
            session.pagination.reset()
            session.touch()
        await self._reload(session)

    async def search(self, session: CartSession, term: Optional[str]) -> None:
        term = (term or "").strip() or None
        async with session.lock:
            session.search_term = term
            session.touch()
            if term:
                session.pagination.suspend()
                if session.catalog.master:
                    return
            else:
                session.pagination.resume()
                session.pagination.page = 1
        await self._reload(session, master=term is not None)

    async def go_to_page(self, session: CartSession, page: int) -> bool:
        async with session.lock:
            moved = session.pagination.go_to_page(page)
            session.touch()
        if moved:
            await self._reload(session)
        return moved

    async def set_limit(self, session: CartSession, limit: int) -> None:
        async with session.lock:
            session.pagination.set_limit(limit)
            session.touch()
        await self._reload(session)

    # =====================================================
    # CURRENCY
    # =====================================================
    async def change_currency(self, session: CartSession, currency: str) -> CurrencyChangeRequest:
        async with session.lock:
            if session.quotation is not None:
                status_machine.check_cart_edit(session.quotation.status, session.actor.role)
            request = session.reconciler.plan_change(currency)
            session.touch()
            if request.is_noop or request.requires_confirmation:
                return session.reconciler.settle(request)
            await self._apply_after_fetch(session, request, lambda: session.reconciler.settle(request))
            return request

    async def refresh_inventory(self, session: CartSession) -> CurrencyChangeRequest:
        async with session.lock:
            if session.quotation is not None and not session.selection.is_empty:
                status_machine.check_cart_edit(session.quotation.status, session.actor.role)
            request = session.reconciler.plan_refresh()
            session.touch()
            if request.requires_confirmation:
                return session.reconciler.settle(request)
            await self._apply_after_fetch(session, request, lambda: session.reconciler.settle(request))
            return request

    async def confirm_pending(self, session: CartSession) -> CurrencyChangeRequest:
        async with session.lock:
            request = session.reconciler.peek_pending()
            session.touch()
            await self._apply_after_fetch(session, request, session.reconciler.confirm)
            return request

    async def cancel_pending(self, session: CartSession) -> CurrencyChangeRequest:
        async with session.lock:
            session.touch()
            return session.reconciler.cancel()

    # =====================================================
    # STATUS
    # =====================================================
    async def request_transition(self, session: CartSession, target) -> TransitionOutcome:
        async with session.lock:
            q = self._bound(session)
            outcome = status_machine.transition(
                q.workflow, target, session.actor.role, actor_id=session.actor.id
            )

            result = await self._remote(
                self.quotations.submit_transition(
                    q.id, outcome.status, session.actor, outcome.review_reason
                ),
                "Status update",
            )
            if result.new_status != outcome.status:
                raise AppException(
                    409,
                    "Quotation status changed elsewhere; reload it",
                    ErrorCode.CONFLICT,
                    {"expected": outcome.status.value, "actual": str(result.new_status)},
                )

            q.workflow = outcome.state
            if result.version is not None:
                q.version = result.version
            session.touch()

            logger.info(
                "Quotation status committed",
                extra={
                    "quotation_id": q.id,
                    "from_status": outcome.previous.value,
                    "to_status": outcome.status.value,
                },
            )
            return outcome

    # =====================================================
    # QUOTATION PERSISTENCE
    # =====================================================
    async def submit_cart(self, session: CartSession, customer_id: int, notes: Optional[str] = None) -> QuotationOut:
        async with session.lock:
            if session.quotation is not None:
                raise AppException(
                    409,
                    "This session already holds a quotation; save its lines instead",
                    ErrorCode.CONFLICT,
                )
            self._require_mutable_cart(session)
            if session.selection.is_empty:
                raise ValidationError("Select at least one item")

            payload = QuotationCreate(
                customer_id=customer_id,
                currency=session.currency,
                items=[
                    QuotationLineIn(item_id=item_id, quantity=qty)
                    for item_id, qty in session.selection.items().items()
                ],
                discount_type=session.discount.type,
                discount_value=session.discount.value,
                vat_percent=session.vat_percent,
                notes=notes,
            )
            quotation = await self._call(
                self.quotations.create_quotation(payload, session.actor),
                "Quotation create",
                self.transition_timeout,
            )
            self._bind(session, quotation)
            session.touch()
            return quotation

    async def load_quotation(self, session: CartSession, quotation_id: int) -> QuotationOut:
        async with session.lock:
            session.reconciler.ensure_no_pending()
            quotation = await self._call(
                self.quotations.get_quotation(quotation_id, session.actor),
                "Quotation load",
                self.transition_timeout,
            )
            if self._bind(session, quotation) or not session.catalog.master:
                await self._reload(session, master=True)
            session.touch()
            return quotation

    async def save_lines(self, session: CartSession) -> QuotationOut:
        async with session.lock:
            q = self._bound(session)
            self._require_mutable_cart(session)
            if session.selection.is_empty:
                raise ValidationError("A quotation needs at least one item")

            payload = QuotationLinesUpdate(
                items=[
                    QuotationLineIn(item_id=item_id, quantity=qty)
                    for item_id, qty in session.selection.items().items()
                ],
                version=q.version,
                currency=session.currency,
            )
            quotation = await self._call(
                self.quotations.update_lines(q.id, payload, session.actor),
                "Quotation update",
                self.transition_timeout,
            )
            self._bind(session, quotation)
            session.touch()
            return quotation

    async def delete_quotation(self, session: CartSession) -> GatewayResult:
        async with session.lock:
            q = self._bound(session)
            status_machine.check_delete(q.status, session.actor.role)

            result = await self._remote(
                self.quotations.delete_quotation(q.id, session.actor),
                "Quotation delete",
            )
            logger.info("Quotation deleted", extra={"quotation_id": q.id})
            session.reset()
            return result

    async def create_invoice(self, session: CartSession, fields: InvoiceFields) -> GatewayResult:
        async with session.lock:
            q = self._bound(session)
            status_machine.check_invoice(q.status, session.actor.role)

            result = await self._remote(
                self.quotations.create_invoice(q.id, fields, session.actor),
                "Invoice create",
            )
            session.touch()
            return result

    # =====================================================
    # VIEW
    # =====================================================
    def allowed_actions(self, session: CartSession) -> list[str]:
        role = session.actor.role
        if session.quotation is not None:
            return status_machine.allowed_actions(session.quotation.status, role)

        actions = [
            a for a in status_machine.allowed_actions(S.draft, role)
            if a in ("edit_cart", "edit_discount")
        ]
        if "edit_cart" in actions:
            actions.append("submit")
        return actions

    def view(self, session: CartSession) -> SessionView:
        master = list(session.catalog.master.values())
        term = session.search_term
        shown = visible_ids(master, session.filters, term)
        hidden = hidden_ids(session.selection, shown)

        rows = visible_items(master, session.filters, term) if term else session.catalog.page_items

        q = session.quotation
        details = q.line_details if q else {}

        lines = []
        for line in session.selection.lines():
            source = session.catalog.get(line.item_id) or details.get(line.item_id)
            lines.append(CartLineOut(
                item_id=line.item_id,
                name=getattr(source, "name", None),
                sku=getattr(source, "sku", None),
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
                hidden=line.item_id in hidden,
            ))

        summary = session.pricing()
        pending = session.reconciler.pending

        bound = None
        if q is not None:
            last = q.workflow.history[-1] if q.workflow.history else None
            bound = BoundQuotationOut(
                id=q.id,
                quotation_number=q.quotation_number,
                customer_id=q.customer_id,
                status=q.status,
                status_display=status_machine.display_name(q.status),
                review_reason=last.review_reason if last and q.status is S.review else None,
                version=q.version,
            )

        return SessionView(
            session_id=session.id,
            currency=session.currency,
            displayed_currency=session.reconciler.displayed_currency,
            pending_change=PendingChangeOut(**pending.as_dict()) if pending else None,
            filters=session.filters.active(),
            facets=session.catalog.facets,
            search_term=term,
            items=[
                CatalogRowOut(
                    id=i.id,
                    name=i.name,
                    sku=i.sku,
                    category=i.category,
                    brand=i.brand,
                    model=i.model,
                    year=i.year,
                    color=i.color,
                    unit_price=i.unit_price,
                    stock_quantity=i.stock_quantity,
                    selected=session.selection.is_selected(i.id),
                )
                for i in rows
            ],
            selected=lines,
            pricing=PricingOut(
                subtotal=summary.subtotal,
                discount_type=session.discount.type,
                discount_value=session.discount.value,
                discount_amount=summary.discount_amount,
                final_total=summary.final_total,
            ),
            pagination=PaginationOut(**session.pagination.snapshot()),
            quotation=bound,
            allowed_actions=self.allowed_actions(session),
        )
