from functools import lru_cache

from fastapi import APIRouter, Depends

from salesdesk.utils.check_roles import require_role
from salesdesk.utils.response import success_response, APIResponse

from salesdesk.schemas.cart.cart_schemas import (
    CurrencyIn,
    DiscountIn,
    FilterUpdate,
    LimitUpdate,
    PageUpdate,
    QuantityAdjust,
    SearchUpdate,
    SessionInvoiceIn,
    SessionOpen,
    SessionTransitionIn,
    SessionView,
    SubmitCartIn,
)
from salesdesk.services.cart.db_gateways import DbCatalogGateway, DbQuotationGateway
from salesdesk.services.cart.orchestrator import Orchestrator
from salesdesk.services.cart.session import Actor, CartSession
from salesdesk.services.cart.session_registry import registry

router = APIRouter(
    prefix="/cart/sessions",
    tags=["Cart"],
)

ALL_ROLES = ["admin", "sales", "finance"]


# =====================================================
# DEPENDENCIES
# =====================================================
@lru_cache
def get_orchestrator() -> Orchestrator:
    return Orchestrator(DbCatalogGateway(), DbQuotationGateway())


def get_registry():
    return registry


def get_actor(user=Depends(require_role(ALL_ROLES))) -> Actor:
    return Actor.from_user(user)


def get_session(
    session_id: str,
    actor: Actor = Depends(get_actor),
    sessions=Depends(get_registry),
) -> CartSession:
    return sessions.get(session_id, actor)


def _view(message: str, orchestrator: Orchestrator, session: CartSession, **meta):
    return success_response(message, orchestrator.view(session), meta or None)


# =====================================================
# LIFECYCLE
# =====================================================
@router.post("", response_model=APIResponse[SessionView])
async def open_session_api(
    payload: SessionOpen,
    actor: Actor = Depends(get_actor),
    sessions=Depends(get_registry),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    session = sessions.create(actor, payload.currency)
    try:
        await orchestrator.open(session, payload.quotation_id)
    except Exception:
        sessions.discard(session.id)
        raise
    return _view("Cart session opened", orchestrator, session)


@router.get("/{session_id}", response_model=APIResponse[SessionView])
async def get_session_api(
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    session.touch()
    return _view("Cart session retrieved", orchestrator, session)


@router.delete("/{session_id}", response_model=APIResponse[None])
async def close_session_api(
    session: CartSession = Depends(get_session),
    sessions=Depends(get_registry),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.close(session)
    sessions.discard(session.id)
    return success_response("Cart session closed")


# =====================================================
# SELECTION
# =====================================================
@router.post("/{session_id}/items/{item_id}", response_model=APIResponse[SessionView])
async def select_item_api(
    item_id: int,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.select_item(session, item_id)
    return _view("Item added to cart", orchestrator, session)


@router.delete("/{session_id}/items/{item_id}", response_model=APIResponse[SessionView])
async def deselect_item_api(
    item_id: int,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.deselect_item(session, item_id)
    return _view("Item removed from cart", orchestrator, session)


@router.patch("/{session_id}/items/{item_id}", response_model=APIResponse[SessionView])
async def adjust_quantity_api(
    item_id: int,
    payload: QuantityAdjust,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.adjust_quantity(session, item_id, payload.delta)
    return _view("Quantity updated", orchestrator, session)


@router.put("/{session_id}/discount", response_model=APIResponse[SessionView])
async def set_discount_api(
    payload: DiscountIn,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.set_discount(session, payload.type, payload.value)
    return _view("Discount updated", orchestrator, session)


# =====================================================
# BROWSING
# =====================================================
@router.put("/{session_id}/filters", response_model=APIResponse[SessionView])
async def change_filters_api(
    payload: FilterUpdate,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.change_filters(session, **payload.model_dump(exclude_unset=True))
    return _view("Filters applied", orchestrator, session)


@router.put("/{session_id}/search", response_model=APIResponse[SessionView])
async def search_api(
    payload: SearchUpdate,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.search(session, payload.term)
    return _view("Search applied", orchestrator, session)


@router.put("/{session_id}/page", response_model=APIResponse[SessionView])
async def go_to_page_api(
    payload: PageUpdate,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.go_to_page(session, payload.page)
    return _view("Page loaded", orchestrator, session)


@router.put("/{session_id}/limit", response_model=APIResponse[SessionView])
async def set_limit_api(
    payload: LimitUpdate,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.set_limit(session, payload.limit)
    return _view("Page size updated", orchestrator, session)


# =====================================================
# CURRENCY
# =====================================================
@router.put("/{session_id}/currency", response_model=APIResponse[SessionView])
async def change_currency_api(
    payload: CurrencyIn,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    request = await orchestrator.change_currency(session, payload.currency)
    message = "Confirm currency change to clear the cart" if request.requires_confirmation else "Currency updated"
    return _view(message, orchestrator, session, requires_confirmation=request.requires_confirmation)


@router.post("/{session_id}/refresh", response_model=APIResponse[SessionView])
async def refresh_inventory_api(
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    request = await orchestrator.refresh_inventory(session)
    message = "Confirm refresh to clear the cart" if request.requires_confirmation else "Inventory refreshed"
    return _view(message, orchestrator, session, requires_confirmation=request.requires_confirmation)


@router.post("/{session_id}/pending/confirm", response_model=APIResponse[SessionView])
async def confirm_pending_api(
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.confirm_pending(session)
    return _view("Change applied, cart cleared", orchestrator, session)


@router.post("/{session_id}/pending/cancel", response_model=APIResponse[SessionView])
async def cancel_pending_api(
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.cancel_pending(session)
    return _view("Change cancelled", orchestrator, session)


# =====================================================
# QUOTATION
# =====================================================
@router.post("/{session_id}/submit", response_model=APIResponse[SessionView])
async def submit_cart_api(
    payload: SubmitCartIn,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    quotation = await orchestrator.submit_cart(session, payload.customer_id, payload.notes)
    return _view(f"Quotation {quotation.quotation_number} created", orchestrator, session)


@router.post("/{session_id}/save", response_model=APIResponse[SessionView])
async def save_lines_api(
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.save_lines(session)
    return _view("Quotation updated", orchestrator, session)


@router.post("/{session_id}/transitions", response_model=APIResponse[SessionView])
async def request_transition_api(
    payload: SessionTransitionIn,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    outcome = await orchestrator.request_transition(session, payload.target)
    return _view(
        outcome.message,
        orchestrator,
        session,
        from_status=outcome.previous.value,
        to_status=outcome.status.value,
        review_reason=outcome.review_reason.value if outcome.review_reason else None,
    )


@router.delete("/{session_id}/quotation", response_model=APIResponse[SessionView])
async def delete_quotation_api(
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    await orchestrator.delete_quotation(session)
    return _view("Quotation deleted", orchestrator, session)


@router.post("/{session_id}/invoice", response_model=APIResponse[SessionView])
async def create_invoice_api(
    payload: SessionInvoiceIn,
    session: CartSession = Depends(get_session),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.create_invoice(session, payload)
    invoice = result.details or {}
    return _view(
        "Invoice created",
        orchestrator,
        session,
        invoice_id=invoice.get("id"),
        invoice_number=invoice.get("invoice_number"),
    )
