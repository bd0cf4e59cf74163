from decimal import Decimal
from datetime import datetime, timedelta, timezone
import logging
from typing import Iterable, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, asc, desc, or_
from sqlalchemy.orm import selectinload

from salesdesk.models.billing.quotation_models import Quotation, QuotationItem, QuotationStatusHistory
from salesdesk.models.masters.customer_models import Customer
from salesdesk.models.enums.quotation_status import QuotationStatus

from salesdesk.schemas.billing.quotation_schemas import (
    DiscountUpdate,
    ListPagination,
    QuotationCreate,
    QuotationLineIn,
    QuotationLinesUpdate,
    QuotationOut,
    QuotationItemOut,
    QuotationListData,
    QuotationListItem,
    StatusEntryOut,
)

from salesdesk.core.config import DEFAULT_VAT_PERCENT, QUOTATION_VALIDITY_DAYS
from salesdesk.core.exceptions import AlreadyInTargetState, AppException, InvalidTransition, ValidationError
from salesdesk.constants.error_codes import ErrorCode
from salesdesk.constants.activity_codes import ActivityCode
from salesdesk.constants.cart import MAX_LINE_QUANTITY
from salesdesk.services.billing import status_machine
from salesdesk.services.billing.status_machine import StatusEntry, TransitionOutcome, WorkflowState
from salesdesk.services.cart.pricing import DiscountPolicy, discount_amount
from salesdesk.services.catalog.catalog_service import get_items_priced
from salesdesk.utils.activity_helpers import emit_activity
from salesdesk.utils.decimal_utils import percent_of, to_decimal

logger = logging.getLogger(__name__)

S = QuotationStatus

# Named work queues used by the back office screens.
QUEUES = {
    "review-orders": [S.review],
    "accepted-orders": [S.accepted, S.booked],
    "approved-orders": [S.approved, S.confirmed],
}

SORT_FIELDS = {
    "createdAt": Quotation.created_at,
    "created_at": Quotation.created_at,
    "totalAmount": Quotation.total_amount,
    "total_amount": Quotation.total_amount,
    "quotationNumber": Quotation.quotation_number,
    "quotation_number": Quotation.quotation_number,
}


# =====================================================
# TOTALS
# =====================================================
def recalculate_totals(q: Quotation) -> None:
    """VAT applies to the discounted amount."""
    q.subtotal = to_decimal(sum((Decimal(str(i.total_price)) for i in q.items), Decimal("0")))
    policy = DiscountPolicy(q.discount_type, q.discount_value)
    q.total_discount = discount_amount(q.subtotal, policy)
    q.vat_amount = percent_of(q.subtotal - q.total_discount, q.vat_percent)
    q.total_amount = to_decimal(q.subtotal - q.total_discount + q.vat_amount)


# =====================================================
# LOADERS
# =====================================================
async def _get_quotation(
    db: AsyncSession,
    quotation_id: int,
    *,
    fresh: bool = False,
) -> Quotation:
    query = (
        select(Quotation)
        .options(
            selectinload(Quotation.items),
            selectinload(Quotation.status_history),
        )
        .where(
            Quotation.id == quotation_id,
            Quotation.is_deleted.is_(False),
        )
    )
    if fresh:
        query = query.execution_options(populate_existing=True)

    result = await db.execute(query)
    q = result.scalar_one_or_none()
    if not q:
        raise AppException(404, "Quotation not found", ErrorCode.QUOTATION_NOT_FOUND)
    return q


def _merge_lines(lines: Iterable[QuotationLineIn]) -> dict[int, int]:
    merged: dict[int, int] = {}
    for line in lines:
        merged[line.item_id] = merged.get(line.item_id, 0) + line.quantity
        if merged[line.item_id] > MAX_LINE_QUANTITY:
            raise ValidationError(
                "Quantity exceeds the per-line maximum",
                {"item_id": line.item_id, "max": MAX_LINE_QUANTITY},
            )
    return merged


async def _build_items(
    db: AsyncSession,
    lines: List[QuotationLineIn],
    currency: str,
    user,
) -> List[QuotationItem]:
    if not lines:
        raise AppException(400, "Quotation must contain at least one item", ErrorCode.VALIDATION_ERROR)

    quantities = _merge_lines(lines)
    priced = await get_items_priced(db, quantities, currency)

    return [
        QuotationItem(
            item_id=item_id,
            name=p.name,
            sku=p.sku,
            category=p.category,
            brand=p.brand,
            model=p.model,
            year=p.year,
            color=p.color,
            quantity=qty,
            unit_price=p.unit_price,
            total_price=to_decimal(p.unit_price * qty),
            created_by_id=user.id,
            updated_by_id=user.id,
        )
        for item_id, qty in quantities.items()
        for p in [priced[item_id]]
    ]


# =====================================================
# MAPPING
# =====================================================
def workflow_state(q: Quotation) -> WorkflowState:
    history = tuple(
        StatusEntry(h.status, h.changed_at, h.actor_id, h.review_reason)
        for h in q.status_history
    )
    return WorkflowState(status=q.status, history=history)


def _map_quotation(q: Quotation, user=None) -> QuotationOut:
    return QuotationOut(
        id=q.id,
        quotation_number=q.quotation_number,
        customer_id=q.customer_id,
        status=q.status,
        status_display=status_machine.display_name(q.status),
        status_history=[
            StatusEntryOut(
                status=h.status,
                changed_at=h.changed_at,
                actor_id=h.actor_id,
                review_reason=h.review_reason,
            )
            for h in q.status_history
        ],
        currency=q.currency,
        discount_type=q.discount_type,
        discount_value=q.discount_value,
        vat_percent=q.vat_percent,
        subtotal=q.subtotal,
        total_discount=q.total_discount,
        vat_amount=q.vat_amount,
        total_amount=q.total_amount,
        valid_till=q.valid_till,
        notes=q.notes,
        version=q.version,
        created_by_id=q.created_by_id,
        updated_by_id=q.updated_by_id,
        created_by_name=q.created_by_name,
        updated_by_name=q.updated_by_name,
        created_at=q.created_at,
        updated_at=q.updated_at,
        items=[
            QuotationItemOut(
                id=i.id,
                item_id=i.item_id,
                name=i.name,
                sku=i.sku,
                category=i.category,
                brand=i.brand,
                model=i.model,
                year=i.year,
                color=i.color,
                quantity=i.quantity,
                unit_price=i.unit_price,
                total_price=i.total_price,
            )
            for i in q.items
        ],
        allowed_actions=status_machine.allowed_actions(q.status, user.role) if user else [],
    )


# =====================================================
# CREATE
# =====================================================
async def create_quotation(
    db: AsyncSession,
    payload: QuotationCreate,
    user,
) -> QuotationOut:
    status_machine.check_cart_edit(S.draft, user.role)

    customer = await db.get(Customer, payload.customer_id)
    if not customer or not customer.is_active or customer.is_deleted:
        raise AppException(404, "Customer not found", ErrorCode.CUSTOMER_NOT_FOUND)

    currency = payload.currency.upper()
    now = datetime.now(timezone.utc)

    q = Quotation(
        quotation_number=f"TEMP-{now.timestamp()}",
        customer_id=payload.customer_id,
        status=S.draft,
        valid_till=now + timedelta(days=QUOTATION_VALIDITY_DAYS),
        currency=currency,
        discount_type=payload.discount_type,
        discount_value=to_decimal(payload.discount_value),
        vat_percent=to_decimal(
            payload.vat_percent if payload.vat_percent is not None else DEFAULT_VAT_PERCENT
        ),
        notes=payload.notes,
        version=1,
        created_by_id=user.id,
        updated_by_id=user.id,
    )
    q.items = await _build_items(db, payload.items, currency, user)
    q.status_history = [
        QuotationStatusHistory(status=S.draft, changed_at=now, actor_id=user.id)
    ]
    recalculate_totals(q)

    db.add(q)
    await db.flush()

    q.quotation_number = f"QT-{q.id:06d}"

    await emit_activity(
        db,
        actor=user,
        code=ActivityCode.CREATE_QUOTATION,
        target_name=q.quotation_number,
        currency=currency,
    )

    await db.commit()
    logger.info("Quotation created", extra={"quotation_id": q.id, "currency": currency})

    q = await _get_quotation(db, q.id, fresh=True)
    return _map_quotation(q, user)


# =====================================================
# READ
# =====================================================
async def get_quotation(
    db: AsyncSession,
    quotation_id: int,
    user=None,
) -> QuotationOut:
    q = await _get_quotation(db, quotation_id)
    return _map_quotation(q, user)


async def list_quotations(
    db: AsyncSession,
    *,
    statuses: List[QuotationStatus] | None = None,
    currency: str | None = None,
    customer_id: int | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "-createdAt",
) -> QuotationListData:
    filters = [Quotation.is_deleted.is_(False)]

    if statuses:
        filters.append(Quotation.status.in_(statuses))
    if currency:
        filters.append(Quotation.currency == currency.upper())
    if customer_id:
        filters.append(Quotation.customer_id == customer_id)
    if search:
        term = f"%{search.strip()}%"
        filters.append(or_(
            Quotation.quotation_number.ilike(term),
            Customer.name.ilike(term),
        ))

    items_count = (
        select(func.count(QuotationItem.id))
        .where(QuotationItem.quotation_id == Quotation.id)
        .correlate(Quotation)
        .scalar_subquery()
    )

    base_query = (
        select(
            Quotation.id,
            Quotation.quotation_number,
            Quotation.customer_id,
            Customer.name.label("customer_name"),
            Quotation.status,
            Quotation.currency,
            Quotation.total_amount,
            Quotation.valid_till,
            Quotation.created_at,
            items_count.label("items_count"),
        )
        .join(Customer, Customer.id == Quotation.customer_id)
        .where(*filters)
    )

    total = await db.scalar(
        select(func.count()).select_from(
            select(Quotation.id)
            .join(Customer, Customer.id == Quotation.customer_id)
            .where(*filters)
            .subquery()
        )
    ) or 0

    descending = sort_by.startswith("-")
    sort_col = SORT_FIELDS.get(sort_by.lstrip("-"), Quotation.created_at)

    result = await db.execute(
        base_query
        .order_by(desc(sort_col) if descending else asc(sort_col), desc(Quotation.id))
        .offset((page - 1) * limit)
        .limit(limit)
    )

    items = [
        QuotationListItem(
            id=r.id,
            quotation_number=r.quotation_number,
            customer_id=r.customer_id,
            customer_name=r.customer_name,
            status=r.status,
            status_display=status_machine.display_name(r.status),
            currency=r.currency,
            items_count=r.items_count,
            total_amount=r.total_amount,
            valid_till=r.valid_till,
            created_at=r.created_at,
        )
        for r in result.all()
    ]

    pages = -(-total // limit) if total else 0
    return QuotationListData(
        items=items,
        pagination=ListPagination(
            page=page,
            limit=limit,
            total=total,
            pages=pages,
            has_next=page < pages,
            has_prev=page > 1,
        ),
    )


# =====================================================
# UPDATE LINES
# =====================================================
async def update_quotation(
    db: AsyncSession,
    quotation_id: int,
    payload: QuotationLinesUpdate,
    user,
) -> QuotationOut:
    q = await _get_quotation(db, quotation_id)
    status_machine.check_cart_edit(q.status, user.role)

    if q.version != payload.version:
        raise AppException(409, "Version conflict", ErrorCode.QUOTATION_VERSION_CONFLICT)

    currency = (payload.currency or q.currency).upper()
    q.items = await _build_items(db, payload.items, currency, user)
    q.currency = currency
    recalculate_totals(q)

    q.version += 1
    q.stamp(user.id)

    await emit_activity(
        db,
        actor=user,
        code=ActivityCode.UPDATE_QUOTATION,
        target_name=q.quotation_number,
        changes="items",
    )

    await db.commit()

    q = await _get_quotation(db, quotation_id, fresh=True)
    return _map_quotation(q, user)


async def update_discount(
    db: AsyncSession,
    quotation_id: int,
    payload: DiscountUpdate,
    user,
) -> QuotationOut:
    q = await _get_quotation(db, quotation_id)
    status_machine.check_discount_edit(q.status, user.role)

    policy = DiscountPolicy(payload.discount_type, payload.discount)

    q.discount_type = policy.type
    q.discount_value = policy.value
    recalculate_totals(q)

    q.version += 1
    q.stamp(user.id)

    await emit_activity(
        db,
        actor=user,
        code=ActivityCode.UPDATE_QUOTATION_DISCOUNT,
        target_name=q.quotation_number,
        discount=policy.value,
        discount_type=policy.type.value,
    )

    await db.commit()

    q = await _get_quotation(db, quotation_id, fresh=True)
    return _map_quotation(q, user)


# =====================================================
# TRANSITIONS
# =====================================================
async def transition_quotation(
    db: AsyncSession,
    quotation_id: int,
    target: QuotationStatus,
    user,
) -> tuple[QuotationOut, TransitionOutcome]:
    q = await _get_quotation(db, quotation_id)
    outcome = status_machine.transition(workflow_state(q), target, user.role, actor_id=user.id)

    result = await db.execute(
        update(Quotation)
        .where(
            Quotation.id == quotation_id,
            Quotation.status == outcome.previous,
            Quotation.version == q.version,
            Quotation.is_deleted.is_(False),
        )
        .values(
            status=outcome.status,
            version=Quotation.version + 1,
            updated_by_id=user.id,
            updated_at=datetime.now(timezone.utc),
        )
        .returning(Quotation.id)
    )

    if result.scalar_one_or_none() is None:
        await db.rollback()
        current = (await _get_quotation(db, quotation_id, fresh=True)).status
        if current == outcome.status:
            raise AlreadyInTargetState(current.value)
        raise InvalidTransition(current.value, outcome.status.value)

    entry = outcome.state.history[-1]
    db.add(
        QuotationStatusHistory(
            quotation_id=quotation_id,
            status=entry.status,
            review_reason=entry.review_reason,
            changed_at=entry.at,
            actor_id=user.id,
        )
    )

    await emit_activity(
        db,
        actor=user,
        code=ActivityCode.TRANSITION_QUOTATION,
        target_name=q.quotation_number,
        from_status=outcome.previous.value,
        to_status=outcome.status.value,
    )

    await db.commit()
    logger.info(
        "Quotation transitioned",
        extra={
            "quotation_id": quotation_id,
            "from_status": outcome.previous.value,
            "to_status": outcome.status.value,
        },
    )

    q = await _get_quotation(db, quotation_id, fresh=True)
    return _map_quotation(q, user), outcome


# =====================================================
# DELETE
# =====================================================
async def delete_quotation(
    db: AsyncSession,
    quotation_id: int,
    user,
) -> QuotationOut:
    q = await _get_quotation(db, quotation_id)
    status_machine.check_delete(q.status, user.role)

    q.soft_delete(user.id)
    q.version += 1

    result = _map_quotation(q)

    await emit_activity(
        db,
        actor=user,
        code=ActivityCode.DELETE_QUOTATION,
        target_name=q.quotation_number,
    )

    await db.commit()
    return result
