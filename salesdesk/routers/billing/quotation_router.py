from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from salesdesk.core.db import get_db
from salesdesk.utils.check_roles import require_role
from salesdesk.utils.response import success_response, APIResponse

from salesdesk.constants.pagination import DEFAULT_LIMIT
from salesdesk.models.enums.quotation_status import QuotationStatus
from salesdesk.schemas.billing.quotation_schemas import (
    DiscountUpdate,
    QuotationCreate,
    QuotationLinesUpdate,
    QuotationOut,
    QuotationListData,
)

from salesdesk.services.billing.quotation_service import (
    QUEUES,
    create_quotation,
    delete_quotation,
    get_quotation,
    list_quotations,
    transition_quotation,
    update_discount,
    update_quotation,
)

router = APIRouter(
    prefix="/quotations",
    tags=["Quotations"],
)

ALL_ROLES = ["admin", "sales", "finance"]


@router.post(
    "",
    response_model=APIResponse[QuotationOut],
)
async def create_quotation_api(
    payload: QuotationCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "sales"])),
):
    quotation = await create_quotation(db, payload, user)
    return success_response(
        "Quotation created successfully",
        quotation,
    )


@router.get(
    "",
    response_model=APIResponse[QuotationListData],
)
async def list_quotations_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
    status: List[QuotationStatus] | None = Query(None, description="Filter by one or more statuses"),
    currency: str | None = Query(None, min_length=3, max_length=3),
    customer_id: int | None = Query(None, description="Filter by customer"),
    search: str | None = Query(None, description="Quotation number or customer name"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=200),
    sort_by: str = Query("-createdAt"),
):
    data = await list_quotations(
        db,
        statuses=status,
        currency=currency,
        customer_id=customer_id,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
    )
    return success_response(
        "Quotations retrieved successfully",
        data,
    )


async def _queue(db, queue: str, page: int, limit: int, sort_by: str):
    return await list_quotations(
        db,
        statuses=QUEUES[queue],
        page=page,
        limit=limit,
        sort_by=sort_by,
    )


@router.get(
    "/review-orders",
    response_model=APIResponse[QuotationListData],
)
async def list_review_orders_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=200),
    sort_by: str = Query("-createdAt"),
):
    data = await _queue(db, "review-orders", page, limit, sort_by)
    return success_response("Orders under review retrieved successfully", data)


@router.get(
    "/accepted-orders",
    response_model=APIResponse[QuotationListData],
)
async def list_accepted_orders_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=200),
    sort_by: str = Query("-createdAt"),
):
    data = await _queue(db, "accepted-orders", page, limit, sort_by)
    return success_response("Accepted orders retrieved successfully", data)


@router.get(
    "/approved-orders",
    response_model=APIResponse[QuotationListData],
)
async def list_approved_orders_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=200),
    sort_by: str = Query("-createdAt"),
):
    data = await _queue(db, "approved-orders", page, limit, sort_by)
    return success_response("Approved orders retrieved successfully", data)


@router.get(
    "/{quotation_id}",
    response_model=APIResponse[QuotationOut],
)
async def get_quotation_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    quotation = await get_quotation(db, quotation_id, user)
    return success_response(
        "Quotation retrieved successfully",
        quotation,
    )


@router.put(
    "/{quotation_id}",
    response_model=APIResponse[QuotationOut],
)
async def update_quotation_api(
    quotation_id: int,
    payload: QuotationLinesUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "sales"])),
):
    quotation = await update_quotation(db, quotation_id, payload, user)
    return success_response(
        "Quotation updated successfully",
        quotation,
    )


@router.put(
    "/{quotation_id}/discount",
    response_model=APIResponse[QuotationOut],
)
async def update_discount_api(
    quotation_id: int,
    payload: DiscountUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    quotation = await update_discount(db, quotation_id, payload, user)
    return success_response(
        "Discount updated successfully",
        quotation,
    )


@router.delete(
    "/{quotation_id}",
    response_model=APIResponse[QuotationOut],
)
async def delete_quotation_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    quotation = await delete_quotation(db, quotation_id, user)
    return success_response(
        "Quotation deleted successfully",
        quotation,
    )


# =====================================================
# STATUS ACTIONS
# =====================================================
async def _transition(db, quotation_id: int, target: QuotationStatus, user):
    quotation, outcome = await transition_quotation(db, quotation_id, target, user)
    return success_response(outcome.message, quotation)


@router.patch("/{quotation_id}/accept", response_model=APIResponse[QuotationOut])
async def accept_quotation_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return await _transition(db, quotation_id, QuotationStatus.accepted, user)


@router.patch("/{quotation_id}/reject", response_model=APIResponse[QuotationOut])
async def reject_quotation_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return await _transition(db, quotation_id, QuotationStatus.rejected, user)


@router.patch("/{quotation_id}/book", response_model=APIResponse[QuotationOut])
async def book_quotation_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return await _transition(db, quotation_id, QuotationStatus.booked, user)


@router.patch("/{quotation_id}/send-review", response_model=APIResponse[QuotationOut])
async def send_for_review_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return await _transition(db, quotation_id, QuotationStatus.review, user)


@router.patch("/{quotation_id}/approve", response_model=APIResponse[QuotationOut])
async def approve_quotation_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return await _transition(db, quotation_id, QuotationStatus.approved, user)


@router.patch("/{quotation_id}/confirm", response_model=APIResponse[QuotationOut])
async def confirm_order_api(
    quotation_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return await _transition(db, quotation_id, QuotationStatus.confirmed, user)
