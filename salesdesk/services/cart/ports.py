# salesdesk/services/cart/ports.py
"""
What the cart engine needs from the outside world. The database-backed
adapters live in ``db_gateways``; tests plug in in-memory fakes.
"""

from typing import List, Optional, Protocol

from salesdesk.constants.error_codes import ErrorCode
from salesdesk.core.exceptions import (
    AlreadyInTargetState,
    AppException,
    InvalidTransition,
    PermissionDenied,
)
from salesdesk.models.enums.quotation_status import QuotationStatus
from salesdesk.models.enums.review_reason import ReviewReason
from salesdesk.schemas.billing.invoice_schemas import InvoiceFields
from salesdesk.schemas.billing.quotation_schemas import (
    DiscountUpdate,
    GatewayResult,
    QuotationCreate,
    QuotationLinesUpdate,
    QuotationOut,
    TransitionResult,
)
from salesdesk.schemas.catalog.catalog_schemas import CatalogItemOut, CatalogPage


class CatalogGateway(Protocol):
    async def fetch_catalog_page(
        self, currency: str, filters: dict, page: int, limit: int
    ) -> CatalogPage: ...

    async def fetch_catalog_all(self, currency: str) -> List[CatalogItemOut]: ...


class QuotationGateway(Protocol):
    async def get_quotation(self, quotation_id: int, actor) -> QuotationOut: ...

    async def create_quotation(self, payload: QuotationCreate, actor) -> QuotationOut: ...

    async def update_lines(
        self, quotation_id: int, payload: QuotationLinesUpdate, actor
    ) -> QuotationOut: ...

    async def submit_transition(
        self,
        quotation_id: int,
        target: QuotationStatus,
        actor,
        review_reason: Optional[ReviewReason] = None,
    ) -> TransitionResult: ...

    async def update_discount(
        self, quotation_id: int, payload: DiscountUpdate, actor
    ) -> GatewayResult: ...

    async def delete_quotation(self, quotation_id: int, actor) -> GatewayResult: ...

    async def create_invoice(
        self, quotation_id: int, fields: InvoiceFields, actor
    ) -> GatewayResult: ...


_STATUS_FOR_CODE = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.QUOTATION_NOT_FOUND: 404,
    ErrorCode.CUSTOMER_NOT_FOUND: 404,
    ErrorCode.CATALOG_ITEM_NOT_FOUND: 404,
    ErrorCode.NOT_FOUND: 404,
}


def raise_for_result(result: GatewayResult) -> None:
    """Turn a ``success: false`` reply into the matching domain error."""
    if result.success:
        return

    details = result.details or {}
    code = result.error_code or ErrorCode.CONFLICT

    if code is ErrorCode.INVALID_TRANSITION:
        raise InvalidTransition(details.get("current"), details.get("requested"))
    if code is ErrorCode.ALREADY_IN_TARGET_STATE:
        raise AlreadyInTargetState(details.get("status"))
    if code is ErrorCode.PERMISSION_DENIED and "action" in details:
        raise PermissionDenied(details.get("role", ""), details["action"])

    raise AppException(_STATUS_FOR_CODE.get(code, 409), result.message, code, result.details)


def failed(exc: AppException) -> GatewayResult:
    return GatewayResult(
        success=False,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details,
    )
