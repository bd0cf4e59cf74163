# salesdesk/services/cart/db_gateways.py

from typing import List, Optional

from sqlalchemy.exc import InterfaceError, OperationalError

from salesdesk.core.db import AsyncSessionLocal
from salesdesk.core.exceptions import AppException, NetworkError
from salesdesk.models.enums.quotation_status import QuotationStatus
from salesdesk.models.enums.review_reason import ReviewReason
from salesdesk.schemas.billing.invoice_schemas import InvoiceCreate, InvoiceFields
from salesdesk.schemas.billing.quotation_schemas import (
    DiscountUpdate,
    GatewayResult,
    QuotationCreate,
    QuotationLinesUpdate,
    QuotationOut,
    TransitionResult,
)
from salesdesk.schemas.catalog.catalog_schemas import CatalogItemOut, CatalogPage
from salesdesk.services.billing import invoice_service, quotation_service
from salesdesk.services.cart.ports import failed
from salesdesk.services.catalog import catalog_service
from salesdesk.utils.logger import get_logger

logger = get_logger(__name__)

_UNAVAILABLE = (OperationalError, InterfaceError)


class _DbGateway:
    def __init__(self, session_factory=AsyncSessionLocal):
        self._session_factory = session_factory

    async def _run(self, fn, *args):
        try:
            async with self._session_factory() as db:
                return await fn(db, *args)
        except _UNAVAILABLE as exc:
            logger.warning("Database unavailable", extra={"operation": fn.__name__})
            raise NetworkError("Database unavailable") from exc


class DbCatalogGateway(_DbGateway):
    async def fetch_catalog_page(self, currency: str, filters: dict, page: int, limit: int) -> CatalogPage:
        return await self._run(catalog_service.fetch_catalog_page, currency, filters, page, limit)

    async def fetch_catalog_all(self, currency: str) -> List[CatalogItemOut]:
        return await self._run(catalog_service.fetch_catalog_all, currency)


class DbQuotationGateway(_DbGateway):
    """
    Reads and line edits raise domain errors directly; status, discount,
    delete and invoice calls answer with a success flag instead.
    """

    async def get_quotation(self, quotation_id: int, actor) -> QuotationOut:
        return await self._run(quotation_service.get_quotation, quotation_id, actor)

    async def create_quotation(self, payload: QuotationCreate, actor) -> QuotationOut:
        return await self._run(quotation_service.create_quotation, payload, actor)

    async def update_lines(self, quotation_id: int, payload: QuotationLinesUpdate, actor) -> QuotationOut:
        return await self._run(quotation_service.update_quotation, quotation_id, payload, actor)

    async def submit_transition(
        self,
        quotation_id: int,
        target: QuotationStatus,
        actor,
        review_reason: Optional[ReviewReason] = None,
    ) -> TransitionResult:
        try:
            quotation, outcome = await self._run(
                quotation_service.transition_quotation, quotation_id, target, actor
            )
        except NetworkError:
            raise
        except AppException as exc:
            return TransitionResult(**failed(exc).model_dump())

        return TransitionResult(
            success=True,
            message=outcome.message,
            new_status=quotation.status,
            version=quotation.version,
            review_reason=outcome.review_reason,
        )

    async def update_discount(self, quotation_id: int, payload: DiscountUpdate, actor) -> GatewayResult:
        return await self._attempt(
            "Discount updated", quotation_service.update_discount, quotation_id, payload, actor
        )

    async def delete_quotation(self, quotation_id: int, actor) -> GatewayResult:
        return await self._attempt(
            "Quotation deleted", quotation_service.delete_quotation, quotation_id, actor
        )

    async def create_invoice(self, quotation_id: int, fields: InvoiceFields, actor) -> GatewayResult:
        payload = InvoiceCreate(quotation_id=quotation_id, **fields.model_dump())
        return await self._attempt(
            "Invoice created", invoice_service.create_invoice, payload, actor
        )

    async def _attempt(self, message: str, fn, *args) -> GatewayResult:
        try:
            result = await self._run(fn, *args)
        except NetworkError:
            raise
        except AppException as exc:
            return failed(exc)
        return GatewayResult(
            success=True,
            message=message,
            version=getattr(result, "version", None),
            details=result.model_dump(mode="json"),
        )
