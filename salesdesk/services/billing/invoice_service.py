from decimal import Decimal
from datetime import datetime, timezone
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from salesdesk.models.billing.invoice_models import Invoice
from salesdesk.models.billing.quotation_models import Quotation

from salesdesk.schemas.billing.invoice_schemas import InvoiceCreate, InvoiceOut

from salesdesk.constants.activity_codes import ActivityCode
from salesdesk.constants.error_codes import ErrorCode

from salesdesk.core.exceptions import AppException
from salesdesk.services.billing import status_machine
from salesdesk.utils.activity_helpers import emit_activity
from salesdesk.utils.decimal_utils import to_decimal

logger = logging.getLogger(__name__)


async def _get_quotation_for_update(db: AsyncSession, quotation_id: int) -> Quotation:
    result = await db.execute(
        select(Quotation)
        .where(
            Quotation.id == quotation_id,
            Quotation.is_deleted.is_(False),
        )
        .with_for_update(of=Quotation)
    )
    q = result.scalar_one_or_none()
    if not q:
        raise AppException(404, "Quotation not found", ErrorCode.QUOTATION_NOT_FOUND)
    return q


async def create_invoice(db: AsyncSession, payload: InvoiceCreate, user) -> InvoiceOut:
    """One invoice per approved or confirmed order; the total carries any extra expense."""
    q = await _get_quotation_for_update(db, payload.quotation_id)
    status_machine.check_invoice(q.status, user.role)

    existing = await db.scalar(
        select(Invoice.id).where(Invoice.quotation_id == q.id)
    )
    if existing:
        raise AppException(
            409,
            "Quotation has already been invoiced",
            ErrorCode.INVOICE_ALREADY_EXISTS,
            {"invoice_id": existing},
        )

    expense = payload.more_expense
    payment = payload.customer_payment

    invoice = Invoice(
        invoice_number=f"TEMP-{datetime.now(timezone.utc).timestamp()}",
        quotation_id=q.id,
        currency=q.currency,
        notes=payload.notes,
        extra_expense_description=expense.description or None,
        extra_expense_amount=to_decimal(expense.amount),
        payment_amount=to_decimal(payment.payment_amount),
        payment_method=payment.payment_method,
        payment_notes=payment.payment_notes,
        payment_date=payment.payment_date,
        total_amount=to_decimal(Decimal(str(q.total_amount)) + to_decimal(expense.amount)),
        created_by_id=user.id,
        updated_by_id=user.id,
    )

    db.add(invoice)
    await db.flush()

    invoice.invoice_number = f"INV-{invoice.id:06d}"

    await emit_activity(
        db,
        actor=user,
        code=ActivityCode.CREATE_INVOICE,
        invoice_number=invoice.invoice_number,
        target_name=q.quotation_number,
    )

    await db.commit()
    await db.refresh(invoice)

    logger.info("Invoice created", extra={"invoice_id": invoice.id, "quotation_id": q.id})
    return InvoiceOut.model_validate(invoice)


async def get_invoice(db: AsyncSession, invoice_id: int) -> InvoiceOut:
    invoice = await db.get(Invoice, invoice_id)
    if not invoice:
        raise AppException(404, "Invoice not found", ErrorCode.NOT_FOUND)
    return InvoiceOut.model_validate(invoice)
