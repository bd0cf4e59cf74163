from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.core.db import get_db
from salesdesk.utils.check_roles import require_role
from salesdesk.utils.response import success_response, APIResponse

from salesdesk.schemas.billing.invoice_schemas import InvoiceCreate, InvoiceOut
from salesdesk.services.billing.invoice_service import create_invoice, get_invoice

router = APIRouter(
    prefix="/invoices",
    tags=["Invoices"],
)


@router.post(
    "",
    response_model=APIResponse[InvoiceOut],
)
async def create_invoice_api(
    payload: InvoiceCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "sales", "finance"])),
):
    invoice = await create_invoice(db, payload, user)
    return success_response("Invoice created successfully", invoice)


@router.get(
    "/{invoice_id}",
    response_model=APIResponse[InvoiceOut],
)
async def get_invoice_api(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "finance"])),
):
    invoice = await get_invoice(db, invoice_id)
    return success_response("Invoice retrieved successfully", invoice)
