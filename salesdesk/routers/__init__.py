# salesdesk/routers/__init__.py

from .catalog.catalog_router import router as catalog_router

from .billing.quotation_router import router as quotation_router
from .billing.invoice_router import router as invoice_router

from .cart.cart_router import router as cart_router


__all__ = [
"catalog_router",

"quotation_router",
"invoice_router",

"cart_router",
]
