#users and auth
from salesdesk.models.users.user_models import User
from salesdesk.models.support.activity_models import QuotationActivity

# Masters
from salesdesk.models.masters.customer_models import Customer

# Catalog
from salesdesk.models.catalog.catalog_models import CatalogItem, CurrencyRate

# Billing
from salesdesk.models.billing.quotation_models import Quotation, QuotationItem, QuotationStatusHistory
from salesdesk.models.billing.invoice_models import Invoice
