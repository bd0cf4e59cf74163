# salesdesk/services/cart/catalog_cache.py

from salesdesk.schemas.catalog.catalog_schemas import CatalogItemOut, CatalogPage, FacetSummary
from salesdesk.utils.logger import get_logger

logger = get_logger("salesdesk.services.cart")


class CatalogCache:
    """
    Catalog data held for one cart session: the full master list (used for
    pricing joins and hidden-item detection) and the currently displayed
    server page.

    Every fetch takes a token first. A response is accepted only if its
    token is still the latest for that kind of fetch and it was priced in
    the session's active currency, so a slow reply to an old request can
    never overwrite a newer one.
    """

    def __init__(self):
        self.master: dict[int, CatalogItemOut] = {}
        self.page_items: list[CatalogItemOut] = []
        self.facets = FacetSummary()
        self.currency: str | None = None
        self._page_token = 0
        self._master_token = 0

    def begin_page_request(self) -> int:
        self._page_token += 1
        return self._page_token

    def begin_master_request(self) -> int:
        self._master_token += 1
        return self._master_token

    def accept_page(self, token: int, currency: str, page: CatalogPage) -> bool:
        if token != self._page_token or page.currency_info.currency != currency:
            logger.debug(
                "Discarding stale catalog page",
                extra={"token": token, "latest": self._page_token, "currency": page.currency_info.currency},
            )
            return False
        self.page_items = list(page.items)
        self.facets = page.facet_summary
        self.currency = currency
        return True

    def accept_master(self, token: int, currency: str, items: list[CatalogItemOut]) -> bool:
        if token != self._master_token or any(i.currency != currency for i in items):
            logger.debug(
                "Discarding stale master list",
                extra={"token": token, "latest": self._master_token},
            )
            return False
        self.master = {i.id: i for i in items}
        self.currency = currency
        return True

    def get(self, item_id: int) -> CatalogItemOut | None:
        return self.master.get(item_id)

    def invalidate(self) -> None:
        """Drop held data and orphan any fetch still in flight."""
        self._page_token += 1
        self._master_token += 1
        self.master = {}
        self.page_items = []
        self.facets = FacetSummary()
        self.currency = None
