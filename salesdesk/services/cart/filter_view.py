# salesdesk/services/cart/filter_view.py
"""
Catalog filtering over the locally held master list.

Category is the root facet: choosing a new category clears brand, model,
year and color in the same step, and those dependent facets cannot be set
while no category is chosen.
"""

from dataclasses import dataclass, fields, replace
from typing import Iterable, Optional

from salesdesk.core.exceptions import ValidationError
from salesdesk.schemas.catalog.catalog_schemas import CatalogItemOut, FacetSummary

DEPENDENT_FACETS = ("brand", "model", "year", "color")
SEARCH_FIELDS = ("name", "sku", "brand", "model")

_UNSET = object()


@dataclass(frozen=True)
class FilterCriteria:
    category: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.active()

    def active(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def with_category(self, category: Optional[str]) -> "FilterCriteria":
        category = _clean(category)
        if category == self.category:
            return self
        return FilterCriteria(category=category)

    def update(self, category=_UNSET, **dependents) -> "FilterCriteria":
        """
        Apply a batch of facet changes as one transition. A category change
        wipes the old dependent facets before the supplied ones land, so the
        previous brand never survives alongside a new category.
        """
        unknown = set(dependents) - set(DEPENDENT_FACETS)
        if unknown:
            raise ValidationError("Unknown filter", {"filters": sorted(unknown)})

        criteria = self if category is _UNSET else self.with_category(category)

        changes = {}
        for name, value in dependents.items():
            value = _clean(value)
            if name == "year" and value is not None:
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    raise ValidationError("Year must be a number", {"year": value})
            changes[name] = value

        if any(v is not None for v in changes.values()) and criteria.category is None:
            raise ValidationError(
                "Choose a category before narrowing by brand, model, year or color",
                {"filters": sorted(k for k, v in changes.items() if v is not None)},
            )

        return replace(criteria, **changes) if changes else criteria

    def matches(self, item: CatalogItemOut) -> bool:
        for name, value in self.active().items():
            if getattr(item, name) != value:
                return False
        return True


def _clean(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# =====================================================
# VIEW COMPUTATION
# =====================================================
def matches_search(item: CatalogItemOut, term: Optional[str]) -> bool:
    term = (term or "").strip().lower()
    if not term:
        return True
    return any(term in str(getattr(item, f) or "").lower() for f in SEARCH_FIELDS)


def visible_items(
    master: Iterable[CatalogItemOut],
    criteria: FilterCriteria,
    search_term: Optional[str] = None,
) -> list[CatalogItemOut]:
    return [i for i in master if criteria.matches(i) and matches_search(i, search_term)]


def visible_ids(master, criteria, search_term=None) -> set[int]:
    return {i.id for i in visible_items(master, criteria, search_term)}


def hidden_ids(selected: Iterable[int], visible: set[int]) -> set[int]:
    """Selected but filtered out of view: these still count toward the total."""
    return set(selected) - set(visible)


def facet_summary(master: Iterable[CatalogItemOut], criteria: FilterCriteria) -> FacetSummary:
    """
    Distinct values offered for each facet. Categories come from the whole
    list; dependent facets only from the chosen category.
    """
    master = list(master)
    summary = FacetSummary(category=sorted({i.category for i in master if i.category}))
    if criteria.category is None:
        return summary

    in_category = [i for i in master if i.category == criteria.category]
    for name in DEPENDENT_FACETS:
        values = {getattr(i, name) for i in in_category if getattr(i, name) is not None}
        setattr(summary, name, sorted(values))
    return summary
