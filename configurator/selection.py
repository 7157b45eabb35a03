"""
Package selection state and the category quota selector.

A package plan is a set of categories ("sofa: choose 2"), each offering
interchangeable products. CategoryQuotaSelector owns the shopper's
SelectionState and is the only thing that mutates it. Every operation either
commits completely or raises and leaves the state untouched: mutations are
computed on a snapshot and swapped in at the end.

Quota rule: for every category, the summed quantity of its selected
products never exceeds category.required.
"""

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, Field

from .config import settings as default_settings
from .errors import CatalogLookupError, CatalogUnavailable, QuotaExceeded, SelectionError
from .schemas import MaterialKey, PackageCategory, PackagePlan, PackageProduct

logger = logging.getLogger(__name__)


class SelectionState(BaseModel):
    """
    The shopper's choices for one package.

    selected_products: category key → product ids, oldest first
    quantities:        product id → quantity (kept after deselection so
                       re-selecting restores it)
    material_selections: product id → {MaterialKey: option}
    """

    selected_products: Dict[str, List[str]] = Field(default_factory=dict)
    quantities: Dict[str, int] = Field(default_factory=dict)
    material_selections: Dict[str, Dict[MaterialKey, str]] = Field(default_factory=dict)

    def snapshot(self) -> "SelectionState":
        return self.model_copy(deep=True)

    def selected_in(self, category_key: str) -> List[str]:
        return list(self.selected_products.get(category_key, []))

    def is_selected(self, category_key: str, product_id: str) -> bool:
        return product_id in self.selected_products.get(category_key, [])

    def quantity_of(self, product_id: str, default: int = 1) -> int:
        return self.quantities.get(product_id) or default

    def category_quantity(self, category_key: str, exclude: Optional[str] = None) -> int:
        """Summed quantity of the selected products in a category."""
        return sum(
            self.quantity_of(pid)
            for pid in self.selected_products.get(category_key, [])
            if pid != exclude
        )


class CategoryQuotaSelector:
    """
    Controller for a package's selection state.

    Built with plan=None (catalog not loaded, or the fetch failed) the
    selector is inert: mutations are ignored and the state stays empty.
    """

    def __init__(self, plan: Optional[PackagePlan], settings=None,
                 state: Optional[SelectionState] = None):
        self.plan = plan
        self.settings = settings or default_settings
        self.load_error: Optional[str] = None
        self.state = state or SelectionState()
        if plan is None:
            logger.warning("No package plan loaded, selector is inert")
        elif state is None:
            self._init_material_defaults()

    @classmethod
    def from_catalog(cls, fetch_plan: Callable[[str], PackagePlan], plan_id: str,
                     settings=None) -> "CategoryQuotaSelector":
        """
        Load a plan through `fetch_plan` and wrap it in a selector.
        A CatalogUnavailable failure degrades to an inert selector that
        remembers the error so the caller can offer a retry.
        """
        try:
            plan = fetch_plan(plan_id)
        except CatalogUnavailable as e:
            logger.warning("Package %s unavailable: %s", plan_id, e)
            selector = cls(None, settings=settings)
            selector.load_error = str(e)
            return selector
        return cls(plan, settings=settings)

    @property
    def is_inert(self) -> bool:
        return self.plan is None

    # --- Quota operations ---

    def select(self, category_key: str, product_id: str) -> dict:
        """
        Toggle a product in a category.

        Selecting appends the product as the most recent pick. If its
        quantity doesn't fit, the oldest picks are evicted first (FIFO)
        until it does. Raises QuotaExceeded, with nothing changed, when even
        an empty category can't hold it.

        Returns {"selected": bool, "evicted": [product ids]}.
        """
        if self.is_inert:
            return {"selected": False, "evicted": []}
        category = self._category(category_key)
        self._require_member(category, product_id)

        scratch = self.state.snapshot()
        picks = scratch.selected_products.setdefault(category_key, [])

        if product_id in picks:
            picks.remove(product_id)
            self.state = scratch
            return {"selected": False, "evicted": []}

        addition = scratch.quantity_of(product_id, self.settings.MIN_QUANTITY)
        total = scratch.category_quantity(category_key)
        evicted = []
        while total + addition > category.required and picks:
            removed = picks.pop(0)
            total -= scratch.quantity_of(removed, self.settings.MIN_QUANTITY)
            evicted.append(removed)

        if total + addition > category.required:
            raise QuotaExceeded(category.key, category.name, category.required)

        picks.append(product_id)
        scratch.quantities[product_id] = addition
        self.state = scratch
        if evicted:
            logger.debug("Selecting %s in %s evicted %s", product_id, category_key, evicted)
        return {"selected": True, "evicted": evicted}

    def select_all(self, category_key: str,
                   candidates: Optional[Iterable] = None,
                   required: Optional[int] = None) -> List[str]:
        """
        Replace the category's selection with the first `required` candidates
        (catalog order by default), each at the minimum quantity.
        A fresh start: previous picks and quantities are discarded.
        """
        if self.is_inert:
            return []
        category = self._category(category_key)
        if candidates is None:
            candidates = category.products
        if required is None:
            required = category.required
        required = min(required, category.required)

        ids = [c.id if isinstance(c, PackageProduct) else str(c) for c in candidates]
        ids = list(dict.fromkeys(ids))
        for product_id in ids:
            self._require_member(category, product_id)
        picked = ids[:max(required, 0)]

        scratch = self.state.snapshot()
        scratch.selected_products[category_key] = list(picked)
        for product_id in picked:
            scratch.quantities[product_id] = self.settings.MIN_QUANTITY
        self.state = scratch
        return picked

    def remove(self, category_key: str, product_id: str) -> bool:
        """Drop a product from a category. Returns False if it wasn't selected."""
        if self.is_inert:
            return False
        self._category(category_key)
        picks = self.state.selected_products.get(category_key, [])
        if product_id not in picks:
            return False
        scratch = self.state.snapshot()
        scratch.selected_products[category_key].remove(product_id)
        self.state = scratch
        return True

    def change_quantity(self, category_key: str, product_id: str, delta: int) -> int:
        """
        Grow or shrink a selected product's quantity within [MIN, MAX].
        Never evicts: raises QuotaExceeded if the new quantity doesn't fit.
        Returns the resulting quantity.
        """
        if self.is_inert:
            return 0
        category = self._category(category_key)
        if not self.state.is_selected(category_key, product_id):
            raise SelectionError(
                f"Product {product_id} is not selected in {category.name or category_key}"
            )

        current = self.state.quantity_of(product_id, self.settings.MIN_QUANTITY)
        new_qty = min(self.settings.MAX_QUANTITY,
                      max(self.settings.MIN_QUANTITY, current + delta))
        if new_qty == current:
            return current

        other_total = self.state.category_quantity(category_key, exclude=product_id)
        if other_total + new_qty > category.required:
            raise QuotaExceeded(category.key, category.name, category.required)

        scratch = self.state.snapshot()
        scratch.quantities[product_id] = new_qty
        self.state = scratch
        return new_qty

    # --- Material choices ---

    def choose_material(self, product_id: str, material_key, option: str) -> None:
        """Record one material choice for a package product."""
        if self.is_inert:
            return
        product = self.plan.get_product(product_id)
        key = self._validate_option(product, material_key, option)
        scratch = self.state.snapshot()
        scratch.material_selections.setdefault(product_id, {})[key] = option
        self.state = scratch

    def confirm_materials(self, category_key: str, product_id: str,
                          selections: Mapping) -> dict:
        """
        Save a product's material choices and add it to the category.

        Unlike select(), this never evicts: if the product doesn't fit next
        to the current picks, QuotaExceeded is raised and neither the
        materials nor the selection change.

        Returns {"selected": True, "added": bool}.
        """
        if self.is_inert:
            return {"selected": False, "added": False}
        category = self._category(category_key)
        self._require_member(category, product_id)
        product = self.plan.get_product(product_id)
        parsed = {
            self._validate_option(product, key, option): option
            for key, option in selections.items()
        }

        scratch = self.state.snapshot()
        scratch.material_selections.setdefault(product_id, {}).update(parsed)

        added = False
        picks = scratch.selected_products.setdefault(category_key, [])
        if product_id not in picks:
            addition = scratch.quantity_of(product_id, self.settings.MIN_QUANTITY)
            if scratch.category_quantity(category_key) + addition > category.required:
                raise QuotaExceeded(category.key, category.name, category.required)
            picks.append(product_id)
            scratch.quantities[product_id] = addition
            added = True

        self.state = scratch
        return {"selected": True, "added": added}

    def materials_for(self, product_id: str) -> Dict[MaterialKey, str]:
        """A product's material choices, with single-option categories filled in."""
        if self.is_inert:
            return {}
        product = self.plan.get_product(product_id)
        chosen = dict(self.state.material_selections.get(product_id, {}))
        for key, options in product.materials.items():
            if key not in chosen and len(options) == 1:
                chosen[key] = options[0]
        return chosen

    # --- Internals ---

    def _init_material_defaults(self):
        """
        Pre-fill material choices on load. Single-option categories are
        always resolved; with PREFILL_BASE_MATERIALS every category starts
        on its base option.
        """
        for product in self.plan.iter_products():
            defaults = {}
            for key, options in product.materials.items():
                if len(options) == 1 or self.settings.PREFILL_BASE_MATERIALS:
                    defaults[key] = options[0]
            if defaults:
                self.state.material_selections[product.id] = defaults

    def _category(self, category_key: str) -> PackageCategory:
        return self.plan.get_category(category_key)

    def _require_member(self, category: PackageCategory, product_id: str):
        if not category.has_product(product_id):
            raise CatalogLookupError(
                f"Product {product_id!r} is not offered in category {category.key!r}"
            )

    def _validate_option(self, product: PackageProduct, material_key, option: str) -> MaterialKey:
        key = MaterialKey.parse(material_key)
        options = product.materials.get(key)
        if not options:
            raise SelectionError(f"{product.name or product.id} has no {key.label} options")
        if option not in options:
            raise SelectionError(
                f"{option!r} is not a {key.label} option for {product.name or product.id}. "
                f"Available: {options}"
            )
        return key
