"""
Product-detail configurator: SKU tier filter, per-SKU material choices and
quantity, priced through PricingEngine.

Three selection modes:
    single      one SKU at a time (the default product page)
    multi_spec  several SKUs of the same product, each with its own materials
    combo       a composite product whose chosen SKUs are separate lines
"""

import logging
from typing import Dict, List, Mapping, Optional

from .config import settings as default_settings
from .errors import SelectionError
from .pricing_engine import PricingEngine
from .schemas import MaterialKey, Product, ProductSKU
from .surcharge.resolver import MaterialSurchargeResolver, complete_selections

logger = logging.getLogger(__name__)

STANDARD = "standard"
PRO = "pro"
ALL = "all"
SKU_FILTERS = [ALL, STANDARD, PRO]


def determine_default_filter(skus: List[ProductSKU]) -> str:
    """Standard when any non-PRO SKU exists, else PRO, else all."""
    if any(not sku.is_pro for sku in skus):
        return STANDARD
    if any(sku.is_pro for sku in skus):
        return PRO
    return ALL


def initial_sku_for_filter(skus: List[ProductSKU], sku_filter: str) -> Optional[ProductSKU]:
    if not skus:
        return None
    if sku_filter == STANDARD:
        return next((sku for sku in skus if not sku.is_pro), skus[0])
    if sku_filter == PRO:
        return next((sku for sku in skus if sku.is_pro), skus[0])
    return skus[0]


def filter_skus(skus: List[ProductSKU], sku_filter: str) -> List[ProductSKU]:
    if sku_filter == STANDARD:
        return [sku for sku in skus if not sku.is_pro]
    if sku_filter == PRO:
        return [sku for sku in skus if sku.is_pro]
    return list(skus)


def material_combination_key(selections: Optional[Mapping]) -> str:
    """
    Stable identity for a set of material choices: "fabric:Linen|leg:Oak".
    Two cart lines of the same SKU merge only when their keys match.
    """
    if not selections:
        return ""
    labelled = {MaterialKey.parse(k).label: v for k, v in selections.items() if v}
    return "|".join(f"{label}:{labelled[label]}" for label in sorted(labelled))


class ProductConfigurator:
    """
    Holds the product page's choices: active filter, selected SKU(s), and
    per-SKU material selections and quantities.
    """

    def __init__(self, product: Product, settings=None,
                 resolver: Optional[MaterialSurchargeResolver] = None,
                 engine: Optional[PricingEngine] = None,
                 multi_spec: bool = False):
        self.product = product
        self.settings = settings or default_settings
        self.engine = engine or PricingEngine(self.settings, resolver)
        self.resolver = resolver or self.engine.resolver
        self.multi_spec = multi_spec

        self.selected: List[str] = []
        self.material_selections: Dict[str, Dict[MaterialKey, Optional[str]]] = {}
        self.quantities: Dict[str, int] = {}

        self.active_filter = determine_default_filter(product.skus)
        initial = initial_sku_for_filter(product.skus, self.active_filter)
        if initial is not None:
            self._activate(initial)

    @property
    def mode(self) -> str:
        if self.product.is_combo:
            return "combo"
        return "multi_spec" if self.multi_spec else "single"

    @property
    def active_sku(self) -> Optional[ProductSKU]:
        """The most recently selected SKU."""
        if not self.selected:
            return None
        return self.product.get_sku(self.selected[-1])

    def visible_skus(self) -> List[ProductSKU]:
        return filter_skus(self.product.skus, self.active_filter)

    def available_filters(self) -> List[str]:
        """Tier tabs worth showing. A single tab is pointless, so [] then."""
        filters = [ALL]
        if any(not sku.is_pro for sku in self.product.skus):
            filters.append(STANDARD)
        if any(sku.is_pro for sku in self.product.skus):
            filters.append(PRO)
        return filters if len(filters) > 1 else []

    # --- Intents ---

    def select_sku(self, sku_id: str) -> bool:
        """
        Single mode: switch to the SKU (quantity resets to 1).
        Multi-spec and combo: toggle the SKU in or out.
        Returns whether the SKU is selected afterwards.
        """
        sku = self.product.get_sku(sku_id)
        if self.active_filter == ALL:
            self.active_filter = PRO if sku.is_pro else STANDARD

        if self.mode == "single":
            self._activate(sku)
            return True

        if sku_id in self.selected:
            self.selected.remove(sku_id)
            self.material_selections.pop(sku_id, None)
            self.quantities.pop(sku_id, None)
            return False
        self.selected.append(sku_id)
        self.quantities[sku_id] = 1
        self.material_selections[sku_id] = self._reconcile(sku, {})
        return True

    def set_filter(self, sku_filter: str) -> Optional[ProductSKU]:
        """Switch tier tab and jump to the first SKU it shows."""
        if sku_filter not in SKU_FILTERS:
            raise SelectionError(f"Unknown SKU filter: {sku_filter}. Available: {SKU_FILTERS}")
        self.active_filter = sku_filter
        sku = initial_sku_for_filter(self.product.skus, sku_filter)
        if sku is not None:
            self._activate(sku)
        return sku

    def choose_material(self, material_key, option: str, sku_id: Optional[str] = None) -> None:
        """
        Record a material choice for a SKU (the active one by default).

        Choosing anything but the premium option on a PRO SKU, while the PRO
        tab is showing, drops back to the standard tier: the flat PRO price
        only covers the premium look.
        """
        sku = self._sku_or_active(sku_id)
        key = MaterialKey.parse(material_key)
        options = sku.materials.get(key, [])
        if option not in options:
            raise SelectionError(
                f"{option!r} is not a {key.label} option for SKU {sku.id}. Available: {options}"
            )
        if len(options) <= 1:
            return

        premium = self.resolver.pick_premium_option(options, sku.material_upgrade_prices)
        downgrade = sku.is_pro and self.active_filter == PRO and option != premium

        self.material_selections.setdefault(sku.id, {})[key] = option
        if downgrade and self.mode == "single":
            logger.info("Non-premium %s on PRO SKU %s, switching to standard", key.label, sku.id)
            self.set_filter(STANDARD)

    def change_quantity(self, delta: int, sku_id: Optional[str] = None) -> int:
        sku = self._sku_or_active(sku_id)
        quantity = max(1, self.quantities.get(sku.id, 1) + delta)
        self.quantities[sku.id] = quantity
        return quantity

    # --- Reads ---

    def resolve_materials(self, sku_id: Optional[str] = None) -> Dict[MaterialKey, str]:
        """
        Complete material choices for a SKU. Raises MissingSelection for an
        unmade multi-option choice when REQUIRE_MATERIAL_SELECTION is on.
        """
        sku = self._sku_or_active(sku_id)
        return complete_selections(
            sku.materials, self.material_selections.get(sku.id),
            require=self.settings.REQUIRE_MATERIAL_SELECTION,
            owner=sku.spec or sku.id,
        )

    def price(self, strict: bool = False) -> dict:
        if self.mode == "combo":
            return self.engine.price_combo(self.product, self._chosen(), self.quantities, strict)
        if self.mode == "multi_spec":
            return self.engine.price_multi_spec(self.product, self._chosen(), self.quantities, strict)

        sku = self.active_sku
        if sku is None:
            return {
                "mode": "single",
                "product_id": self.product.id,
                "base_price": self.product.base_price,
                "surcharge": 0.0,
                "total": self.product.base_price,
            }
        priced = self.engine.price_sku(
            sku, self.material_selections.get(sku.id),
            quantity=self.quantities.get(sku.id, 1), strict=strict,
        )
        priced["mode"] = "single"
        priced["product_id"] = self.product.id
        return priced

    def cart_lines(self) -> List[dict]:
        """Priced lines for add-to-cart; every material choice must be made."""
        if not self.selected:
            raise SelectionError(f"Choose a spec of {self.product.name or self.product.id} first")
        lines = []
        for sku_id in self.selected:
            sku = self.product.get_sku(sku_id)
            materials = self.resolve_materials(sku_id)
            priced = self.engine.price_sku(
                sku, materials, quantity=self.quantities.get(sku_id, 1), strict=True,
            )
            lines.append({
                "product_id": self.product.id,
                "sku_id": sku_id,
                "quantity": priced["quantity"],
                "materials": priced["materials"],
                "material_key": material_combination_key(materials),
                "unit_price": priced["unit_price"],
                "total": priced["total"],
            })
        return lines

    # --- Internals ---

    def _activate(self, sku: ProductSKU):
        """Make `sku` the only selection, carrying over compatible material choices."""
        previous = self.material_selections.get(self.selected[-1], {}) if self.selected else {}
        self.selected = [sku.id]
        self.quantities = {sku.id: 1}
        self.material_selections = {sku.id: self._reconcile(sku, previous)}

    def _reconcile(self, sku: ProductSKU, previous: Mapping) -> Dict[MaterialKey, Optional[str]]:
        """
        Material choices for a newly selected SKU: single options are fixed,
        PRO SKUs take the premium option, otherwise a previous choice survives
        only if the new SKU still offers it.
        """
        reconciled = {}
        for key, options in sku.materials.items():
            if len(options) == 1:
                reconciled[key] = options[0]
            elif sku.is_pro:
                reconciled[key] = self.resolver.pick_premium_option(
                    options, sku.material_upgrade_prices,
                )
            elif previous.get(key) in options:
                reconciled[key] = previous[key]
            else:
                reconciled[key] = None
        return reconciled

    def _sku_or_active(self, sku_id: Optional[str]) -> ProductSKU:
        if sku_id is None:
            sku = self.active_sku
            if sku is None:
                raise SelectionError(f"No spec selected for {self.product.name or self.product.id}")
            return sku
        if sku_id not in self.selected:
            raise SelectionError(f"SKU {sku_id} is not selected")
        return self.product.get_sku(sku_id)

    def _chosen(self) -> Dict[str, Dict[MaterialKey, Optional[str]]]:
        return {sku_id: self.material_selections.get(sku_id, {}) for sku_id in self.selected}
