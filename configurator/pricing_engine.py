"""
Pricing Engine.

Folds catalog prices, selection state and material surcharges into a priced
breakdown. Pure math: the same inputs always give the same dict, so callers
may re-price on every change.

Four shapes:
    package     plan base price + Σ surcharge(product) × quantity
    single SKU  base-or-discount price + surcharge(sku)
    multi-spec  Σ single SKU prices over several SKUs of one product
    combo       Σ single SKU prices over a composite product's SKUs, one line each
"""

import logging
from typing import Mapping, Optional

from .config import settings as default_settings
from .errors import SelectionError
from .money import round_half_up
from .schemas import MaterialKey, PackagePlan, Product, ProductSKU
from .selection import SelectionState
from .surcharge.resolver import MaterialSurchargeResolver, complete_selections

logger = logging.getLogger(__name__)


class PricingEngine:
    """
    Assembles priced breakdowns for packages and product-detail selections.
    """

    PAYMENT_RATIO_OPTIONS = [30, 50, 70, 100]

    def __init__(self, settings=None, resolver: Optional[MaterialSurchargeResolver] = None):
        self.settings = settings or default_settings
        self.resolver = resolver or MaterialSurchargeResolver(self.settings)

    # --- Package mode ---

    def price_package(self, plan: Optional[PackagePlan], state: SelectionState,
                      payment_ratio: Optional[int] = None, strict: bool = False) -> dict:
        """
        Price a package selection.

        Args:
            plan: the loaded PackagePlan, or None when the catalog isn't loaded
            state: SelectionState from CategoryQuotaSelector
            payment_ratio: deposit percentage (defaults to DEFAULT_PAYMENT_RATIO)
            strict: raise MissingSelection for unmade material choices
                    (when REQUIRE_MATERIAL_SELECTION is on) instead of pricing
                    them as the base option

        Returns:
            {
                "mode": "package",
                "plan_id": str | None,
                "base_price": float,
                "surcharge_subtotal": float,
                "total": float,
                "lines": [{category_key, product_id, quantity, materials,
                           surcharge_per_unit, surcharge_total, ...}],
                "payment": {ratio, enabled, deposit, final},
                "payment_options": {"30": {...}, ...},
            }
        """
        if payment_ratio is None:
            payment_ratio = self.settings.DEFAULT_PAYMENT_RATIO

        if plan is None:
            return self._priced("package", None, 0.0, 0.0, [], payment_ratio)

        lines = []
        for category in plan.categories:
            for product_id in state.selected_products.get(category.key, []):
                product = plan.get_product(product_id)
                quantity = state.quantity_of(product_id, self.settings.MIN_QUANTITY)
                materials = complete_selections(
                    product.materials,
                    state.material_selections.get(product_id),
                    require=strict and self.settings.REQUIRE_MATERIAL_SELECTION,
                    owner=product.name or product.id,
                )
                per_unit = self.resolver.product_surcharge(product, materials)
                lines.append({
                    "category_key": category.key,
                    "category_name": category.name,
                    "product_id": product.id,
                    "name": product.name,
                    "quantity": quantity,
                    "materials": {key.label: option for key, option in materials.items()},
                    "surcharge_per_unit": per_unit,
                    "surcharge_total": round(per_unit * quantity, 2),
                    "breakdown": self.resolver.breakdown(
                        product.materials, materials, product.upgrade_prices(),
                        unit_price=product.price,
                    ),
                })

        surcharge_subtotal = self._calculate_surcharge_subtotal(lines)
        logger.debug("Package %s: %d lines, surcharges %s", plan.id, len(lines), surcharge_subtotal)
        return self._priced("package", plan.id, plan.price, surcharge_subtotal,
                            lines, payment_ratio)

    # --- Product-detail modes ---

    def single_sku_price(self, sku: ProductSKU, selections: Optional[Mapping] = None,
                         strict: bool = False) -> float:
        """Unit price of one SKU: base-or-discount price plus its material surcharge."""
        return self.price_sku(sku, selections, quantity=1, strict=strict)["unit_price"]

    def price_sku(self, sku: ProductSKU, selections: Optional[Mapping] = None,
                  quantity: int = 1, strict: bool = False) -> dict:
        """
        Price a product-detail SKU. PRO SKUs price flat: material choices
        never change their total.
        """
        materials = self._sku_materials(sku, selections, strict)
        base = sku.base_price
        surcharge = self.resolver.sku_surcharge(sku, materials)
        unit_price = round(base + surcharge, 2)
        return {
            "sku_id": sku.id,
            "spec": sku.spec,
            "is_pro": sku.is_pro,
            "quantity": quantity,
            "materials": {key.label: option for key, option in materials.items()},
            "base_price": base,
            "surcharge": surcharge,
            "unit_price": unit_price,
            "total": round(unit_price * quantity, 2),
        }

    def price_multi_spec(self, product: Product, chosen: Mapping[str, Optional[Mapping]],
                         quantities: Optional[Mapping[str, int]] = None,
                         strict: bool = False) -> dict:
        """
        Several SKUs of the same product at once. `chosen` maps sku id to that
        SKU's own material selections; nothing is shared between SKUs.
        """
        lines = self._sku_lines(product, chosen, quantities, strict)
        return self._product_breakdown("multi_spec", product, lines)

    def price_combo(self, product: Product, chosen: Mapping[str, Optional[Mapping]],
                    quantities: Optional[Mapping[str, int]] = None,
                    strict: bool = False) -> dict:
        """
        A composite product: every chosen SKU is its own purchasable line
        carrying its full price. There is no shared base price term.
        """
        if not product.is_combo:
            raise SelectionError(f"Product {product.id} is not a combo product")
        lines = self._sku_lines(product, chosen, quantities, strict)
        result = self._product_breakdown("combo", product, lines)
        result["line_items"] = result.pop("lines")
        return result

    # --- Payment split ---

    def payment_split(self, total: float, ratio: int) -> dict:
        """
        Deposit/final amounts for a payment ratio (percent paid up front).
        100 means pay in full: no split.
        """
        if not 1 <= ratio <= 100:
            raise ValueError(f"Payment ratio must be between 1 and 100, got {ratio}")
        if ratio < 100:
            deposit = round_half_up(total * ratio / 100)
            return {
                "ratio": ratio,
                "enabled": True,
                "deposit": deposit,
                "final": round(total - deposit, 2),
            }
        return {"ratio": 100, "enabled": False, "deposit": total, "final": 0}

    def recalculate_with_payment_ratio(self, priced: dict, ratio: int) -> dict:
        """
        Recalculate the payment split with a new ratio.
        Returns the updated priced dict.
        """
        priced["payment"] = self.payment_split(priced.get("total", 0), ratio)
        return priced

    # --- Internals ---

    def _sku_materials(self, sku: ProductSKU, selections: Optional[Mapping], strict: bool):
        if sku.is_pro:
            # Flat price, so unmade choices default to the premium look
            completed = complete_selections(sku.materials, selections, require=False)
            chosen = self._chosen_keys(selections)
            for key, options in sku.materials.items():
                if key not in chosen:
                    completed[key] = self.resolver.pick_premium_option(
                        options, sku.material_upgrade_prices,
                    )
            return completed
        return complete_selections(
            sku.materials, selections,
            require=strict and self.settings.REQUIRE_MATERIAL_SELECTION,
            owner=sku.spec or sku.id,
        )

    def _chosen_keys(self, selections: Optional[Mapping]) -> set:
        return {MaterialKey.parse(k) for k, v in (selections or {}).items() if v}

    def _sku_lines(self, product: Product, chosen: Mapping, quantities: Optional[Mapping],
                   strict: bool) -> list:
        lines = []
        for sku_id, selections in chosen.items():
            sku = product.get_sku(sku_id)
            quantity = (quantities or {}).get(sku_id, 1)
            lines.append(self.price_sku(sku, selections, quantity=quantity, strict=strict))
        return lines

    def _product_breakdown(self, mode: str, product: Product, lines: list) -> dict:
        base_price = round(sum(l["base_price"] * l["quantity"] for l in lines), 2)
        surcharge_subtotal = round(sum(l["surcharge"] * l["quantity"] for l in lines), 2)
        return {
            "mode": mode,
            "product_id": product.id,
            "base_price": base_price,
            "surcharge_subtotal": surcharge_subtotal,
            "total": round(sum(l["total"] for l in lines), 2),
            "lines": lines,
        }

    def _calculate_surcharge_subtotal(self, lines: list) -> float:
        """Sum of surcharge_per_unit × quantity over all package lines."""
        return round(sum(line["surcharge_total"] for line in lines), 2)

    def _build_payment_options(self, total: float) -> dict:
        """
        Returns: {"30": {deposit, final, ...}, ..., "100": {...}}
        """
        return {
            str(ratio): self.payment_split(total, ratio)
            for ratio in self.PAYMENT_RATIO_OPTIONS
        }

    def _priced(self, mode: str, plan_id, base_price: float, surcharge_subtotal: float,
                lines: list, payment_ratio: int) -> dict:
        total = round(base_price + surcharge_subtotal, 2)
        return {
            "mode": mode,
            "plan_id": plan_id,
            "base_price": base_price,
            "surcharge_subtotal": surcharge_subtotal,
            "total": total,
            "lines": lines,
            "payment": self.payment_split(total, payment_ratio),
            "payment_options": self._build_payment_options(total),
        }
