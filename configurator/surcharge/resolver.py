"""
Material surcharge resolver.

Answers "how much extra does this material choice cost?" for package
products (bundle pricing) and for product-detail SKUs. The base option of a
material category (the first one listed) is always free; anything else is
priced by walking the mode's strategy chain (see registry.py).

PRO SKUs are sold at one flat price: they still expose material options,
but their surcharge is always 0.
"""

import logging
from typing import Dict, List, Mapping, Optional

from ..config import settings as default_settings
from ..errors import MissingSelection
from ..schemas import MaterialKey, PackageProduct, ProductSKU
from .base import (
    NO_MATCH,
    PACKAGE_MODE,
    PRODUCT_MODE,
    StrategyResult,
    SurchargeContext,
)
from .registry import build_chain, list_modes

logger = logging.getLogger(__name__)


def _as_key_map(selections: Optional[Mapping]) -> Dict[MaterialKey, Optional[str]]:
    """Accept selections keyed by MaterialKey or by raw catalog strings."""
    return {MaterialKey.parse(k): v for k, v in (selections or {}).items()}


def complete_selections(materials: Dict[MaterialKey, List[str]],
                        selections: Optional[Mapping],
                        require: bool = True,
                        owner: str = "") -> Dict[MaterialKey, str]:
    """
    Fill in the material choice for every category of a product/SKU.

    Single-option categories always resolve to their only option. A
    multi-option category with no choice raises MissingSelection when
    `require` is set; otherwise it resolves to the base option.
    """
    chosen = _as_key_map(selections)
    resolved = {}
    for key, options in materials.items():
        option = chosen.get(key)
        if option:
            resolved[key] = option
        elif len(options) == 1:
            resolved[key] = options[0]
        elif require:
            what = f" for {owner}" if owner else ""
            raise MissingSelection(
                f"Choose a {key.label} option{what}", material_key=key.label,
            )
        else:
            resolved[key] = options[0]
    return resolved


class MaterialSurchargeResolver:
    """
    Resolves material surcharges through the registered strategy chains.
    Stateless apart from the chains built from settings at construction.
    """

    def __init__(self, settings=None):
        self.settings = settings or default_settings
        self._chains = {mode: build_chain(mode, self.settings) for mode in list_modes()}

    def explain_option(self, options: List[str], option: Optional[str],
                       upgrade_prices: Dict[str, float], unit_price: float = 0.0,
                       mode: str = PACKAGE_MODE) -> StrategyResult:
        """
        Resolve one option and report which strategy priced it.
        Returns NO_MATCH when nothing is chosen or nothing in the chain applies.
        """
        if not option:
            return NO_MATCH
        if options and option == options[0]:
            return StrategyResult(True, 0.0, "base_option", option)

        context = SurchargeContext(option, options, upgrade_prices, unit_price)
        for strategy in self._chain(mode):
            result = strategy.resolve(context)
            if result.matched:
                return result
        logger.debug("No surcharge rule for %r in %s mode", option, mode)
        return NO_MATCH

    def resolve_option(self, options: List[str], option: Optional[str],
                       upgrade_prices: Dict[str, float], unit_price: float = 0.0,
                       mode: str = PACKAGE_MODE) -> float:
        """Surcharge for one option; 0.0 when unmatched."""
        result = self.explain_option(options, option, upgrade_prices, unit_price, mode)
        return result.amount if result.matched else 0.0

    def breakdown(self, materials: Dict[MaterialKey, List[str]], selections: Optional[Mapping],
                  upgrade_prices: Dict[str, float], unit_price: float = 0.0,
                  mode: str = PACKAGE_MODE, is_pro: bool = False) -> List[dict]:
        """Per-category surcharge lines, in catalog order."""
        chosen = _as_key_map(selections)
        lines = []
        for key, options in materials.items():
            option = chosen.get(key)
            if not option and len(options) == 1:
                option = options[0]
            result = self.explain_option(options, option, upgrade_prices, unit_price, mode)
            amount = result.amount if result.matched else 0.0
            lines.append({
                "material": key.label,
                "option": option,
                "amount": 0.0 if is_pro else amount,
                "strategy": result.strategy if result.matched else None,
            })
        return lines

    def resolve_selections(self, materials: Dict[MaterialKey, List[str]],
                           selections: Optional[Mapping],
                           upgrade_prices: Dict[str, float], unit_price: float = 0.0,
                           mode: str = PACKAGE_MODE, is_pro: bool = False) -> float:
        """Total surcharge across all material categories of one product/SKU."""
        if is_pro:
            return 0.0
        lines = self.breakdown(materials, selections, upgrade_prices, unit_price, mode)
        return round(sum(line["amount"] for line in lines), 2)

    def product_surcharge(self, product: PackageProduct, selections: Optional[Mapping]) -> float:
        """Per-unit surcharge for a package product."""
        return self.resolve_selections(
            product.materials, selections, product.upgrade_prices(),
            unit_price=product.price, mode=PACKAGE_MODE,
        )

    def sku_surcharge(self, sku: ProductSKU, selections: Optional[Mapping]) -> float:
        """Surcharge for a product-detail SKU; always 0 for PRO SKUs."""
        return self.resolve_selections(
            sku.materials, selections, sku.material_upgrade_prices,
            unit_price=sku.price, mode=PRODUCT_MODE, is_pro=sku.is_pro,
        )

    def pick_premium_option(self, options: List[str],
                            upgrade_prices: Dict[str, float]) -> Optional[str]:
        """
        The option with the highest surcharge; ties keep the earlier option.
        Used to auto-select materials for PRO SKUs.
        """
        best, best_amount = None, None
        for option in options:
            amount = self.resolve_option(options, option, upgrade_prices, mode=PRODUCT_MODE)
            if best is None or amount > best_amount:
                best, best_amount = option, amount
        return best

    def _chain(self, mode: str):
        if mode not in self._chains:
            # Unknown mode; build_chain raises with the available list
            self._chains[mode] = build_chain(mode, self.settings)
        return self._chains[mode]
