"""
Concrete surcharge strategies, in the order the registry chains them:

1. ExactMatchStrategy       : option is a key of the upgrade table
2. PrefixMatchStrategy      : "<series>-<variant>" where <series> is a key
3. SubstringMatchStrategy   : option contains a key, or a key contains the option
4. KeywordPremiumStrategy   : package mode: premium keyword in the option name
5. PercentageFallbackStrategy: package mode: max(8% of unit price, ¥300)
"""

import logging

from ..money import round_half_up
from .base import NO_MATCH, StrategyResult, SurchargeContext, SurchargeStrategy

logger = logging.getLogger(__name__)

# Premium keywords for package products whose upgrade table doesn't price an option.
# Checked in order, first hit wins. Storefront (Chinese) and English names both count.
MATERIAL_PREMIUM_RULES = [
    (("进口", "imported"), 1200),
    (("真皮", "genuine leather"), 1500),
    (("航空铝", "aviation aluminum", "aviation aluminium"), 900),
    (("高密度", "high-density", "high density"), 800),
    (("实木", "solid wood"), 700),
]


class ExactMatchStrategy(SurchargeStrategy):
    name = "exact"

    def resolve(self, context: SurchargeContext) -> StrategyResult:
        return self.table_lookup(context, context.option)


class PrefixMatchStrategy(SurchargeStrategy):
    """
    Strips variant suffixes off the chosen option only. Table keys are taken
    as-is: {"Titanium Legs-Black": 900} never prices "Titanium Legs-Silver".
    """

    name = "prefix"

    def resolve(self, context: SurchargeContext) -> StrategyResult:
        for prefix in self.variant_prefixes(context.option):
            result = self.table_lookup(context, prefix)
            if result.matched:
                return result
        return NO_MATCH


class SubstringMatchStrategy(SurchargeStrategy):
    name = "substring"

    def resolve(self, context: SurchargeContext) -> StrategyResult:
        option = context.option
        for key, price in context.upgrade_prices.items():
            if not key:
                continue
            if key in option or option in key:
                return self.match(price, key)
        return NO_MATCH


class KeywordPremiumStrategy(SurchargeStrategy):
    name = "keyword"

    def __init__(self, rules=None):
        self.rules = rules if rules is not None else MATERIAL_PREMIUM_RULES

    def resolve(self, context: SurchargeContext) -> StrategyResult:
        lowered = context.option.lower()
        for keywords, extra in self.rules:
            for keyword in keywords:
                if keyword.lower() in lowered:
                    return self.match(extra, keyword)
        return NO_MATCH


class PercentageFallbackStrategy(SurchargeStrategy):
    """Last resort for bundle products: always matches."""

    name = "percentage"

    def __init__(self, ratio: float = 0.08, floor: float = 300.0):
        self.ratio = ratio
        self.floor = floor

    @classmethod
    def from_settings(cls, settings) -> "PercentageFallbackStrategy":
        return cls(
            ratio=settings.FALLBACK_SURCHARGE_RATIO,
            floor=settings.FALLBACK_SURCHARGE_FLOOR,
        )

    def resolve(self, context: SurchargeContext) -> StrategyResult:
        amount = round_half_up(max(self.ratio * context.unit_price, self.floor))
        logger.debug(
            "No table entry for %r, falling back to %s (unit price %s)",
            context.option, amount, context.unit_price,
        )
        return self.match(amount)
