"""
Strategy registry: maps a pricing mode to its ordered surcharge chain.

Package products (bundle pricing) fall back to keyword premiums and a
percentage of the unit price. Single products only charge what their SKU's
upgrade table says; an unmatched option contributes nothing.
"""

from .base import PACKAGE_MODE, PRODUCT_MODE, SurchargeStrategy
from .strategies import (
    ExactMatchStrategy,
    KeywordPremiumStrategy,
    PercentageFallbackStrategy,
    PrefixMatchStrategy,
    SubstringMatchStrategy,
)

STRATEGY_CHAINS: dict[str, list[type]] = {
    PACKAGE_MODE: [
        ExactMatchStrategy,
        PrefixMatchStrategy,
        SubstringMatchStrategy,
        KeywordPremiumStrategy,
        PercentageFallbackStrategy,
    ],
    PRODUCT_MODE: [
        ExactMatchStrategy,
        PrefixMatchStrategy,
        SubstringMatchStrategy,
    ],
}


def build_chain(mode: str, settings) -> list[SurchargeStrategy]:
    """Returns fresh strategy instances for a mode, or raises ValueError."""
    if mode not in STRATEGY_CHAINS:
        raise ValueError(
            f"No surcharge chain registered for mode: {mode}. "
            f"Available: {list(STRATEGY_CHAINS.keys())}"
        )
    return [strategy_cls.from_settings(settings) for strategy_cls in STRATEGY_CHAINS[mode]]


def has_chain(mode: str) -> bool:
    return mode in STRATEGY_CHAINS


def list_modes() -> list[str]:
    return list(STRATEGY_CHAINS.keys())
