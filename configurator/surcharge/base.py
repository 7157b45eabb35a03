"""
Abstract base class for material surcharge strategies.

Each strategy answers one question about a chosen material option
("is it priced by an exact table key?", "does it carry a premium
keyword?", ...) and returns either a match or NO_MATCH. The resolver walks
an ordered chain of strategies and stops at the first match, so precedence
lives in the chain order (see registry.py) rather than in nested
conditionals.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

PACKAGE_MODE = "package"
PRODUCT_MODE = "product"

# Separators between a material series and its variant: "Half-grain Leather-Blue"
VARIANT_SEPARATORS = ("-", "\u2013", "\u2014")  # hyphen, en dash, em dash


class SurchargeContext:
    """Everything a strategy may look at for one chosen option."""

    def __init__(self, option: str, options: List[str],
                 upgrade_prices: Dict[str, float], unit_price: float = 0.0):
        self.option = option
        self.options = list(options or [])
        self.upgrade_prices = upgrade_prices or {}
        self.unit_price = unit_price

    @property
    def base_option(self) -> Optional[str]:
        return self.options[0] if self.options else None


class StrategyResult:
    """Outcome of one strategy. NO_MATCH means "ask the next strategy"."""

    def __init__(self, matched: bool, amount: float = 0.0, strategy: str = "",
                 matched_key: Optional[str] = None):
        self.matched = matched
        self.amount = amount
        self.strategy = strategy
        self.matched_key = matched_key

    def as_dict(self) -> dict:
        return {
            "matched": self.matched,
            "amount": self.amount,
            "strategy": self.strategy,
            "matched_key": self.matched_key,
        }

    def __repr__(self):
        if not self.matched:
            return "StrategyResult(NO_MATCH)"
        return (f"StrategyResult({self.strategy}, amount={self.amount}, "
                f"key={self.matched_key!r})")


NO_MATCH = StrategyResult(matched=False)


class SurchargeStrategy(ABC):
    """All surcharge strategies inherit from this."""

    name = "base"

    @classmethod
    def from_settings(cls, settings) -> "SurchargeStrategy":
        """Build the strategy from Settings. Override when a strategy is configurable."""
        return cls()

    @abstractmethod
    def resolve(self, context: SurchargeContext) -> StrategyResult:
        """
        Takes the chosen option and its price table.
        Returns a matched StrategyResult or NO_MATCH.
        """
        pass

    # --- Helper methods for all strategies ---

    def match(self, amount: float, matched_key: Optional[str] = None) -> StrategyResult:
        """Build a matched result tagged with this strategy's name."""
        return StrategyResult(True, float(amount), self.name, matched_key)

    def table_lookup(self, context: SurchargeContext, key: str) -> StrategyResult:
        """Exact lookup in the upgrade table. A 0 entry is still a match."""
        if key in context.upgrade_prices:
            return self.match(context.upgrade_prices[key], key)
        return NO_MATCH

    def variant_prefixes(self, option: str) -> List[str]:
        """
        Series names obtained by cutting a variant suffix off the option,
        longest first: "Oak-Dark-Matte" → ["Oak-Dark", "Oak"].
        """
        cuts = sorted(
            (i for i, ch in enumerate(option) if ch in VARIANT_SEPARATORS),
            reverse=True,
        )
        prefixes = []
        for cut in cuts:
            prefix = option[:cut].strip()
            if prefix and prefix not in prefixes:
                prefixes.append(prefix)
        return prefixes
