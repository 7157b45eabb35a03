"""
Exception types raised by the configurator.

None of these are fatal: the caller reports them to the shopper and the
selection state is left exactly as it was before the failed operation.
"""


class ConfiguratorError(Exception):
    """Base class for all configurator errors."""


class QuotaExceeded(ConfiguratorError):
    """A select or quantity change would push a category past its required count."""

    def __init__(self, category_key: str, category_name: str, required: int):
        self.category_key = category_key
        self.category_name = category_name
        self.required = required
        super().__init__(
            f"{category_name} allows at most {required} item(s)"
        )


class MissingSelection(ConfiguratorError):
    """A material choice or a package category is still open at price/submit time."""

    def __init__(self, message: str, category_key: str = None, material_key: str = None):
        self.category_key = category_key
        self.material_key = material_key
        super().__init__(message)


class CatalogUnavailable(ConfiguratorError):
    """The catalog fetch failed or returned an empty plan/product."""


class CatalogLookupError(ConfiguratorError, LookupError):
    """Unknown category, product or SKU for the loaded catalog."""


class SelectionError(ConfiguratorError, ValueError):
    """An intent that is not legal for the current selection."""
