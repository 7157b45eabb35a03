"""
Shared test fixtures: sample catalog payloads, settings, engines.
"""

import pytest

from configurator.catalog import load_plan, load_product
from configurator.config import Settings
from configurator.pricing_engine import PricingEngine
from configurator.selection import CategoryQuotaSelector
from configurator.surcharge.resolver import MaterialSurchargeResolver


def sample_plan_data():
    """Living room package: ¥5000 base, sofa ×2, table ×1, chairs ×3."""
    return {
        "_id": "pkg-living",
        "name": "Living Room Package",
        "price": 5000,
        "categories": [
            {
                "key": "sofa",
                "name": "Sofa",
                "required": 2,
                "products": [
                    {
                        "id": "sofa-cloud",
                        "name": "Cloud Sofa",
                        "price": 8000,
                        "materials": {
                            "fabric": ["Linen", "Imported Velvet", "Boucle"],
                            "leg": "Oak",
                        },
                        "materialUpgradePrices": {"Imported Velvet": 1500},
                    },
                    {
                        "id": "sofa-arc",
                        "name": "Arc Sofa",
                        "price": 6000,
                        "material": {"面料": ["Cotton", "Half-grain Leather-Blue"]},
                        "skus": [
                            {
                                "_id": "sofa-arc-3p",
                                "price": 6000,
                                "materialUpgradePrices": {"Half-grain Leather": 2000},
                            },
                        ],
                    },
                    {
                        "id": "sofa-modular",
                        "name": "Modular Sofa",
                        "price": 9000,
                    },
                ],
            },
            {
                "key": "table",
                "name": "Coffee Table",
                "required": 1,
                "products": [
                    {
                        "id": "table-round",
                        "name": "Round Table",
                        "price": 2000,
                        "materials": {"frame": ["Steel", "Solid Wood Walnut"]},
                    },
                    {
                        "id": "table-slab",
                        "name": "Slab Table",
                        "price": 3000,
                    },
                ],
            },
            {
                "key": "chair",
                "name": "Lounge Chair",
                "required": 3,
                "products": [
                    {"id": "chair-a", "name": "Chair A", "price": 1000},
                    {"id": "chair-b", "name": "Chair B", "price": 1000},
                    {"id": "chair-c", "name": "Chair C", "price": 1000},
                    {"id": "chair-d", "name": "Chair D", "price": 1000},
                ],
            },
        ],
    }


def sample_product_data():
    """Product page with two standard SKUs and one PRO SKU."""
    return {
        "_id": "prod-sofa",
        "name": "Cloud Sofa",
        "basePrice": 7000,
        "skus": [
            {
                "_id": "sku-2p",
                "spec": "2-seat",
                "price": 7000,
                "discountPrice": 6500,
                "material": {
                    "fabric": ["Linen", "Velvet", "Genuine Leather"],
                    "leg": ["Oak"],
                },
                "materialUpgradePrices": {"Velvet": 800, "Genuine Leather": 2000},
            },
            {
                "_id": "sku-3p",
                "spec": "3-seat",
                "price": 9000,
                "material": {
                    "fabric": ["Linen", "Velvet"],
                    "frame": ["Pine", "Aviation Aluminum"],
                },
                "materialUpgradePrices": {"Velvet": 1000, "Aviation Aluminum": 600},
            },
            {
                "_id": "sku-pro",
                "spec": "3-seat PRO",
                "price": 12000,
                "isPro": True,
                "material": {"fabric": ["Linen", "Velvet", "Genuine Leather"]},
                "materialUpgradePrices": {"Velvet": 800, "Genuine Leather": 2000},
            },
        ],
    }


def sample_combo_data():
    """Composite product: sofa + table sold as separate lines."""
    return {
        "_id": "combo-lounge",
        "name": "Lounge Set",
        "basePrice": 0,
        "isCombo": True,
        "skus": [
            {
                "_id": "combo-sofa",
                "spec": "Sofa",
                "price": 8000,
                "material": {"fabric": ["Linen", "Velvet"]},
                "materialUpgradePrices": {"Velvet": 900},
            },
            {
                "_id": "combo-table",
                "spec": "Table",
                "price": 2500,
                "discountPrice": 2200,
            },
        ],
    }


@pytest.fixture
def settings():
    """Defaults, without reading a developer's .env."""
    return Settings(_env_file=None)


@pytest.fixture
def plan():
    return load_plan(sample_plan_data())


@pytest.fixture
def product():
    return load_product(sample_product_data())


@pytest.fixture
def combo():
    return load_product(sample_combo_data())


@pytest.fixture
def resolver(settings):
    return MaterialSurchargeResolver(settings)


@pytest.fixture
def engine(settings, resolver):
    return PricingEngine(settings, resolver)


@pytest.fixture
def selector(plan, settings):
    return CategoryQuotaSelector(plan, settings=settings)
