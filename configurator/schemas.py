"""
Catalog data model: packages, categories, products and SKUs.

Catalog payloads arrive in whatever shape the storefront admin saved them:
materials as a bare string, a list, or a dict whose values are strings or
lists, keyed by English tags ("fabric") or storefront labels ("面料").
Everything is normalized here, once, into {MaterialKey: [option, ...]}
before any pricing logic sees it. The first option of each list is the
base (non-upgraded) option.
"""

import enum
from typing import Dict, Iterator, List, NamedTuple, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .errors import CatalogLookupError


class MaterialTag(str, enum.Enum):
    FABRIC = "fabric"
    FILLING = "filling"
    FRAME = "frame"
    LEG = "leg"
    OTHER = "other"


# Storefront labels for the well-known tags
TAG_ALIASES = {
    "面料": MaterialTag.FABRIC,
    "填充": MaterialTag.FILLING,
    "框架": MaterialTag.FRAME,
    "脚架": MaterialTag.LEG,
}


class MaterialKey(NamedTuple):
    """A material category: one of the well-known tags, or other(name)."""

    tag: MaterialTag
    name: str = ""

    @classmethod
    def other(cls, name: str) -> "MaterialKey":
        return cls(MaterialTag.OTHER, name.strip())

    @classmethod
    def parse(cls, raw) -> "MaterialKey":
        """Map a raw catalog key (tag, label, or free text) to a MaterialKey."""
        if isinstance(raw, MaterialKey):
            return raw
        if isinstance(raw, MaterialTag):
            if raw is MaterialTag.OTHER:
                raise ValueError("MaterialTag.OTHER needs a name, use MaterialKey.other()")
            return cls(raw)
        text = str(raw).strip()
        if not text:
            raise ValueError("Material category key cannot be empty")
        lowered = text.lower()
        for tag in MaterialTag:
            if tag is not MaterialTag.OTHER and tag.value == lowered:
                return cls(tag)
        if text in TAG_ALIASES:
            return cls(TAG_ALIASES[text])
        return cls.other(text)

    @property
    def label(self) -> str:
        return self.name if self.tag is MaterialTag.OTHER else self.tag.value


def _option_list(value) -> List[str]:
    """Flatten one material value (str, list, or {name: ...} items) into clean options."""
    if value is None:
        return []
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise ValueError(f"Unsupported material option value: {value!r}")

    options = []
    for item in items:
        if isinstance(item, dict):
            item = item.get("name")
        if not item:
            continue
        text = str(item).strip()
        if text and text not in options:
            options.append(text)
    return options


def normalize_materials(raw) -> Dict[MaterialKey, List[str]]:
    """
    Normalize any catalog material representation.

    - None / empty → {}
    - "Velvet" → {fabric: ["Velvet"]}
    - ["Velvet", "Linen"] → {fabric: ["Velvet", "Linen"]}
    - {"fabric": "Velvet", "面料": [...], "Cushion": [...]} → keys parsed, options merged
    """
    if not raw:
        return {}
    if isinstance(raw, (str, list, tuple)):
        options = _option_list(raw)
        return {MaterialKey(MaterialTag.FABRIC): options} if options else {}
    if not isinstance(raw, dict):
        raise ValueError(f"Unsupported materials value: {raw!r}")

    result: Dict[MaterialKey, List[str]] = {}
    for key, value in raw.items():
        options = _option_list(value)
        if not options:
            continue
        merged = result.setdefault(MaterialKey.parse(key), [])
        for option in options:
            if option not in merged:
                merged.append(option)
    return result


def _clean_prices(raw) -> Dict[str, float]:
    """Upgrade tables sometimes carry blanks or non-numeric junk; drop those entries."""
    prices = {}
    for key, value in (raw or {}).items():
        if value is None or value == "":
            continue
        try:
            prices[str(key)] = float(value)
        except (TypeError, ValueError):
            continue
    return prices


class CatalogModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ProductSKU(CatalogModel):
    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    spec: Optional[str] = None
    price: float = 0.0
    discount_price: Optional[float] = None
    materials: Dict[MaterialKey, List[str]] = Field(
        default_factory=dict, validation_alias=AliasChoices("materials", "material"),
    )
    material_upgrade_prices: Dict[str, float] = Field(default_factory=dict)
    material_images: Dict[str, str] = Field(default_factory=dict)
    is_pro: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return str(value) if value is not None else value

    @field_validator("materials", mode="before")
    @classmethod
    def normalize_material_options(cls, value):
        return normalize_materials(value)

    @field_validator("material_upgrade_prices", mode="before")
    @classmethod
    def normalize_upgrade_prices(cls, value):
        return _clean_prices(value)

    @property
    def base_price(self) -> float:
        """Discount price only when it's positive and strictly below list price."""
        if self.discount_price and 0 < self.discount_price < self.price:
            return self.discount_price
        return self.price


class PackageProduct(CatalogModel):
    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str = ""
    price: float = 0.0
    image: Optional[str] = None
    materials: Dict[MaterialKey, List[str]] = Field(
        default_factory=dict, validation_alias=AliasChoices("materials", "material"),
    )
    material_images: Dict[str, str] = Field(default_factory=dict)
    material_upgrade_prices: Dict[str, float] = Field(default_factory=dict)
    skus: List[ProductSKU] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return str(value) if value is not None else value

    @field_validator("materials", mode="before")
    @classmethod
    def normalize_material_options(cls, value):
        return normalize_materials(value)

    @field_validator("material_upgrade_prices", mode="before")
    @classmethod
    def normalize_upgrade_prices(cls, value):
        return _clean_prices(value)

    def upgrade_prices(self) -> Dict[str, float]:
        """
        Effective upgrade table for package pricing.
        Product-level entries first, then each SKU's table in catalog order;
        the first table to price an option wins.
        """
        merged = dict(self.material_upgrade_prices)
        for sku in self.skus:
            for option, price in sku.material_upgrade_prices.items():
                merged.setdefault(option, price)
        return merged


class PackageCategory(CatalogModel):
    key: str
    name: str = ""
    required: int = Field(ge=1)
    products: List[PackageProduct] = Field(default_factory=list)

    def has_product(self, product_id: str) -> bool:
        return any(p.id == product_id for p in self.products)


class PackagePlan(CatalogModel):
    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str = ""
    price: float = 0.0
    categories: List[PackageCategory] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return str(value) if value is not None else value

    @model_validator(mode="after")
    def check_unique_keys(self):
        category_keys = [c.key for c in self.categories]
        if len(category_keys) != len(set(category_keys)):
            raise ValueError(f"Duplicate category keys in plan {self.id}")
        product_ids = [p.id for c in self.categories for p in c.products]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError(f"Duplicate product ids in plan {self.id}")
        return self

    def get_category(self, category_key: str) -> PackageCategory:
        for category in self.categories:
            if category.key == category_key:
                return category
        raise CatalogLookupError(
            f"No category {category_key!r} in plan {self.id}. "
            f"Available: {[c.key for c in self.categories]}"
        )

    def get_product(self, product_id: str) -> PackageProduct:
        for product in self.iter_products():
            if product.id == product_id:
                return product
        raise CatalogLookupError(f"No product {product_id!r} in plan {self.id}")

    def iter_products(self) -> Iterator[PackageProduct]:
        for category in self.categories:
            yield from category.products


class Product(CatalogModel):
    """A single product as shown on the product-detail page."""

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str = ""
    base_price: float = 0.0
    images: List[str] = Field(default_factory=list)
    skus: List[ProductSKU] = Field(default_factory=list)
    is_combo: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return str(value) if value is not None else value

    def get_sku(self, sku_id: str) -> ProductSKU:
        for sku in self.skus:
            if sku.id == sku_id:
                return sku
        raise CatalogLookupError(
            f"No SKU {sku_id!r} for product {self.id}. "
            f"Available: {[s.id for s in self.skus]}"
        )
