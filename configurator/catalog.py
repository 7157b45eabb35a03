"""
Catalog loading and material preview images.

Plans and products come from the storefront's catalog service, or from JSON
files exported from it. Whatever goes wrong on the way in (network error,
bad JSON, a payload that doesn't validate, an empty plan) surfaces as
CatalogUnavailable so the caller can offer a retry.
"""

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .config import settings as default_settings
from .errors import CatalogUnavailable
from .schemas import PackagePlan, PackageProduct, Product, ProductSKU

logger = logging.getLogger(__name__)


def unwrap(payload):
    """Storefront API responses wrap the payload in {"data": ...}."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def load_plan(data: dict) -> PackagePlan:
    """Validate a package payload. Empty plans are unusable."""
    try:
        plan = PackagePlan.model_validate(data)
    except ValidationError as e:
        raise CatalogUnavailable(f"Invalid package payload: {e}") from e
    if not plan.categories:
        raise CatalogUnavailable(f"Package {plan.id} has no categories")
    logger.info("Loaded package %s with %d categories", plan.id, len(plan.categories))
    return plan


def load_product(data: dict) -> Product:
    try:
        product = Product.model_validate(data)
    except ValidationError as e:
        raise CatalogUnavailable(f"Invalid product payload: {e}") from e
    if not product.skus:
        raise CatalogUnavailable(f"Product {product.id} has no SKUs")
    return product


def load_plan_file(path) -> PackagePlan:
    """Load a package plan from an exported JSON file."""
    filepath = Path(path)
    try:
        with open(filepath, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise CatalogUnavailable(f"No package file at {filepath}") from e
    except json.JSONDecodeError as e:
        raise CatalogUnavailable(f"Package file {filepath} is not valid JSON: {e}") from e
    return load_plan(unwrap(data))


class CatalogClient:
    """
    Read-only client for the storefront catalog service.

    GET {base_url}/packages/{id}, /products/{id} and /materials. Responses may
    wrap the payload in {"data": ...}.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None,
                 settings=None):
        settings = settings or default_settings
        self.base_url = (base_url if base_url is not None else settings.CATALOG_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.CATALOG_TIMEOUT_SECONDS

    def fetch_plan(self, plan_id: str) -> PackagePlan:
        return load_plan(self._get_json(f"/packages/{urllib.parse.quote(str(plan_id))}"))

    def fetch_product(self, product_id: str) -> Product:
        return load_product(self._get_json(f"/products/{urllib.parse.quote(str(product_id))}"))

    def fetch_material_images(self) -> dict:
        """Material library as {name: first image url}."""
        payload = self._get_json("/materials")
        if isinstance(payload, dict):
            payload = payload.get("list") or payload.get("items") or []
        return build_material_image_map(payload)

    def _get_json(self, path: str):
        if not self.base_url:
            raise CatalogUnavailable("CATALOG_BASE_URL is not configured")

        url = f"{self.base_url}{path}"
        req = urllib.request.Request(url, headers={"Accept": "application/json"})
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                result = json.loads(response.read())
        except (urllib.error.URLError, OSError, json.JSONDecodeError) as e:
            logger.warning("Catalog request %s failed: %s", url, e)
            raise CatalogUnavailable(f"Catalog request failed: {e}") from e

        result = unwrap(result)
        if not result:
            raise CatalogUnavailable(f"Catalog returned nothing for {path}")
        return result


def build_material_image_map(materials) -> dict:
    """
    {name: image} from material library entries shaped
    {"name": ..., "images": [...]} (first image) or {"name": ..., "image": ...}.
    """
    images = {}
    for entry in materials or []:
        if not isinstance(entry, dict) or not entry.get("name"):
            continue
        url = next((img for img in entry.get("images") or [] if img), None) or entry.get("image")
        if url:
            images.setdefault(str(entry["name"]).strip(), url)
    return images


def resolve_material_image(option: str, product: Optional[PackageProduct] = None,
                           sku: Optional[ProductSKU] = None,
                           library: Optional[dict] = None,
                           placeholder: Optional[str] = None) -> str:
    """
    Preview image for a material option. First hit wins: material library,
    product per-option images, SKU per-option images, product image,
    placeholder.
    """
    if library and library.get(option):
        return library[option]
    if product is not None and product.material_images.get(option):
        return product.material_images[option]
    if sku is not None and sku.material_images.get(option):
        return sku.material_images[option]
    if product is not None and product.image:
        return product.image
    return placeholder or default_settings.MATERIAL_PLACEHOLDER_IMAGE
