"""
Catalog loading and material image tests.

Tests:
1-3.   Sample plan file: load, normalized materials, surcharges end to end
4-8.   CatalogUnavailable: missing file, bad JSON, invalid/empty payloads
9-12.  CatalogClient over a patched urlopen
13-15. Material preview images
"""

import io
import json
import urllib.error
from pathlib import Path
from unittest.mock import patch

import pytest

from configurator.catalog import (
    CatalogClient,
    build_material_image_map,
    load_plan,
    load_plan_file,
    load_product,
    resolve_material_image,
)
from configurator.errors import CatalogUnavailable
from configurator.schemas import MaterialKey, MaterialTag

SAMPLE_PLAN = Path(__file__).parent.parent / "data" / "sample_plan.json"


def _sample_response(payload):
    return io.BytesIO(json.dumps(payload).encode("utf-8"))


# ============================================================
# Sample plan file
# ============================================================

def test_load_sample_plan_file():
    plan = load_plan_file(SAMPLE_PLAN)
    assert plan.id == "pkg-nordic-3br"
    assert plan.price == 29800
    assert [c.key for c in plan.categories] == ["living-sofa", "bed", "dining"]
    assert [c.required for c in plan.categories] == [1, 2, 4]


def test_sample_plan_materials_are_normalized():
    plan = load_plan_file(SAMPLE_PLAN)
    sofa = plan.get_product("sofa-cloud-3p")
    assert list(sofa.materials) == [
        MaterialKey(MaterialTag.FABRIC),
        MaterialKey(MaterialTag.FILLING),
        MaterialKey(MaterialTag.LEG),
    ]
    assert sofa.materials[MaterialKey(MaterialTag.LEG)] == ["Black Steel"]

    arc = plan.get_product("sofa-arc-modular")
    assert arc.materials == {MaterialKey(MaterialTag.FABRIC): ["Boucle", "Velvet"]}
    assert arc.skus[0].id == "sofa-arc-4m"


def test_sample_plan_surcharges(resolver):
    plan = load_plan_file(SAMPLE_PLAN)
    sofa = plan.get_product("sofa-cloud-3p")
    assert resolver.product_surcharge(sofa, {"面料": "Half-grain Leather-Blue", "填充": "Foam"}) == 1800
    # Imported keyword + high-density keyword
    assert resolver.product_surcharge(
        sofa, {"面料": "Imported Top-grain Leather", "填充": "High-Density Foam"},
    ) == 2000
    assert resolver.product_surcharge(plan.get_product("sofa-arc-modular"), {"fabric": "Velvet"}) == 1200
    assert resolver.product_surcharge(plan.get_product("chair-wishbone"), {"frame": "Aviation Aluminum"}) == 900


# ============================================================
# CatalogUnavailable
# ============================================================

def test_missing_file(tmp_path):
    with pytest.raises(CatalogUnavailable, match="No package file"):
        load_plan_file(tmp_path / "nope.json")


def test_bad_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogUnavailable, match="not valid JSON"):
        load_plan_file(path)


def test_invalid_plan_payloads():
    with pytest.raises(CatalogUnavailable):
        load_plan({"id": "p", "categories": [{"key": "a", "required": 0}]})
    with pytest.raises(CatalogUnavailable):
        load_plan({"id": "p", "categories": [
            {"key": "a", "required": 1}, {"key": "a", "required": 2},
        ]})
    with pytest.raises(CatalogUnavailable):
        load_plan({"id": "p", "categories": [
            {"key": "a", "required": 1, "products": [{"id": "x"}]},
            {"key": "b", "required": 1, "products": [{"id": "x"}]},
        ]})
    with pytest.raises(CatalogUnavailable):
        load_plan(None)


def test_empty_plan_is_unavailable():
    with pytest.raises(CatalogUnavailable, match="no categories"):
        load_plan({"id": "p", "name": "Empty", "categories": []})


def test_product_without_skus_is_unavailable():
    with pytest.raises(CatalogUnavailable, match="no SKUs"):
        load_product({"_id": "prod-1", "name": "Ghost", "skus": []})


# ============================================================
# CatalogClient
# ============================================================

def test_client_requires_base_url(settings):
    client = CatalogClient(base_url="", settings=settings)
    with pytest.raises(CatalogUnavailable, match="CATALOG_BASE_URL"):
        client.fetch_plan("pkg-1")


def test_client_fetches_plan_from_envelope(settings):
    payload = json.loads(SAMPLE_PLAN.read_text(encoding="utf-8"))
    client = CatalogClient(base_url="https://shop.example.com/api/", timeout=5, settings=settings)

    with patch("urllib.request.urlopen", return_value=_sample_response(payload)) as urlopen:
        plan = client.fetch_plan("pkg-nordic-3br")

    assert plan.id == "pkg-nordic-3br"
    request = urlopen.call_args[0][0]
    assert request.full_url == "https://shop.example.com/api/packages/pkg-nordic-3br"
    assert urlopen.call_args[1]["timeout"] == 5


def test_client_network_failure_is_unavailable(settings):
    client = CatalogClient(base_url="https://shop.example.com/api", settings=settings)
    with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("connection refused")):
        with pytest.raises(CatalogUnavailable, match="connection refused"):
            client.fetch_product("prod-sofa")


def test_client_empty_response_is_unavailable(settings):
    client = CatalogClient(base_url="https://shop.example.com/api", settings=settings)
    with patch("urllib.request.urlopen", return_value=_sample_response({"data": None})):
        with pytest.raises(CatalogUnavailable):
            client.fetch_plan("pkg-gone")


def test_client_material_library(settings):
    client = CatalogClient(base_url="https://shop.example.com/api", settings=settings)
    library = {"data": {"list": [
        {"name": "Velvet", "images": ["", "/m/velvet.jpg"]},
        {"name": "Oak", "image": "/m/oak.jpg"},
        {"name": "Pine", "images": []},
    ]}}
    with patch("urllib.request.urlopen", return_value=_sample_response(library)):
        assert client.fetch_material_images() == {"Velvet": "/m/velvet.jpg", "Oak": "/m/oak.jpg"}


# ============================================================
# Material images
# ============================================================

def test_material_image_map_keeps_first_entry():
    entries = [
        {"name": "Velvet", "images": ["/a.jpg"]},
        {"name": "Velvet", "images": ["/b.jpg"]},
        {"images": ["/nameless.jpg"]},
        "junk",
    ]
    assert build_material_image_map(entries) == {"Velvet": "/a.jpg"}


def test_material_image_resolution_order():
    plan = load_plan_file(SAMPLE_PLAN)
    sofa = plan.get_product("sofa-cloud-3p")
    library = {"Foam": "/library/foam.jpg"}

    assert resolve_material_image("Foam", sofa, library=library) == "/library/foam.jpg"
    assert resolve_material_image("Tech Fabric", sofa, library=library) == "/images/materials/tech-fabric.jpg"
    assert resolve_material_image("Black Steel", sofa, library=library) == "/images/products/sofa-cloud.jpg"


def test_material_image_falls_back_to_placeholder(product):
    sku = product.get_sku("sku-2p")
    sku.material_images["Velvet"] = "/sku/velvet.jpg"
    assert resolve_material_image("Velvet", sku=sku) == "/sku/velvet.jpg"
    assert resolve_material_image("Linen", sku=sku) == "/placeholder.svg"
    assert resolve_material_image("Linen", placeholder="/none.png") == "/none.png"
