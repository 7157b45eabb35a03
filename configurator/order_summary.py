"""
Priced selection summary and the order payload handed to order submission.

The summary is only built for a finished package: every category filled to
its quota and every material choice made. Anything still open raises
MissingSelection naming what is missing.
"""

import logging
import random
import re
from datetime import datetime, timezone
from typing import Optional

from .config import settings as default_settings
from .errors import CatalogUnavailable, MissingSelection, SelectionError
from .pricing_engine import PricingEngine
from .progress import SelectionProgressTracker
from .schemas import PackagePlan
from .selection import SelectionState

logger = logging.getLogger(__name__)

MAINLAND_MOBILE = re.compile(r"^1[3-9]\d{9}$")
CONTACT_FIELDS = ("name", "phone", "address")


def build_selection_summary(plan: Optional[PackagePlan], state: SelectionState,
                            engine: Optional[PricingEngine] = None, settings=None,
                            payment_ratio: Optional[int] = None) -> dict:
    """
    Priced summary of a completed package selection.

    Returns:
        {
            "plan_id", "plan_name",
            "categories": [{key, name, required,
                            products: [{product_id, name, quantity,
                                        materials, surcharge_per_unit}]}],
            "base_price", "surcharge_subtotal", "total", "payment",
        }
    """
    if plan is None:
        raise CatalogUnavailable("No package loaded")
    settings = settings or default_settings
    engine = engine or PricingEngine(settings)

    incomplete = SelectionProgressTracker().first_incomplete(plan, state)
    if incomplete:
        raise MissingSelection(
            f"Complete {incomplete['name'] or incomplete['key']}: "
            f"choose {incomplete['required']} item(s)",
            category_key=incomplete["key"],
        )

    priced = engine.price_package(plan, state, payment_ratio=payment_ratio, strict=True)

    groups = []
    for category in plan.categories:
        products = [
            {
                "product_id": line["product_id"],
                "name": line["name"],
                "quantity": line["quantity"],
                "materials": line["materials"],
                "surcharge_per_unit": line["surcharge_per_unit"],
            }
            for line in priced["lines"] if line["category_key"] == category.key
        ]
        groups.append({
            "key": category.key,
            "name": category.name,
            "required": category.required,
            "products": products,
        })

    return {
        "plan_id": plan.id,
        "plan_name": plan.name,
        "categories": groups,
        "base_price": priced["base_price"],
        "surcharge_subtotal": priced["surcharge_subtotal"],
        "total": priced["total"],
        "payment": priced["payment"],
    }


def describe_selection(group: dict) -> str:
    """'Cloud Sofa ×2 (FABRIC·Linen / LEG·Oak) | Arm Chair ×1 (default configuration)'"""
    parts = []
    for item in group.get("products", []):
        materials = item.get("materials") or {}
        if materials:
            material_text = " / ".join(f"{k.upper()}·{v}" for k, v in materials.items())
        else:
            material_text = "default configuration"
        parts.append(f"{item['name'] or item['product_id']} ×{item['quantity']} ({material_text})")
    return " | ".join(parts)


def generate_order_no(prefix: Optional[str] = None, now: Optional[datetime] = None,
                      rng=None) -> str:
    """PKG + yyyymmdd (UTC) + 4 random digits."""
    if prefix is None:
        prefix = default_settings.ORDER_NO_PREFIX
    now = now or datetime.now(timezone.utc)
    rng = rng or random
    return f"{prefix}{now:%Y%m%d}{rng.randint(0, 9999):04d}"


def build_order_payload(summary: dict, contact: dict, note: str = "",
                        now: Optional[datetime] = None, rng=None, settings=None) -> dict:
    """
    Order payload for the order service. The package is one line item whose
    selections are the human-readable text per category.
    """
    settings = settings or default_settings
    missing = [field for field in CONTACT_FIELDS if not (contact.get(field) or "").strip()]
    if missing:
        raise SelectionError(f"Contact details missing: {', '.join(missing)}")
    if not MAINLAND_MOBILE.match(contact["phone"].strip()):
        raise SelectionError(f"Invalid mobile number: {contact['phone']}")

    order_no = generate_order_no(settings.ORDER_NO_PREFIX, now=now, rng=rng)
    selections = {
        group["name"] or group["key"]: describe_selection(group)
        for group in summary["categories"]
    }
    logger.info("Built order %s for package %s, total %s",
                order_no, summary["plan_id"], summary["total"])

    return {
        "order_no": order_no,
        "title": f"{summary['plan_name']} package order",
        "status": "pending",
        "total_amount": summary["total"],
        "payment": summary["payment"],
        "items": [{
            "id": summary["plan_id"],
            "name": summary["plan_name"],
            "type": "package",
            "quantity": 1,
            "price": summary["total"],
            "selections": selections,
        }],
        "note": note,
        "contact_name": contact["name"].strip(),
        "phone": contact["phone"].strip(),
        "address": contact["address"].strip(),
        "package_id": summary["plan_id"],
        "package_selections": summary["categories"],
    }
