"""
Selection progress for a package: how many of the required items are picked.

Pure reads of the plan and SelectionState. Used to gate submission.
"""

from typing import Optional

from .money import round_half_up
from .schemas import PackagePlan
from .selection import SelectionState


class SelectionProgressTracker:

    def category_progress(self, plan: Optional[PackagePlan], state: SelectionState) -> list:
        """Per-category {key, name, required, selected, completed, is_complete}."""
        if plan is None:
            return []
        rows = []
        for category in plan.categories:
            selected = state.category_quantity(category.key)
            rows.append({
                "key": category.key,
                "name": category.name,
                "required": category.required,
                "selected": selected,
                "completed": min(selected, category.required),
                "is_complete": selected >= category.required,
            })
        return rows

    def progress(self, plan: Optional[PackagePlan], state: SelectionState) -> dict:
        """Return detailed completion status."""
        rows = self.category_progress(plan, state)
        completed = sum(r["completed"] for r in rows)
        required_total = sum(r["required"] for r in rows)
        percent = round_half_up(100 * completed / required_total) if required_total else 0
        return {
            "completed": completed,
            "required_total": required_total,
            "percent": percent,
            "is_complete": bool(rows) and all(r["is_complete"] for r in rows),
            "categories": rows,
        }

    def percent(self, plan: Optional[PackagePlan], state: SelectionState) -> int:
        return self.progress(plan, state)["percent"]

    def is_complete(self, plan: Optional[PackagePlan], state: SelectionState) -> bool:
        """Is every category filled up to its required count?"""
        return self.progress(plan, state)["is_complete"]

    def first_incomplete(self, plan: Optional[PackagePlan], state: SelectionState) -> Optional[dict]:
        """The first category (catalog order) still short of its quota, or None."""
        for row in self.category_progress(plan, state):
            if not row["is_complete"]:
                return row
        return None
