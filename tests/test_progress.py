"""
Selection progress tests.

Tests:
1. Empty selection is 0%
2. Partial progress rounds half up
3. Full selection is complete
4. first_incomplete follows catalog order
5. No plan loaded
"""

from configurator.progress import SelectionProgressTracker
from configurator.selection import SelectionState


def test_empty_selection(plan, selector):
    status = SelectionProgressTracker().progress(plan, selector.state)
    assert status["completed"] == 0
    assert status["required_total"] == 6
    assert status["percent"] == 0
    assert status["is_complete"] is False
    assert [row["key"] for row in status["categories"]] == ["sofa", "table", "chair"]


def test_partial_progress(plan, selector):
    tracker = SelectionProgressTracker()
    selector.select("table", "table-round")
    # 1 of 6 → 16.67%
    assert tracker.percent(plan, selector.state) == 17

    selector.select("chair", "chair-a")
    selector.select("chair", "chair-b")
    # 3 of 6
    assert tracker.percent(plan, selector.state) == 50
    assert not tracker.is_complete(plan, selector.state)


def test_complete_selection(plan, selector):
    tracker = SelectionProgressTracker()
    selector.select("sofa", "sofa-cloud")
    selector.change_quantity("sofa", "sofa-cloud", 1)
    selector.select("table", "table-slab")
    selector.select_all("chair")

    status = tracker.progress(plan, selector.state)
    assert status["completed"] == 6
    assert status["percent"] == 100
    assert status["is_complete"] is True
    assert tracker.first_incomplete(plan, selector.state) is None


def test_first_incomplete_in_catalog_order(plan, selector):
    selector.select("sofa", "sofa-cloud")
    selector.select("sofa", "sofa-arc")
    row = SelectionProgressTracker().first_incomplete(plan, selector.state)
    assert row["key"] == "table"
    assert row["required"] == 1
    assert row["selected"] == 0


def test_no_plan_loaded():
    tracker = SelectionProgressTracker()
    status = tracker.progress(None, SelectionState())
    assert status == {
        "completed": 0,
        "required_total": 0,
        "percent": 0,
        "is_complete": False,
        "categories": [],
    }
    assert tracker.first_incomplete(None, SelectionState()) is None
