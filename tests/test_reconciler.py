"""Tests for price discrepancy detection and resolution."""

import pytest

from invoscan.models import CanonicalProduct, PriceDecision
from invoscan.reconciler import (
    ReconciliationSession,
    find_discrepancies,
    resolve_prices,
)


def _product(catalog, unit_price, quantity=1.0, **kwargs):
    return CanonicalProduct(
        catalog_number=catalog,
        description=f"Item {catalog}",
        quantity=quantity,
        unit_price=unit_price,
        line_total=unit_price * quantity,
        **kwargs,
    )


@pytest.fixture
def products():
    return [_product("A", 12.0), _product("B", 5.0), _product("C", 7.0)]


@pytest.fixture
def existing():
    # C is not in the catalog yet
    return {"A": 10.0, "B": 5.0}


class TestFindDiscrepancies:
    def test_only_changed_prices(self, products, existing):
        found = find_discrepancies(products, existing)
        assert [d.id for d in found] == ["A"]
        assert found[0].existing_unit_price == 10.0
        assert found[0].new_unit_price == 12.0

    def test_no_stored_prices(self, products):
        assert find_discrepancies(products, {}) == []

    def test_any_difference_counts(self):
        found = find_discrepancies([_product("A", 10.0000001)], {"A": 10.0})
        assert len(found) == 1

    def test_repeated_catalog_number_is_one_discrepancy(self):
        items = [_product("A", 12.0), _product("A", 13.0)]
        found = find_discrepancies(items, {"A": 10.0})
        assert [d.id for d in found] == ["A"]
        assert found[0].new_unit_price == 12.0

    def test_discrepancy_is_hashable(self, products, existing):
        found = find_discrepancies(products, existing)
        assert len({*found, *find_discrepancies(products, existing)}) == 1


class TestReconciliationSession:
    def test_defaults_to_keep_existing(self, products, existing):
        session = ReconciliationSession(products, existing)
        assert session.decisions == {"A": PriceDecision.KEEP_EXISTING}

        resolved = session.confirm()
        assert [p.unit_price for p in resolved] == [10.0, 5.0, 7.0]

    def test_adopt_all_new(self, products, existing):
        session = ReconciliationSession(products, existing)
        session.adopt_all_new()

        resolved = session.confirm()
        assert resolved[0].unit_price == 12.0
        assert resolved[1] == products[1]
        assert resolved[2] == products[2]

    def test_keep_all_after_adopt(self, products, existing):
        session = ReconciliationSession(products, existing)
        session.adopt_all_new()
        session.keep_all_existing()
        assert set(session.decisions.values()) == {PriceDecision.KEEP_EXISTING}

    def test_per_item_decision(self):
        items = [_product("A", 12.0), _product("B", 6.0)]
        session = ReconciliationSession(items, {"A": 10.0, "B": 5.0})
        session.set_decision("B", PriceDecision.ADOPT_NEW)

        resolved = session.confirm()
        assert [p.unit_price for p in resolved] == [10.0, 6.0]

    def test_decision_accepts_string(self, products, existing):
        session = ReconciliationSession(products, existing)
        session.set_decision("A", "adopt_new")
        assert session.decisions["A"] is PriceDecision.ADOPT_NEW

    def test_unknown_id(self, products, existing):
        session = ReconciliationSession(products, existing)
        with pytest.raises(KeyError):
            session.set_decision("B", PriceDecision.ADOPT_NEW)

    def test_output_count_matches_input(self, products, existing):
        session = ReconciliationSession(products, existing)
        assert len(session.confirm()) == len(products)

    def test_cancel_yields_nothing(self, products, existing):
        session = ReconciliationSession(products, existing)
        session.adopt_all_new()
        assert session.cancel() is None
        assert session.closed

    def test_closed_session_rejects_changes(self, products, existing):
        session = ReconciliationSession(products, existing)
        session.cancel()
        with pytest.raises(RuntimeError):
            session.confirm()
        with pytest.raises(RuntimeError):
            session.adopt_all_new()

    def test_decisions_copy_is_detached(self, products, existing):
        session = ReconciliationSession(products, existing)
        snapshot = session.decisions
        session.adopt_all_new()
        assert snapshot == {"A": PriceDecision.KEEP_EXISTING}

    def test_repeated_catalog_number_follows_one_decision(self):
        items = [_product("A", 12.0), _product("B", 3.0), _product("A", 14.0)]
        session = ReconciliationSession(items, {"A": 10.0})
        session.set_decision("A", PriceDecision.ADOPT_NEW)

        resolved = session.confirm()
        assert [p.unit_price for p in resolved] == [12.0, 3.0, 12.0]

    def test_line_total_untouched(self, products, existing):
        session = ReconciliationSession(products, existing)
        resolved = session.confirm()
        assert resolved[0].line_total == products[0].line_total


def test_resolve_prices_missing_decision_keeps_existing(products, existing):
    discrepancies = find_discrepancies(products, existing)
    resolved = resolve_prices(products, discrepancies, {})
    assert resolved[0].unit_price == 10.0
