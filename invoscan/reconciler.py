"""Reconciliation of newly extracted unit prices against stored ones.

A :class:`ReconciliationSession` covers one invoice's batch. It is either
confirmed, yielding every product of the batch with prices resolved per
decision, or cancelled, yielding nothing. There is no partial result.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Mapping

from .models import CanonicalProduct, PriceDecision, PriceDiscrepancy

logger = logging.getLogger(__name__)


def find_discrepancies(
    products: list[CanonicalProduct], existing_prices: Mapping[str, float]
) -> list[PriceDiscrepancy]:
    """Catalog numbers whose new unit price differs from the stored one.

    One discrepancy per catalog number, taken from its first line in the
    batch, since the store keeps one price per catalog number. Products with
    no stored price are new items, not discrepancies.
    """
    discrepancies: list[PriceDiscrepancy] = []
    seen: set[str] = set()
    for product in products:
        if product.catalog_number in seen:
            continue
        seen.add(product.catalog_number)
        existing = existing_prices.get(product.catalog_number)
        if existing is None or existing == product.unit_price:
            continue
        discrepancies.append(
            PriceDiscrepancy(
                id=product.catalog_number,
                product=product,
                existing_unit_price=existing,
                new_unit_price=product.unit_price,
            )
        )
    return discrepancies


def default_decisions(discrepancies: list[PriceDiscrepancy]) -> dict[str, PriceDecision]:
    return {d.id: PriceDecision.KEEP_EXISTING for d in discrepancies}


def resolve_prices(
    products: list[CanonicalProduct],
    discrepancies: list[PriceDiscrepancy],
    decisions: Mapping[str, PriceDecision],
) -> list[CanonicalProduct]:
    """Return ``products`` with each discrepant unit price chosen per ``decisions``.

    Every line of a discrepant catalog number gets the chosen price. Ids
    missing from ``decisions`` keep the existing price. Output order and
    length match ``products``.
    """
    by_id = {d.id: d for d in discrepancies}
    resolved: list[CanonicalProduct] = []
    for product in products:
        d = by_id.get(product.catalog_number)
        if d is None:
            resolved.append(product)
            continue
        decision = decisions.get(d.id, PriceDecision.KEEP_EXISTING)
        price = d.new_unit_price if decision is PriceDecision.ADOPT_NEW else d.existing_unit_price
        resolved.append(replace(product, unit_price=price))
    return resolved


class ReconciliationSession:
    """One human resolution pass over an invoice's price discrepancies."""

    def __init__(
        self,
        products: list[CanonicalProduct],
        existing_prices: Mapping[str, float],
    ) -> None:
        self._products = list(products)
        self._discrepancies = find_discrepancies(self._products, existing_prices)
        self._decisions = default_decisions(self._discrepancies)
        self._closed = False
        if self._discrepancies:
            logger.info(
                "%d of %d product(s) have a changed unit price",
                len(self._discrepancies),
                len(self._products),
            )

    @property
    def discrepancies(self) -> list[PriceDiscrepancy]:
        return list(self._discrepancies)

    @property
    def decisions(self) -> dict[str, PriceDecision]:
        return dict(self._decisions)

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Reconciliation session is already closed")

    def set_decision(self, discrepancy_id: str, decision: PriceDecision | str) -> None:
        self._check_open()
        if discrepancy_id not in self._decisions:
            raise KeyError(discrepancy_id)
        self._decisions = {**self._decisions, discrepancy_id: PriceDecision(decision)}

    def adopt_all_new(self) -> None:
        self._check_open()
        self._decisions = {d.id: PriceDecision.ADOPT_NEW for d in self._discrepancies}

    def keep_all_existing(self) -> None:
        self._check_open()
        self._decisions = default_decisions(self._discrepancies)

    def confirm(self) -> list[CanonicalProduct]:
        """Close the session and return the full resolved batch."""
        self._check_open()
        self._closed = True
        return resolve_prices(self._products, self._discrepancies, self._decisions)

    def cancel(self) -> None:
        """Close the session without producing any records."""
        self._check_open()
        self._closed = True
        logger.info("Price reconciliation cancelled; %d product(s) discarded", len(self._products))
        return None
