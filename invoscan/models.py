"""Canonical, persistence-ready records produced by the scan pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Any


def _drop_absent(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class CanonicalProduct:
    """A normalized product line.

    ``unit_price`` is always set. ``line_total`` is taken from the provider
    as-is and never recomputed from ``unit_price * quantity``.
    """

    catalog_number: str
    description: str
    quantity: float
    unit_price: float
    line_total: float
    name: str | None = None
    barcode: str | None = None
    short_name: str | None = None
    sale_price: float | None = None
    min_stock_level: float | None = None
    max_stock_level: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Plain dict with absent optional fields left out."""
        return _drop_absent(asdict(self))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CanonicalProduct:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})


@dataclass
class CanonicalHeader:
    supplier_name: str | None = None
    invoice_number: str | None = None
    total_amount: float | None = None
    invoice_date: date | None = None
    payment_method: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = _drop_absent(asdict(self))
        if self.invoice_date is not None:
            data["invoice_date"] = self.invoice_date.isoformat()
        return data


class PriceDecision(str, Enum):
    KEEP_EXISTING = "keep_existing"
    ADOPT_NEW = "adopt_new"


@dataclass(frozen=True)
class PriceDiscrepancy:
    """A catalog number whose newly extracted unit price differs from the stored one.

    ``product`` is left out of equality and hashing; the prices identify the change.
    """

    id: str
    product: CanonicalProduct = field(compare=False)
    existing_unit_price: float
    new_unit_price: float

    @property
    def catalog_number(self) -> str:
        return self.product.catalog_number

    @property
    def label(self) -> str:
        return self.product.short_name or self.product.description


@dataclass
class ProductScanResult:
    """Output of product extraction.

    When ``error`` is set the scan failed and ``products`` must be ignored.
    """

    products: list[CanonicalProduct] = field(default_factory=list)
    invoice_number: str | None = None
    supplier: str | None = None
    total_amount: float | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.error

    def to_dict(self) -> dict[str, Any]:
        if self.error:
            return {"products": [], "error": self.error}
        data: dict[str, Any] = {"products": [p.to_dict() for p in self.products]}
        data.update(
            _drop_absent(
                {
                    "invoice_number": self.invoice_number,
                    "supplier": self.supplier,
                    "total_amount": self.total_amount,
                }
            )
        )
        return data


@dataclass
class HeaderScanResult:
    """Output of header-only extraction; same error precedence as products."""

    header: CanonicalHeader = field(default_factory=CanonicalHeader)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.error

    def to_dict(self) -> dict[str, Any]:
        if self.error:
            return {"error": self.error}
        return self.header.to_dict()
