"""Conversion of validated provider records into canonical records."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime

from .models import CanonicalHeader, CanonicalProduct
from .schemas import RawExtractedHeader, RawExtractedLine

logger = logging.getLogger(__name__)

PLACEHOLDER_DESCRIPTION = "Unknown Product"

_DMY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def _clean(value: str | None) -> str | None:
    """Strip a string; empty becomes absent."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def derive_unit_price(line_total: float, quantity: float) -> float:
    """``line_total / quantity``, or ``line_total`` itself when quantity is zero."""
    if quantity > 0:
        return line_total / quantity
    return line_total


def normalize_line(raw: RawExtractedLine) -> CanonicalProduct:
    """Map one validated line to a :class:`CanonicalProduct`.

    Raises:
        ValueError: If the catalog number is blank or the quantity is negative.
    """
    catalog_number = _clean(raw.catalog_number)
    if catalog_number is None:
        raise ValueError("catalog number is blank")
    if raw.quantity < 0:
        raise ValueError(f"negative quantity {raw.quantity:g} for {catalog_number}")

    if raw.purchase_price is not None:
        unit_price = raw.purchase_price
    else:
        unit_price = derive_unit_price(raw.line_total, raw.quantity)

    name = _clean(raw.name)
    short_name = _clean(raw.short_name)
    description = _clean(raw.description) or short_name or PLACEHOLDER_DESCRIPTION

    return CanonicalProduct(
        catalog_number=catalog_number,
        description=description,
        quantity=raw.quantity,
        unit_price=unit_price,
        line_total=raw.line_total,
        name=name,
        barcode=_clean(raw.barcode),
        short_name=short_name,
        sale_price=raw.sale_price,
    )


def normalize_products(lines: list[RawExtractedLine]) -> list[CanonicalProduct]:
    """Normalize every line, skipping rows that cannot become a product."""
    products: list[CanonicalProduct] = []
    for i, line in enumerate(lines):
        try:
            products.append(normalize_line(line))
        except ValueError as e:
            logger.warning("Skipping product line %d: %s", i, e)
    return products


def parse_invoice_date(value: str | None) -> date | None:
    """Parse an ISO 8601 or DD/MM/YYYY date.

    Anything else, including two-digit years and impossible dates,
    returns ``None``.
    """
    text = _clean(value)
    if text is None:
        return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    m = _DMY_RE.match(text)
    if m:
        day, month, year = (int(g) for g in m.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    return None


def normalize_header(raw: RawExtractedHeader) -> CanonicalHeader:
    """Map a validated header; an unparseable date is dropped, never fatal."""
    invoice_date = parse_invoice_date(raw.invoice_date)
    if raw.invoice_date and invoice_date is None:
        logger.warning("Dropping unrecognised invoice date %r", raw.invoice_date)

    return CanonicalHeader(
        supplier_name=_clean(raw.supplier_name),
        invoice_number=_clean(raw.invoice_number),
        total_amount=raw.total_amount,
        invoice_date=invoice_date,
        payment_method=_clean(raw.payment_method),
    )
