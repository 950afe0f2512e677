"""Tests for normalization of validated provider records."""

from datetime import date

import pytest

from invoscan.normalizer import (
    PLACEHOLDER_DESCRIPTION,
    derive_unit_price,
    normalize_header,
    normalize_line,
    normalize_products,
    parse_invoice_date,
)
from invoscan.schemas import RawExtractedHeader, RawExtractedLine


def _raw(**overrides):
    data = dict(name="Olive oil 1L", catalog_number="OL-1", quantity=4.0, line_total=90.0)
    data.update(overrides)
    return RawExtractedLine(**data)


class TestUnitPrice:
    @pytest.mark.parametrize(
        "total, quantity", [(90.0, 4.0), (10.0, 3.0), (0.0, 7.0), (123.45, 0.5)]
    )
    def test_derived_from_total(self, total, quantity):
        product = normalize_line(_raw(line_total=total, quantity=quantity))
        assert product.unit_price == total / quantity

    def test_zero_quantity_falls_back_to_total(self):
        product = normalize_line(_raw(quantity=0.0, line_total=55.0))
        assert product.unit_price == 55.0
        assert product.quantity == 0.0

    def test_explicit_purchase_price_preferred(self):
        product = normalize_line(_raw(purchase_price=21.0))
        assert product.unit_price == 21.0

    def test_line_total_kept_as_is(self):
        product = normalize_line(_raw(quantity=3.0, line_total=10.0))
        assert product.line_total == 10.0
        assert product.unit_price == 10.0 / 3.0

    def test_derive_unit_price_helper(self):
        assert derive_unit_price(12.0, 4.0) == 3.0
        assert derive_unit_price(12.0, 0.0) == 12.0


class TestDescription:
    def test_explicit_description(self):
        product = normalize_line(_raw(description="Extra virgin", short_name="Oil"))
        assert product.description == "Extra virgin"

    def test_short_name_fallback(self):
        product = normalize_line(_raw(description="  ", short_name="Oil"))
        assert product.description == "Oil"

    def test_name_is_not_a_description(self):
        product = normalize_line(_raw())
        assert product.description == PLACEHOLDER_DESCRIPTION
        assert product.name == "Olive oil 1L"

    def test_placeholder_never_empty(self):
        product = normalize_line(_raw(name="", description="", short_name="  "))
        assert product.description == PLACEHOLDER_DESCRIPTION


class TestOptionalFields:
    def test_absent_fields_stay_absent(self):
        product = normalize_line(_raw())
        data = product.to_dict()
        for key in ("barcode", "sale_price", "short_name", "min_stock_level", "max_stock_level"):
            assert key not in data

    def test_present_fields_carried(self):
        product = normalize_line(_raw(barcode=" 729001 ", sale_price=29.9))
        assert product.barcode == "729001"
        assert product.sale_price == 29.9

    def test_blank_catalog_number_rejected(self):
        with pytest.raises(ValueError, match="catalog number"):
            normalize_line(_raw(catalog_number="  "))

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValueError, match="negative quantity"):
            normalize_line(_raw(quantity=-1.0))


def test_normalize_products_skips_unusable_lines(caplog):
    lines = [_raw(), _raw(catalog_number=""), _raw(catalog_number="OL-2", quantity=-2.0)]
    with caplog.at_level("WARNING"):
        products = normalize_products(lines)
    assert [p.catalog_number for p in products] == ["OL-1"]
    assert "Skipping product line 1" in caplog.text


class TestInvoiceDate:
    def test_dmy_equals_iso(self):
        assert parse_invoice_date("15/03/2024") == parse_invoice_date("2024-03-15")
        assert parse_invoice_date("15/03/2024") == date(2024, 3, 15)

    def test_single_digit_day_month(self):
        assert parse_invoice_date("5/3/2024") == date(2024, 3, 5)

    def test_iso_datetime(self):
        assert parse_invoice_date("2024-03-15T10:30:00") == date(2024, 3, 15)

    @pytest.mark.parametrize(
        "text",
        ["next Tuesday", "31/02/2024", "15/03/24", "2024/03/15", "", "   ", None],
    )
    def test_unparseable_is_absent(self, text):
        assert parse_invoice_date(text) is None

    def test_day_first_interpretation(self):
        assert parse_invoice_date("03/04/2024") == date(2024, 4, 3)


class TestNormalizeHeader:
    def test_bad_date_dropped_rest_kept(self):
        header = normalize_header(
            RawExtractedHeader(
                supplier_name="Fresh Farms",
                invoice_number="INV-7",
                total_amount=99.5,
                invoice_date="next Tuesday",
            )
        )
        assert header.invoice_date is None
        assert header.supplier_name == "Fresh Farms"
        assert header.invoice_number == "INV-7"
        assert header.total_amount == 99.5

    def test_blank_strings_absent(self):
        header = normalize_header(RawExtractedHeader(supplier_name="", payment_method="  "))
        assert header.supplier_name is None
        assert header.payment_method is None
        assert header.to_dict() == {}

    def test_date_serialized_iso(self):
        header = normalize_header(RawExtractedHeader(invoice_date="15/03/2024"))
        assert header.to_dict() == {"invoice_date": "2024-03-15"}
