"""Tests for per-document scan result storage."""

from datetime import date

import pytest

from invoscan.db import ScanDocumentDB
from invoscan.models import CanonicalHeader, CanonicalProduct, HeaderScanResult, ProductScanResult


@pytest.fixture
def docs(tmp_path):
    d = ScanDocumentDB(tmp_path / "test.db")
    yield d
    d.close()


def test_save_and_get_products(docs):
    result = ProductScanResult(
        products=[
            CanonicalProduct(
                catalog_number="A",
                description="Apples",
                quantity=3.0,
                unit_price=2.0,
                line_total=6.0,
            )
        ],
        invoice_number="INV-1",
    )
    docs.save_scan("u1", "doc-1", result)

    stored = docs.get_scan("u1", "doc-1")
    assert stored["kind"] == "products"
    assert stored["result"]["invoice_number"] == "INV-1"
    assert stored["result"]["products"][0]["catalog_number"] == "A"
    assert stored["created_at"]


def test_header_result(docs):
    header = CanonicalHeader(supplier_name="Fresh Farms", invoice_date=date(2024, 3, 15))
    docs.save_scan("u1", "doc-1", HeaderScanResult(header=header))

    stored = docs.get_scan("u1", "doc-1")
    assert stored["kind"] == "header"
    assert stored["result"] == {"supplier_name": "Fresh Farms", "invoice_date": "2024-03-15"}


def test_save_replaces_previous(docs):
    docs.save_scan("u1", "doc-1", ProductScanResult(error="Scan error: boom"))
    docs.save_scan("u1", "doc-1", ProductScanResult())
    assert docs.get_scan("u1", "doc-1")["result"] == {"products": []}


def test_missing_and_delete(docs):
    assert docs.get_scan("u1", "nope") is None
    docs.save_scan("u1", "doc-1", ProductScanResult())
    docs.delete_scan("u1", "doc-1")
    assert docs.get_scan("u1", "doc-1") is None


@pytest.mark.parametrize("user_id, document_id", [("", "doc-1"), ("u1", "")])
def test_ids_required(docs, user_id, document_id):
    with pytest.raises(ValueError, match="required"):
        docs.save_scan(user_id, document_id, ProductScanResult())
