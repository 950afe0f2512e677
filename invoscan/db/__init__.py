"""SQLite document store for products and scan results."""

from .documents import ScanDocumentDB
from .products import ProductDB, decode_product, encode_product
from .schema import ensure_schema

__all__ = [
    "ProductDB",
    "ScanDocumentDB",
    "decode_product",
    "encode_product",
    "ensure_schema",
]
