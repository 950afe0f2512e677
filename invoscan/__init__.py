"""Invoice photo scanning, normalization and price reconciliation."""

from .config import (
    DatabaseConfig,
    LoggingConfig,
    RetryConfig,
    ScanConfig,
    VisionConfig,
    load_config,
)
from .models import (
    CanonicalHeader,
    CanonicalProduct,
    HeaderScanResult,
    PriceDecision,
    PriceDiscrepancy,
    ProductScanResult,
)
from .pipeline import InvoiceScanner, check_prices, save_resolved_products
from .reconciler import ReconciliationSession, find_discrepancies, resolve_prices
from .retry import RetryController
from .vision import ExtractionClient, ImagePayload, create_client

__all__ = [
    "InvoiceScanner",
    "check_prices",
    "save_resolved_products",
    "RetryController",
    "ExtractionClient",
    "ImagePayload",
    "create_client",
    "ReconciliationSession",
    "find_discrepancies",
    "resolve_prices",
    "CanonicalProduct",
    "CanonicalHeader",
    "PriceDiscrepancy",
    "PriceDecision",
    "ProductScanResult",
    "HeaderScanResult",
    "ScanConfig",
    "VisionConfig",
    "RetryConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "load_config",
]
