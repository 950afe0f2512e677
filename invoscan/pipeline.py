"""Scan pipeline entry points.

image data URI -> RetryController(ExtractionClient + schema validation)
-> normalizer -> reconciliation against the product store -> save.

Callers only ever see a populated result or a human-readable ``error``;
provider exceptions never cross this module.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from .models import CanonicalProduct, HeaderScanResult, ProductScanResult
from .normalizer import normalize_header, normalize_products
from .reconciler import ReconciliationSession
from .retry import ExtractionFailure, FailureKind, RetryController
from .schemas import RawExtractedHeader, validate_header, validate_products
from .vision import ExtractionClient, ImagePayload, create_client, parse_data_uri
from .vision.prompts import HEADER_INSTRUCTION, PRODUCTS_INSTRUCTION

if TYPE_CHECKING:
    from .config import ScanConfig
    from .db import ProductDB

logger = logging.getLogger(__name__)


def user_message(failure: ExtractionFailure) -> str:
    """The text shown to the user for a terminal extraction failure."""
    if failure.kind is FailureKind.RETRY_EXHAUSTED:
        return failure.message
    return f"Scan error: {failure.message}"


def _load_payload(invoice_data_uri: str) -> tuple[ImagePayload | None, str | None]:
    if not invoice_data_uri:
        return None, "Scan error: Missing invoice image data."
    try:
        payload = parse_data_uri(invoice_data_uri)
    except ValueError as e:
        return None, f"Scan error: {e}"
    if payload.empty:
        return None, "Scan error: Missing invoice image data."
    return payload, None


class InvoiceScanner:
    """Runs product and header extraction for one document at a time."""

    def __init__(
        self,
        client: ExtractionClient,
        *,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._controller = RetryController(
            client, max_attempts=max_attempts, base_delay=base_delay, sleep=sleep
        )

    @classmethod
    def from_config(cls, config: ScanConfig) -> InvoiceScanner:
        return cls(
            create_client(config),
            max_attempts=config.retry.max_attempts,
            base_delay=config.retry.base_delay,
        )

    async def scan_products(self, invoice_data_uri: str) -> ProductScanResult:
        """Extract and normalize all product lines from an invoice image."""
        payload, error = _load_payload(invoice_data_uri)
        if error:
            logger.error("Rejected product scan input: %s", error)
            return ProductScanResult(error=error)

        outcome = await self._controller.run(payload, PRODUCTS_INSTRUCTION, validate_products)
        if not outcome.ok:
            return ProductScanResult(error=user_message(outcome.failure))

        extraction = outcome.value
        products = normalize_products(extraction.lines)
        header = normalize_header(
            RawExtractedHeader(
                supplier_name=extraction.supplier_name,
                invoice_number=extraction.invoice_number,
                total_amount=extraction.total_amount,
            )
        )
        logger.info(
            "Extracted %d product(s) from %d line(s)", len(products), len(extraction.lines)
        )
        return ProductScanResult(
            products=products,
            invoice_number=header.invoice_number,
            supplier=header.supplier_name,
            total_amount=header.total_amount,
        )

    async def scan_header(self, invoice_data_uri: str) -> HeaderScanResult:
        """Extract invoice-level fields only."""
        payload, error = _load_payload(invoice_data_uri)
        if error:
            logger.error("Rejected header scan input: %s", error)
            return HeaderScanResult(error=error)

        outcome = await self._controller.run(payload, HEADER_INSTRUCTION, validate_header)
        if not outcome.ok:
            return HeaderScanResult(error=user_message(outcome.failure))
        return HeaderScanResult(header=normalize_header(outcome.value))


def check_prices(
    store: ProductDB, user_id: str, products: list[CanonicalProduct]
) -> ReconciliationSession:
    """Open a reconciliation session against the stored prices for ``user_id``."""
    existing = store.get_unit_prices(user_id, [p.catalog_number for p in products])
    return ReconciliationSession(products, existing)


def save_resolved_products(
    store: ProductDB, user_id: str, products: list[CanonicalProduct] | None
) -> int:
    """Persist a confirmed batch. ``None`` (a cancelled session) writes nothing."""
    if products is None:
        logger.info("No resolved products to save")
        return 0
    return store.save_products(user_id, products)
