"""CLI entry point for invoice scanning."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import Callable

from dotenv import load_dotenv

from .config import ScanConfig, load_config
from .models import CanonicalProduct, ProductScanResult
from .pipeline import InvoiceScanner, check_prices, save_resolved_products
from .reconciler import ReconciliationSession
from .vision import ImagePayload


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="invoscan",
        description="Scan invoice photos into product records and reconcile prices",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="path to a TOML config file",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # scan
    scan_parser = sub.add_parser("scan", help="extract product lines from an invoice image")
    scan_parser.add_argument("image", type=str, help="invoice image file")
    scan_parser.add_argument("--json", action="store_true", help="print JSON output")
    scan_parser.add_argument(
        "--user", type=str, default=None,
        help="check prices against this user's catalog and save the result",
    )
    scan_parser.add_argument(
        "--document-id", type=str, default=None,
        help="also store the scan result under this document id (requires --user)",
    )
    decision = scan_parser.add_mutually_exclusive_group()
    decision.add_argument(
        "--adopt-new", action="store_true", help="accept every new unit price"
    )
    decision.add_argument(
        "--keep-existing", action="store_true", help="keep every stored unit price"
    )

    # header
    header_parser = sub.add_parser("header", help="extract invoice-level details")
    header_parser.add_argument("image", type=str, help="invoice image file")
    header_parser.add_argument("--json", action="store_true", help="print JSON output")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    load_dotenv()
    config = load_config(args.config)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.logging.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    match args.command:
        case "scan":
            sys.exit(asyncio.run(_cmd_scan(config, args)))
        case "header":
            sys.exit(asyncio.run(_cmd_header(config, args)))


def _image_uri(path: str) -> str:
    try:
        return ImagePayload.from_path(path).to_data_uri()
    except OSError as e:
        print(f"Cannot read image: {e}", file=sys.stderr)
        sys.exit(1)


async def _cmd_header(config: ScanConfig, args) -> int:
    scanner = InvoiceScanner.from_config(config)
    result = await scanner.scan_header(_image_uri(args.image))

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return 0 if result.ok else 1
    if not result.ok:
        print(result.error, file=sys.stderr)
        return 1

    labels = {
        "supplier_name": "Supplier",
        "invoice_number": "Invoice number",
        "total_amount": "Total amount",
        "invoice_date": "Invoice date",
        "payment_method": "Payment method",
    }
    data = result.to_dict()
    for key, label in labels.items():
        print(f"  {label:<15} {data.get(key, '-')}")
    return 0


async def _cmd_scan(config: ScanConfig, args) -> int:
    if args.document_id and not args.user:
        print("--document-id requires --user", file=sys.stderr)
        return 2

    scanner = InvoiceScanner.from_config(config)
    result = await scanner.scan_products(_image_uri(args.image))

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    elif result.ok:
        _print_products(result)

    if not result.ok:
        if not args.json:
            print(result.error, file=sys.stderr)
        return 1

    if not args.user:
        return 0

    from .db import ProductDB, ScanDocumentDB

    store = ProductDB(config.database.path)
    try:
        session = check_prices(store, args.user, result.products)
        resolved = _resolve(session, args)
        saved = save_resolved_products(store, args.user, resolved)
    finally:
        store.close()

    if resolved is None:
        print("Price changes were not resolved; nothing was saved.")
        return 1
    print(f"Saved {saved} product(s).")

    if args.document_id:
        docs = ScanDocumentDB(config.database.path)
        try:
            docs.save_scan(args.user, args.document_id, replace(result, products=resolved))
        finally:
            docs.close()
    return 0


def _print_products(result: ProductScanResult) -> None:
    if result.supplier or result.invoice_number:
        print(f"Supplier: {result.supplier or '-'}   Invoice: {result.invoice_number or '-'}")
    if not result.products:
        print("No products found.")
        return
    print(f"{len(result.products)} product(s):")
    for p in result.products:
        print(
            f"  {p.catalog_number:<14} {p.description[:30]:<30} "
            f"{p.quantity:>8g} x {p.unit_price:>10.2f} = {p.line_total:>10.2f}"
        )
    if result.total_amount is not None:
        print(f"Invoice total: {result.total_amount:.2f}")


def _resolve(
    session: ReconciliationSession,
    args,
    ask: Callable[[str], str] = input,
) -> list[CanonicalProduct] | None:
    if not session.discrepancies:
        return session.confirm()
    if args.adopt_new:
        session.adopt_all_new()
        return session.confirm()
    if args.keep_existing:
        return session.confirm()
    return prompt_decisions(session, ask)


def prompt_decisions(
    session: ReconciliationSession, ask: Callable[[str], str] = input
) -> list[CanonicalProduct] | None:
    """Ask for a decision per discrepancy; ``c`` cancels the whole batch."""
    print(f"\n{len(session.discrepancies)} unit price change(s) found:")
    for d in session.discrepancies:
        print(
            f"  {d.label} [{d.catalog_number}]: "
            f"{d.existing_unit_price:.2f} -> {d.new_unit_price:.2f}"
        )
        while True:
            answer = ask("  [k]eep existing / [n]ew price / [a]ll new / [K]eep all / [c]ancel: ").strip()
            match answer:
                case "" | "k":
                    break
                case "n":
                    session.set_decision(d.id, "adopt_new")
                    break
                case "a":
                    session.adopt_all_new()
                    return session.confirm()
                case "K":
                    session.keep_all_existing()
                    return session.confirm()
                case "c":
                    return session.cancel()
                case _:
                    print("  Please answer k, n, a, K or c.")
    return session.confirm()
