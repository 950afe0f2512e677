"""Product catalog storage keyed by user and catalog number."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from ..models import CanonicalProduct
from .schema import ensure_schema

logger = logging.getLogger(__name__)

# SQLite's default limit on bound parameters is 999.
_LOOKUP_CHUNK = 500


def encode_product(product: CanonicalProduct) -> str:
    """Persisted form of a product. Absent optional fields are not written."""
    return json.dumps(product.to_dict(), ensure_ascii=False, sort_keys=True)


def decode_product(data: str) -> CanonicalProduct:
    return CanonicalProduct.from_dict(json.loads(data))


def _require_user(user_id: str) -> None:
    if not user_id:
        raise ValueError("User ID is required.")


class ProductDB:
    """Manages the products table."""

    def __init__(self, db_path: str | Path = "~/.config/invoscan/invoscan.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def get_unit_prices(self, user_id: str, catalog_numbers: list[str]) -> dict[str, float]:
        """Return the stored unit price for each known catalog number."""
        _require_user(user_id)
        conn = self._get_conn()
        wanted = sorted(set(catalog_numbers))
        prices: dict[str, float] = {}
        for start in range(0, len(wanted), _LOOKUP_CHUNK):
            chunk = wanted[start:start + _LOOKUP_CHUNK]
            placeholders = ", ".join("?" for _ in chunk)
            rows = conn.execute(
                f"""SELECT catalog_number, unit_price FROM products
                    WHERE user_id = ? AND catalog_number IN ({placeholders})""",
                (user_id, *chunk),
            ).fetchall()
            prices.update({r["catalog_number"]: r["unit_price"] for r in rows})
        return prices

    def save_products(self, user_id: str, products: list[CanonicalProduct]) -> int:
        """Insert or update products by catalog number in one transaction.

        A catalog number repeated within ``products`` is written once, from
        its first line.

        Returns:
            Number of distinct rows written.
        """
        _require_user(user_id)
        rows: dict[str, CanonicalProduct] = {}
        for product in products:
            rows.setdefault(product.catalog_number, product)
        if len(rows) < len(products):
            logger.warning(
                "Ignoring %d repeated catalog number line(s)", len(products) - len(rows)
            )

        conn = self._get_conn()
        with conn:
            for product in rows.values():
                conn.execute(
                    """INSERT INTO products (user_id, catalog_number, unit_price, data)
                       VALUES (?, ?, ?, ?)
                       ON CONFLICT(user_id, catalog_number) DO UPDATE SET
                         unit_price=excluded.unit_price,
                         data=excluded.data,
                         last_updated=datetime('now', 'localtime')""",
                    (
                        user_id,
                        product.catalog_number,
                        product.unit_price,
                        encode_product(product),
                    ),
                )
        logger.info("Saved %d product(s) for user %s", len(rows), user_id)
        return len(rows)

    def get_product(self, user_id: str, catalog_number: str) -> CanonicalProduct | None:
        _require_user(user_id)
        conn = self._get_conn()
        row = conn.execute(
            "SELECT data FROM products WHERE user_id = ? AND catalog_number = ?",
            (user_id, catalog_number),
        ).fetchone()
        return decode_product(row["data"]) if row else None

    def list_products(self, user_id: str) -> list[CanonicalProduct]:
        _require_user(user_id)
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT data FROM products WHERE user_id = ? ORDER BY catalog_number",
            (user_id,),
        ).fetchall()
        return [decode_product(r["data"]) for r in rows]

    def delete_product(self, user_id: str, catalog_number: str) -> None:
        _require_user(user_id)
        conn = self._get_conn()
        conn.execute(
            "DELETE FROM products WHERE user_id = ? AND catalog_number = ?",
            (user_id, catalog_number),
        )
        conn.commit()
