"""Scan result storage keyed by user and document id."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

from ..models import HeaderScanResult, ProductScanResult
from .schema import ensure_schema


class ScanDocumentDB:
    """Manages the scan_documents table."""

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

    def save_scan(
        self,
        user_id: str,
        document_id: str,
        result: ProductScanResult | HeaderScanResult,
    ) -> None:
        """Store (or replace) the scan result for a document."""
        if not user_id or not document_id:
            raise ValueError("User ID and document ID are required.")
        kind = "products" if isinstance(result, ProductScanResult) else "header"
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO scan_documents (user_id, document_id, kind, result_json)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(user_id, document_id) DO UPDATE SET
                 kind=excluded.kind,
                 result_json=excluded.result_json,
                 created_at=datetime('now', 'localtime')""",
            (
                user_id,
                document_id,
                kind,
                json.dumps(result.to_dict(), ensure_ascii=False),
            ),
        )
        conn.commit()

    def get_scan(self, user_id: str, document_id: str) -> dict | None:
        """Return ``{"kind": ..., "result": {...}, "created_at": ...}`` or None."""
        conn = self._get_conn()
        row = conn.execute(
            """SELECT kind, result_json, created_at FROM scan_documents
               WHERE user_id = ? AND document_id = ?""",
            (user_id, document_id),
        ).fetchone()
        if row is None:
            return None
        return {
            "kind": row["kind"],
            "result": json.loads(row["result_json"]),
            "created_at": row["created_at"],
        }

    def delete_scan(self, user_id: str, document_id: str) -> None:
        conn = self._get_conn()
        conn.execute(
            "DELETE FROM scan_documents WHERE user_id = ? AND document_id = ?",
            (user_id, document_id),
        )
        conn.commit()
