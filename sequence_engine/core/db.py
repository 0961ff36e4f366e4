"""SQLite knowledge-base asset store."""

import json
import sqlite3
from pathlib import Path
from typing import Optional

from sequence_engine.core.models import Asset

DEFAULT_DB_PATH = Path("data/sequences.db")


def get_connection(db_path: Path = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Get a database connection with row factory."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Path = DEFAULT_DB_PATH) -> None:
    """Initialize database with schema."""
    conn = get_connection(db_path)

    conn.executescript("""
        CREATE TABLE IF NOT EXISTS assets (
            id INTEGER PRIMARY KEY,
            file_name TEXT NOT NULL,
            instrument TEXT NOT NULL,
            type TEXT NOT NULL,
            size INTEGER NOT NULL,
            summary TEXT,
            keywords TEXT DEFAULT '[]',
            file_path TEXT DEFAULT '',
            uploaded_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE INDEX IF NOT EXISTS idx_assets_instrument ON assets(instrument);
    """)

    conn.commit()
    conn.close()


def _row_to_asset(row: sqlite3.Row) -> Asset:
    return Asset(
        id=row["id"],
        file_name=row["file_name"],
        instrument=row["instrument"],
        type=row["type"],
        size=row["size"],
        summary=row["summary"],
        keywords=json.loads(row["keywords"] or "[]"),
        file_path=row["file_path"] or "",
    )


def insert_asset(db_path: Path, asset: Asset) -> int:
    """Insert an asset. Returns the new asset id."""
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(
            """
            INSERT INTO assets (file_name, instrument, type, size, summary, keywords, file_path)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (asset.file_name, asset.instrument, asset.type, asset.size,
             asset.summary, json.dumps(asset.keywords), asset.file_path)
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()


def get_assets(db_path: Path = DEFAULT_DB_PATH) -> list[Asset]:
    """All assets, newest first."""
    conn = get_connection(db_path)
    cursor = conn.execute("SELECT * FROM assets ORDER BY uploaded_at DESC, id DESC")
    rows = cursor.fetchall()
    conn.close()
    return [_row_to_asset(row) for row in rows]


def get_asset(db_path: Path, asset_id: int) -> Optional[Asset]:
    conn = get_connection(db_path)
    cursor = conn.execute("SELECT * FROM assets WHERE id = ?", (asset_id,))
    row = cursor.fetchone()
    conn.close()
    return _row_to_asset(row) if row else None


def delete_asset(db_path: Path, asset_id: int) -> bool:
    """Delete an asset. Returns True if a row was removed."""
    conn = get_connection(db_path)
    cursor = conn.execute("DELETE FROM assets WHERE id = ?", (asset_id,))
    conn.commit()
    deleted = cursor.rowcount > 0
    conn.close()
    return deleted
