"""SQL for regions, producers and wines. Callers own the transaction."""

import sqlite3
from typing import List, Optional

from office_library.database import get_db_connection
from office_library.models import format_date
from wine_tracker.models import Producer, Region, Wine


def create_tables(db_file: Optional[str] = None) -> None:
    """Create the wine tables. Deleting a region or producer removes what hangs off it."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS regions (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                country TEXT NOT NULL,
                description TEXT,
                climate TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS producers (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                founded_year INTEGER,
                website TEXT,
                region_id TEXT REFERENCES regions(id) ON DELETE CASCADE
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS wines (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                vintage INTEGER,
                alcohol_content REAL,
                color TEXT NOT NULL,
                drinking_date TEXT NOT NULL,
                personal_rating INTEGER,
                tasting_notes TEXT,
                price REAL,
                producer_id TEXT NOT NULL REFERENCES producers(id) ON DELETE CASCADE,
                region_id TEXT NOT NULL REFERENCES regions(id) ON DELETE CASCADE
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_producers_region ON producers(region_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_wines_producer ON wines(producer_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_wines_region ON wines(region_id)")
        conn.commit()
    finally:
        conn.close()


# ------------------------- Regions ------------------------- #
REGION_SELECT = "SELECT id, name, country, description, climate FROM regions"


def insert_region(conn: sqlite3.Connection, region: Region) -> None:
    conn.execute(
        "INSERT INTO regions (id, name, country, description, climate) VALUES (?, ?, ?, ?, ?)",
        (region.id, region.name, region.country, region.description, region.climate),
    )


def update_region(conn: sqlite3.Connection, region: Region) -> None:
    conn.execute(
        "UPDATE regions SET name = ?, country = ?, description = ?, climate = ? WHERE id = ?",
        (region.name, region.country, region.description, region.climate, region.id),
    )


def delete_region(conn: sqlite3.Connection, region_id: str) -> int:
    return conn.execute("DELETE FROM regions WHERE id = ?", (region_id,)).rowcount


def find_region(conn: sqlite3.Connection, region_id: str) -> Optional[Region]:
    row = conn.execute(REGION_SELECT + " WHERE id = ?", (region_id,)).fetchone()
    return Region.from_dict(dict(row)) if row else None


def list_regions(conn: sqlite3.Connection) -> List[Region]:
    rows = conn.execute(REGION_SELECT + " ORDER BY name").fetchall()
    return [Region.from_dict(dict(row)) for row in rows]


# ------------------------- Producers ------------------------- #
PRODUCER_SELECT = """
    SELECT p.id, p.name, p.description, p.founded_year, p.website, p.region_id,
           r.name AS region_name
    FROM producers p
    LEFT JOIN regions r ON r.id = p.region_id
"""


def insert_producer(conn: sqlite3.Connection, producer: Producer) -> None:
    conn.execute(
        """
        INSERT INTO producers (id, name, description, founded_year, website, region_id)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (producer.id, producer.name, producer.description, producer.founded_year,
         producer.website, producer.region_id),
    )


def update_producer(conn: sqlite3.Connection, producer: Producer) -> None:
    conn.execute(
        """
        UPDATE producers SET name = ?, description = ?, founded_year = ?, website = ?, region_id = ?
        WHERE id = ?
        """,
        (producer.name, producer.description, producer.founded_year, producer.website,
         producer.region_id, producer.id),
    )


def delete_producer(conn: sqlite3.Connection, producer_id: str) -> int:
    return conn.execute("DELETE FROM producers WHERE id = ?", (producer_id,)).rowcount


def find_producer(conn: sqlite3.Connection, producer_id: str) -> Optional[Producer]:
    row = conn.execute(PRODUCER_SELECT + " WHERE p.id = ?", (producer_id,)).fetchone()
    return Producer.from_dict(dict(row)) if row else None


def list_producers(conn: sqlite3.Connection) -> List[Producer]:
    rows = conn.execute(PRODUCER_SELECT + " ORDER BY p.name").fetchall()
    return [Producer.from_dict(dict(row)) for row in rows]


# ------------------------- Wines ------------------------- #
WINE_SELECT = """
    SELECT w.id, w.name, w.vintage, w.alcohol_content, w.color, w.drinking_date,
           w.personal_rating, w.tasting_notes, w.price, w.producer_id, w.region_id,
           p.name AS producer_name, r.name AS region_name
    FROM wines w
    LEFT JOIN producers p ON p.id = w.producer_id
    LEFT JOIN regions r ON r.id = w.region_id
"""

_WINE_COLUMNS = (
    "name", "vintage", "alcohol_content", "color", "drinking_date",
    "personal_rating", "tasting_notes", "price", "producer_id", "region_id",
)


def _wine_values(wine: Wine) -> tuple:
    return (wine.name, wine.vintage, wine.alcohol_content, wine.color, format_date(wine.drinking_date),
            wine.personal_rating, wine.tasting_notes, wine.price, wine.producer_id, wine.region_id)


def insert_wine(conn: sqlite3.Connection, wine: Wine) -> None:
    columns = ", ".join(("id",) + _WINE_COLUMNS)
    placeholders = ", ".join("?" for _ in range(len(_WINE_COLUMNS) + 1))
    conn.execute(
        f"INSERT INTO wines ({columns}) VALUES ({placeholders})",
        (wine.id,) + _wine_values(wine),
    )


def update_wine(conn: sqlite3.Connection, wine: Wine) -> None:
    assignments = ", ".join(f"{column} = ?" for column in _WINE_COLUMNS)
    conn.execute(
        f"UPDATE wines SET {assignments} WHERE id = ?",
        _wine_values(wine) + (wine.id,),
    )


def delete_wine(conn: sqlite3.Connection, wine_id: str) -> int:
    return conn.execute("DELETE FROM wines WHERE id = ?", (wine_id,)).rowcount


def find_wine(conn: sqlite3.Connection, wine_id: str) -> Optional[Wine]:
    row = conn.execute(WINE_SELECT + " WHERE w.id = ?", (wine_id,)).fetchone()
    return Wine.from_dict(dict(row)) if row else None


def list_wines(conn: sqlite3.Connection) -> List[Wine]:
    rows = conn.execute(WINE_SELECT + " ORDER BY w.drinking_date DESC, w.name").fetchall()
    return [Wine.from_dict(dict(row)) for row in rows]
