"""
Settings store schema definition.
"""

import sqlite3

SCHEMA = """
-- Explicit per-directory settings, keyed by root-relative directory path
CREATE TABLE IF NOT EXISTS directory_settings (
    path TEXT PRIMARY KEY,
    exclude_patterns TEXT NOT NULL,
    include_patterns TEXT,
    mid_threshold INTEGER,
    high_threshold INTEGER,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


def initialize_schema(conn: sqlite3.Connection) -> None:
    """Create the settings table if it does not exist yet."""
    conn.executescript(SCHEMA)
    conn.commit()
