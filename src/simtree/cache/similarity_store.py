"""
SQLite-based store for canonical artist names and similarity pairs.

The store caches every Last.fm ``artist.getsimilar`` answer so that an artist
is fetched over the network at most once. All writes are insert-or-ignore:
the first canonical spelling and the first similarity recorded for a pair
are permanent, and later writers silently no-op.
"""

from __future__ import annotations
import sqlite3
import json
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterable, Tuple
from loguru import logger
import contextlib

from simtree.errors import StoreError
from simtree.models import ArtistRecord, SimilarityEdge


class SimilarityStore:
    """
    SQLite-based cache for artist names and similarity edges.

    Stores:
    - Artists (canonical name, lower-cased key, listeners, tags)
    - Aliases (other spellings that resolved to a canonical artist)
    - Artist pairs (parent -> child similarity, 0-100)
    - A single API key
    """

    def __init__(self, db_path: str | Path = "data/cache/similar.db"):
        """
        Initialize the similarity store.

        Args:
            db_path: Path to the SQLite database file, or ":memory:"
        """
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            # concurrent builds may share the file; wait on locks instead of failing
            self.conn = sqlite3.connect(self.db_path, timeout=30)
        except sqlite3.Error as e:
            raise StoreError(f"cannot open {self.db_path}: {e}") from e
        self.conn.row_factory = sqlite3.Row
        self._create_schema()

    def _create_schema(self):
        """Create the store schema."""
        with self._transaction() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS artists (
                    name TEXT NOT NULL,
                    name_lower TEXT NOT NULL UNIQUE,
                    listeners INTEGER,
                    tags TEXT,  -- JSON array
                    similar_cached_at TIMESTAMP,  -- NULL until getsimilar was stored
                    info_cached_at TIMESTAMP,  -- NULL until getinfo was stored
                    cached_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # spellings that resolved to a different canonical name
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS artist_aliases (
                    alias_lower TEXT PRIMARY KEY,
                    name TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS artist_pairs (
                    parent TEXT NOT NULL,
                    parent_lower TEXT NOT NULL,
                    child TEXT NOT NULL,
                    child_lower TEXT NOT NULL,
                    similarity INTEGER NOT NULL CHECK (similarity BETWEEN 0 AND 100),
                    date_added TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE (parent_lower, child_lower)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS api_key (
                    id INTEGER PRIMARY KEY CHECK (id = 0),
                    key TEXT NOT NULL
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_pairs_parent ON artist_pairs(parent_lower)")

    @contextlib.contextmanager
    def _transaction(self):
        """Context manager for database transactions."""
        try:
            cursor = self.conn.cursor()
            yield cursor
            self.conn.commit()
        except sqlite3.Error as e:
            # the connection itself may be unusable; report the original error
            with contextlib.suppress(sqlite3.Error):
                self.conn.rollback()
            raise StoreError(str(e)) from e
        except Exception:
            self.conn.rollback()
            raise

    def _query(self, sql: str, params: Tuple[Any, ...] = ()) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    # === Artists ===

    def resolve_canonical(self, name: str) -> Optional[str]:
        """
        Look up the canonical spelling of an artist, case-insensitively.

        Args:
            name: Any spelling of the artist

        Returns:
            The stored canonical name, or None if no spelling has been resolved
        """
        lower = name.lower()
        rows = self._query("SELECT name FROM artists WHERE name_lower = ?", (lower,))
        if rows:
            return rows[0]["name"]

        rows = self._query("SELECT name FROM artist_aliases WHERE alias_lower = ?", (lower,))
        if rows:
            return rows[0]["name"]
        return None

    def record_artist(self, canonical_name: str, alias: Optional[str] = None):
        """
        Record a canonical artist name. No-op if any capitalisation of it exists.

        Recording an artist does not cache its similar artists; see
        ``record_resolution``.

        Args:
            canonical_name: Name as returned by the service
            alias: The spelling that was looked up, if it differs
        """
        with self._transaction() as cursor:
            self._insert_artist(cursor, canonical_name, alias)

    def _insert_artist(self, cursor, canonical_name: str, alias: Optional[str]) -> str:
        lower = canonical_name.lower()
        cursor.execute("""
            INSERT OR IGNORE INTO artists (name, name_lower) VALUES (?, ?)
        """, (canonical_name, lower))
        if cursor.rowcount:
            logger.debug(f"Recorded artist {canonical_name!r}")

        if alias is not None and alias.lower() != lower:
            # point at whichever spelling won the artists row
            cursor.execute("""
                INSERT OR IGNORE INTO artist_aliases (alias_lower, name)
                SELECT ?, name FROM artists WHERE name_lower = ?
            """, (alias.lower(), lower))

        cursor.execute("SELECT name FROM artists WHERE name_lower = ?", (lower,))
        return cursor.fetchone()["name"]

    def record_resolution(self, canonical_name: str, alias: Optional[str],
                          pairs: Iterable[Tuple[str, int]]) -> str:
        """
        Store one ``artist.getsimilar`` answer atomically.

        The artist, its alias and every pair are written in one transaction,
        and only then is the artist marked as having its similar artists
        cached. A failed write leaves nothing behind.

        Args:
            canonical_name: Name as returned by the service
            alias: The spelling that was looked up
            pairs: (child, similarity 0-100) in the service's order

        Returns:
            The stored canonical spelling (the first writer's)
        """
        pairs = self._checked_pairs(pairs)
        with self._transaction() as cursor:
            stored = self._insert_artist(cursor, canonical_name, alias)
            inserted = self._insert_pairs(cursor, stored, pairs)
        logger.debug(f"Cached {inserted}/{len(pairs)} pairs for {stored!r}")
        return stored

    def get_artist(self, name: str) -> Optional[ArtistRecord]:
        """Get the artist record for any known spelling of ``name``."""
        canonical = self.resolve_canonical(name)
        if canonical is None:
            return None

        rows = self._query("""
            SELECT name, name_lower, listeners, tags, info_cached_at
            FROM artists WHERE name_lower = ?
        """, (canonical.lower(),))
        if not rows:
            return None

        row = rows[0]
        return ArtistRecord(
            name=row["name"],
            name_lower=row["name_lower"],
            listeners=row["listeners"],
            tags=json.loads(row["tags"]) if row["tags"] else None,
            info_cached_at=row["info_cached_at"],
        )

    def update_artist_info(self, name: str, listeners: Optional[int] = None,
                           tags: Optional[List[str]] = None):
        """
        Attach listener and tag data to an artist, creating the record if needed.

        Fields passed as None keep their stored value. The artist is marked as
        having its info cached either way.
        """
        lower = name.lower()
        tags_json = json.dumps(tags) if tags is not None else None
        with self._transaction() as cursor:
            cursor.execute("""
                INSERT OR IGNORE INTO artists (name, name_lower) VALUES (?, ?)
            """, (name, lower))
            cursor.execute("""
                UPDATE artists
                SET listeners = COALESCE(?, listeners),
                    tags = COALESCE(?, tags),
                    info_cached_at = CURRENT_TIMESTAMP,
                    updated_at = CURRENT_TIMESTAMP
                WHERE name_lower = ?
            """, (listeners, tags_json, lower))

        logger.debug(f"Updated info for {name!r}: listeners={listeners}, {len(tags or [])} tags")

    # === Artist pairs ===

    def record_edge(self, parent: str, child: str, similarity: int):
        """
        Cache one parent -> child similarity. Existing pairs are never overwritten.

        Args:
            parent: Canonical parent name
            child: Child name as returned by the service
            similarity: Integer similarity, 0 to 100
        """
        self.record_edges(parent, [(child, similarity)])

    def record_edges(self, parent: str, pairs: Iterable[Tuple[str, int]]) -> int:
        """
        Cache several similarities for one recorded parent in a single transaction.

        The parent is marked as having its similar artists cached.

        Returns:
            Number of pairs actually inserted
        """
        pairs = self._checked_pairs(pairs)
        with self._transaction() as cursor:
            inserted = self._insert_pairs(cursor, parent, pairs)

        logger.debug(f"Cached {inserted}/{len(pairs)} pairs for {parent!r}")
        return inserted

    @staticmethod
    def _checked_pairs(pairs: Iterable[Tuple[str, int]]) -> List[Tuple[str, int]]:
        checked = []
        for child, similarity in pairs:
            if not 0 <= similarity <= 100:
                raise ValueError(f"similarity must be within 0..100, got {similarity}")
            checked.append((child, int(similarity)))
        return checked

    def _insert_pairs(self, cursor, parent: str, pairs: List[Tuple[str, int]]) -> int:
        parent_lower = parent.lower()
        inserted = 0
        for child, similarity in pairs:
            cursor.execute("""
                INSERT OR IGNORE INTO artist_pairs (
                    parent, parent_lower, child, child_lower, similarity
                ) VALUES (?, ?, ?, ?, ?)
            """, (parent, parent_lower, child, child.lower(), similarity))
            inserted += cursor.rowcount

        cursor.execute("""
            UPDATE artists
            SET similar_cached_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
            WHERE name_lower = ?
        """, (parent_lower,))
        return inserted

    def cached_edges_for(self, canonical_parent: str) -> Optional[List[SimilarityEdge]]:
        """
        Get cached edges of a parent, most similar first.

        Args:
            canonical_parent: Canonical parent name

        Returns:
            List of edges (possibly empty) if the parent's similar artists have
            been stored, None otherwise (unknown artist, or an artist recorded
            only through ``record_artist``/``update_artist_info``)
        """
        lower = canonical_parent.lower()
        rows = self._query("SELECT similar_cached_at FROM artists WHERE name_lower = ?", (lower,))
        if not rows or rows[0]["similar_cached_at"] is None:
            return None

        rows = self._query("""
            SELECT parent, child, similarity, date_added
            FROM artist_pairs
            WHERE parent_lower = ?
            ORDER BY similarity DESC, rowid ASC
        """, (lower,))

        return [
            SimilarityEdge(
                parent=row["parent"],
                child=row["child"],
                similarity=row["similarity"],
                date_added=row["date_added"],
            )
            for row in rows
        ]

    # === API key ===

    def get_api_key(self) -> Optional[str]:
        rows = self._query("SELECT key FROM api_key WHERE id = 0")
        return rows[0]["key"] if rows else None

    def set_api_key(self, key: str, client) -> None:
        """
        Validate ``key`` against the service, then store it.

        Args:
            key: Last.fm API key
            client: Anything with a ``validate_key(key)`` method that raises
                on an unusable key

        Raises:
            LastfmError: If validation fails; nothing is written
        """
        client.validate_key(key)
        with self._transaction() as cursor:
            cursor.execute("INSERT OR REPLACE INTO api_key (id, key) VALUES (0, ?)", (key,))
        logger.info("API key stored")

    def clear_api_key(self):
        with self._transaction() as cursor:
            cursor.execute("DELETE FROM api_key")

    def get_cache_stats(self) -> Dict[str, int]:
        """Get statistics about the store."""
        stats = {}
        stats["artists"] = self._query("SELECT COUNT(*) AS count FROM artists")[0]["count"]
        stats["aliases"] = self._query("SELECT COUNT(*) AS count FROM artist_aliases")[0]["count"]
        stats["pairs"] = self._query("SELECT COUNT(*) AS count FROM artist_pairs")[0]["count"]
        stats["api_key"] = int(self.get_api_key() is not None)
        return stats

    def close(self):
        """Close the database connection."""
        if self.conn:
            self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
