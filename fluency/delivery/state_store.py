"""
State Stores for the adaptive learner model.

Provides the persistence contract used by the selector, the deadline
tracker and calibration:
- Per-item stats (speed + memory state)
- Per-item adaptive deadline
- Last selected item (no immediate repeats)
- Motor baseline per calibration provider

Two implementations:
- MemoryStore: dict-backed, for tests and throwaway sessions
- StateStore: SQLite-backed, namespace-scoped, with a read cache

Database location: ~/.fluency/state.db
"""

from __future__ import annotations

import json
import math
import sqlite3
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from fluency.adaptive.models import ItemStats

# Motor baselines are shared by every quiz mode that uses the same provider
SHARED_NAMESPACE = "*"

# =============================================================================
# Contract
# =============================================================================


class StorageAdapter(Protocol):
    """Key-value persistence consumed by the learner model."""

    def get_stats(self, item_id: str) -> ItemStats | None: ...

    def save_stats(self, item_id: str, stats: ItemStats) -> None: ...

    def get_deadline(self, item_id: str) -> float | None: ...

    def save_deadline(self, item_id: str, deadline: float) -> None: ...

    def get_last_selected(self) -> str | None: ...

    def set_last_selected(self, item_id: str) -> None: ...

    def get_baseline(self, provider: str) -> float | None: ...

    def save_baseline(self, provider: str, baseline: float) -> None: ...

    def preload(self, item_ids: Iterable[str]) -> None: ...


def parse_deadline(raw: Any) -> float | None:
    """Parse a stored deadline; anything but a positive finite number is absent."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def parse_baseline(raw: Any) -> float | None:
    """Parse a stored motor baseline (ms); malformed values are absent."""
    return parse_deadline(raw)


# =============================================================================
# In-memory store
# =============================================================================


class MemoryStore:
    """Dict-backed store. Values live only as long as the instance."""

    def __init__(self) -> None:
        self.stats: dict[str, ItemStats] = {}
        self.deadlines: dict[str, Any] = {}
        self.baselines: dict[str, Any] = {}
        self.last_selected: str | None = None

    def get_stats(self, item_id: str) -> ItemStats | None:
        return self.stats.get(item_id)

    def save_stats(self, item_id: str, stats: ItemStats) -> None:
        self.stats[item_id] = stats

    def get_deadline(self, item_id: str) -> float | None:
        return parse_deadline(self.deadlines.get(item_id))

    def save_deadline(self, item_id: str, deadline: float) -> None:
        self.deadlines[item_id] = deadline

    def get_last_selected(self) -> str | None:
        return self.last_selected

    def set_last_selected(self, item_id: str) -> None:
        self.last_selected = item_id

    def get_baseline(self, provider: str) -> float | None:
        return parse_baseline(self.baselines.get(provider))

    def save_baseline(self, provider: str, baseline: float) -> None:
        self.baselines[provider] = baseline

    def preload(self, item_ids: Iterable[str]) -> None:
        """Nothing to warm."""


# =============================================================================
# SQLite store
# =============================================================================


class StateStore:
    """
    SQLite-backed persistence for one namespace (one quiz mode).

    Handles:
    - Item stats as JSON documents
    - Deadlines per item
    - Small key/value metadata (last selected item, motor baselines)

    Reads go through an in-process cache; writes go to the cache and
    the database.
    """

    DEFAULT_DB_PATH = Path.home() / ".fluency" / "state.db"

    def __init__(self, namespace: str = "default", db_path: Path | None = None):
        """
        Initialize the state store.

        Args:
            namespace: Scope for all keys (one per quiz mode)
            db_path: Custom database path (defaults to ~/.fluency/state.db)
        """
        self.namespace = namespace
        self.db_path = db_path or self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._stats_cache: dict[str, ItemStats | None] = {}
        self._deadline_cache: dict[str, float | None] = {}
        self._init_schema()

        logger.info(f"StateStore[{namespace}] initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_schema(self) -> None:
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS item_stats (
                namespace TEXT NOT NULL,
                item_id TEXT NOT NULL,
                data TEXT NOT NULL,
                PRIMARY KEY (namespace, item_id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS deadlines (
                namespace TEXT NOT NULL,
                item_id TEXT NOT NULL,
                deadline_ms REAL,
                PRIMARY KEY (namespace, item_id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS meta (
                namespace TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT,
                PRIMARY KEY (namespace, key)
            )
        """)

        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # =========================================================================
    # Item Stats
    # =========================================================================

    def get_stats(self, item_id: str) -> ItemStats | None:
        """
        Get stats for an item.

        Corrupt rows are logged and treated as unseen.

        Args:
            item_id: The item identifier

        Returns:
            ItemStats, or None if the item was never recorded
        """
        if item_id in self._stats_cache:
            return self._stats_cache[item_id]

        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT data FROM item_stats WHERE namespace = ? AND item_id = ?",
            (self.namespace, item_id),
        )
        row = cursor.fetchone()

        stats: ItemStats | None = None
        if row is not None:
            try:
                stats = ItemStats.from_dict(json.loads(row["data"]))
            except (TypeError, ValueError) as e:
                logger.warning(f"Unreadable stats for {item_id}: {e}")
            if stats is None:
                logger.warning(f"Ignoring malformed stats for {item_id}")

        self._stats_cache[item_id] = stats
        return stats

    def save_stats(self, item_id: str, stats: ItemStats) -> None:
        """Save or update stats for an item."""
        self._stats_cache[item_id] = stats
        self.conn.execute(
            """
            INSERT INTO item_stats (namespace, item_id, data) VALUES (?, ?, ?)
            ON CONFLICT(namespace, item_id) DO UPDATE SET data = excluded.data
        """,
            (self.namespace, item_id, json.dumps(stats.to_dict())),
        )
        self.conn.commit()

    def get_item_ids(self) -> list[str]:
        """All item ids with recorded stats, sorted."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT item_id FROM item_stats WHERE namespace = ? ORDER BY item_id",
            (self.namespace,),
        )
        return [row["item_id"] for row in cursor.fetchall()]

    def preload(self, item_ids: Iterable[str]) -> None:
        """Warm the cache so gameplay does not hit the database."""
        for item_id in item_ids:
            self.get_stats(item_id)
            self.get_deadline(item_id)

    # =========================================================================
    # Deadlines
    # =========================================================================

    def get_deadline(self, item_id: str) -> float | None:
        """Get the stored deadline (ms); corrupt values read as absent."""
        if item_id in self._deadline_cache:
            return self._deadline_cache[item_id]

        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT deadline_ms FROM deadlines WHERE namespace = ? AND item_id = ?",
            (self.namespace, item_id),
        )
        row = cursor.fetchone()
        deadline = parse_deadline(row["deadline_ms"]) if row is not None else None
        if row is not None and deadline is None:
            logger.warning(f"Ignoring corrupt deadline for {item_id}: {row['deadline_ms']!r}")

        self._deadline_cache[item_id] = deadline
        return deadline

    def save_deadline(self, item_id: str, deadline: float) -> None:
        """Save or update the deadline for an item."""
        self._deadline_cache[item_id] = deadline
        self.conn.execute(
            """
            INSERT INTO deadlines (namespace, item_id, deadline_ms) VALUES (?, ?, ?)
            ON CONFLICT(namespace, item_id) DO UPDATE SET deadline_ms = excluded.deadline_ms
        """,
            (self.namespace, item_id, deadline),
        )
        self.conn.commit()

    # =========================================================================
    # Metadata
    # =========================================================================

    def _get_meta(self, key: str, namespace: str | None = None) -> str | None:
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT value FROM meta WHERE namespace = ? AND key = ?",
            (namespace or self.namespace, key),
        )
        row = cursor.fetchone()
        return None if row is None else row["value"]

    def _set_meta(self, key: str, value: str, namespace: str | None = None) -> None:
        self.conn.execute(
            """
            INSERT INTO meta (namespace, key, value) VALUES (?, ?, ?)
            ON CONFLICT(namespace, key) DO UPDATE SET value = excluded.value
        """,
            (namespace or self.namespace, key, value),
        )
        self.conn.commit()

    def get_last_selected(self) -> str | None:
        return self._get_meta("last_selected")

    def set_last_selected(self, item_id: str) -> None:
        self._set_meta("last_selected", item_id)

    def get_baseline(self, provider: str) -> float | None:
        """Motor baseline (ms) for a calibration provider, if valid."""
        raw = self._get_meta(f"motor_baseline:{provider}", SHARED_NAMESPACE)
        baseline = parse_baseline(raw)
        if raw is not None and baseline is None:
            logger.warning(f"Ignoring malformed motor baseline for {provider}: {raw!r}")
        return baseline

    def save_baseline(self, provider: str, baseline: float) -> None:
        self._set_meta(f"motor_baseline:{provider}", str(baseline), SHARED_NAMESPACE)

    # =========================================================================
    # Maintenance
    # =========================================================================

    def clear(self) -> None:
        """Delete every record in this namespace; shared motor baselines are kept."""
        for table in ("item_stats", "deadlines", "meta"):
            self.conn.execute(f"DELETE FROM {table} WHERE namespace = ?", (self.namespace,))
        self.conn.commit()
        self._stats_cache.clear()
        self._deadline_cache.clear()
        logger.info(f"StateStore[{self.namespace}] cleared")
