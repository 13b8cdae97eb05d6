"""Persistent store for optical constants and coating structures.

Uses SQLite (built-in) for persistence. The schema keeps one table of
tabulated (wavelength, n, k) rows per entity kind and describes every
structure as a substrate plus numbered layers.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from collections.abc import Iterable, Sequence
from typing import Any

from .errors import InvalidArgumentError, NotFoundError, StorageError
from .optical_data import EntityKind

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS Materials (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS MaterialOpticalData (
    material_id INTEGER NOT NULL REFERENCES Materials(id),
    wavelength REAL NOT NULL,
    n_value REAL NOT NULL,
    k_value REAL NOT NULL DEFAULT 0.0
);

CREATE TABLE IF NOT EXISTS Substrates (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS SubstrateOpticalData (
    material_id INTEGER NOT NULL REFERENCES Substrates(id),
    wavelength REAL NOT NULL,
    n_value REAL NOT NULL,
    k_value REAL NOT NULL DEFAULT 0.0
);

CREATE TABLE IF NOT EXISTS Structures (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    substrate_id INTEGER NOT NULL REFERENCES Substrates(id)
);

CREATE TABLE IF NOT EXISTS StructureLayers (
    structure_id INTEGER NOT NULL REFERENCES Structures(id),
    layer_number INTEGER NOT NULL,
    material_id INTEGER NOT NULL REFERENCES Materials(id),
    physical_thickness REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_material_data ON MaterialOpticalData(material_id);
CREATE INDEX IF NOT EXISTS idx_substrate_data ON SubstrateOpticalData(material_id);
CREATE INDEX IF NOT EXISTS idx_structure_layers ON StructureLayers(structure_id);
"""

# entity kind -> (data table, owner table)
_OPTICAL_TABLES = {
    EntityKind.MATERIAL: ("MaterialOpticalData", "Materials"),
    EntityKind.SUBSTRATE: ("SubstrateOpticalData", "Substrates"),
}


class OpticalDatabase:
    """SQLite-backed store of optical constants and structures.

    A single connection is shared by every caller; statements are executed
    under a lock so concurrent readers never interleave partial statement
    state on the connection.

    Args:
        path: Database file path, or ``":memory:"``.
        create: Create the schema if it does not exist. Defaults to True.

    Raises:
        StorageError: If the database cannot be opened.
    """

    def __init__(self, path: str | os.PathLike = ":memory:", create: bool = True):
        self.path = str(path)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA cache_size = -10000")
            if create:
                self._conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self.path}: {e}") from e
        logger.debug("Opened optical database %s", self.path)

    # ----- connection helpers -----
    def _query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, tuple(params)).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Query failed: {e}") from e

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> OpticalDatabase:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ----- read contract -----
    def fetch_optical_data(
        self, kind: EntityKind, name: str
    ) -> list[tuple[float, float, float]]:
        """Return (wavelength, n, k) rows for a material or substrate.

        Rows are ordered by wavelength. An unknown name yields an empty list;
        deciding whether that is an error is left to the caller.
        """
        data_table, owner_table = _OPTICAL_TABLES[EntityKind(kind)]
        rows = self._query(
            f"SELECT d.wavelength, d.n_value, d.k_value FROM {data_table} d "
            f"JOIN {owner_table} o ON o.id = d.material_id "
            "WHERE o.name = ? ORDER BY d.wavelength",
            (name,),
        )
        return [(r["wavelength"], r["n_value"], r["k_value"]) for r in rows]

    def fetch_structure(self, name: str) -> tuple[str, list[tuple[str, float]]]:
        """Return ``(substrate_name, [(material_name, thickness_nm), ...])``.

        Layers are ordered by their persisted layer number.

        Raises:
            NotFoundError: If no structure has this name.
        """
        rows = self._query(
            "SELECT sub.name AS substrate FROM Structures s "
            "JOIN Substrates sub ON sub.id = s.substrate_id WHERE s.name = ?",
            (name,),
        )
        if not rows:
            raise NotFoundError(f"Structure not found: {name}")
        substrate = rows[0]["substrate"]

        layer_rows = self._query(
            "SELECT m.name AS material, sl.physical_thickness AS thickness "
            "FROM StructureLayers sl "
            "JOIN Materials m ON m.id = sl.material_id "
            "JOIN Structures s ON s.id = sl.structure_id "
            "WHERE s.name = ? ORDER BY sl.layer_number",
            (name,),
        )
        return substrate, [(r["material"], r["thickness"]) for r in layer_rows]

    def list_structure_names(self) -> list[str]:
        """Return all structure names, sorted."""
        return [r["name"] for r in self._query("SELECT name FROM Structures ORDER BY name")]

    # ----- writers -----
    def _insert_entity(
        self,
        kind: EntityKind,
        name: str,
        samples: Iterable[tuple[float, float, float]],
    ) -> int:
        data_table, owner_table = _OPTICAL_TABLES[EntityKind(kind)]
        rows = [(float(w), float(n), float(k)) for w, n, k in samples]
        if not rows:
            raise InvalidArgumentError(f"No optical data given for {name!r}")
        with self._lock:
            try:
                with self._conn:
                    cur = self._conn.execute(
                        f"INSERT INTO {owner_table} (name) VALUES (?)", (name.strip(),)
                    )
                    entity_id = cur.lastrowid
                    self._conn.executemany(
                        f"INSERT INTO {data_table} "
                        "(material_id, wavelength, n_value, k_value) VALUES (?, ?, ?, ?)",
                        [(entity_id, w, n, k) for w, n, k in rows],
                    )
            except sqlite3.Error as e:
                raise StorageError(f"Cannot insert {kind.value} {name!r}: {e}") from e
        return entity_id

    def add_material(
        self, name: str, samples: Iterable[tuple[float, float, float]]
    ) -> int:
        """Insert a coating material with its (wavelength, n, k) table.

        Returns:
            The id of the new material row.
        """
        return self._insert_entity(EntityKind.MATERIAL, name, samples)

    def add_substrate(
        self, name: str, samples: Iterable[tuple[float, float, float]]
    ) -> int:
        """Insert a substrate with its (wavelength, n, k) table."""
        return self._insert_entity(EntityKind.SUBSTRATE, name, samples)

    def add_structure(
        self, name: str, substrate: str, layers: Iterable[tuple[str, float]]
    ) -> int:
        """Insert a structure; layers are numbered in the order given.

        Raises:
            NotFoundError: If the substrate or a layer material is unknown.
            StorageError: On any database failure.
        """
        layers = list(layers)
        with self._lock:
            try:
                with self._conn:
                    row = self._conn.execute(
                        "SELECT id FROM Substrates WHERE name = ?", (substrate,)
                    ).fetchone()
                    if row is None:
                        raise NotFoundError(f"Substrate not found: {substrate}")
                    cur = self._conn.execute(
                        "INSERT INTO Structures (name, substrate_id) VALUES (?, ?)",
                        (name.strip(), row["id"]),
                    )
                    structure_id = cur.lastrowid
                    for number, (material, thickness) in enumerate(layers, start=1):
                        mat = self._conn.execute(
                            "SELECT id FROM Materials WHERE name = ?", (material,)
                        ).fetchone()
                        if mat is None:
                            raise NotFoundError(f"Material not found: {material}")
                        self._conn.execute(
                            "INSERT INTO StructureLayers "
                            "(structure_id, layer_number, material_id, physical_thickness) "
                            "VALUES (?, ?, ?, ?)",
                            (structure_id, number, mat["id"], float(thickness)),
                        )
            except sqlite3.Error as e:
                raise StorageError(f"Cannot insert structure {name!r}: {e}") from e
        return structure_id

    def __repr__(self) -> str:
        return f"OpticalDatabase({self.path!r})"
