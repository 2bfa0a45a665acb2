"""
Read-only connection management for the three catalog databases.
"""
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .. import config
from ..exceptions import CatalogError
from .schema import verify_schema


@dataclass
class CatalogConnections:
    library: sqlite3.Connection
    properties: sqlite3.Connection
    faces: sqlite3.Connection

    def close(self):
        for conn in (self.library, self.properties, self.faces):
            conn.close()


def open_readonly(db_path: Path) -> sqlite3.Connection:
    if not db_path.is_file():
        raise CatalogError(f"Catalog database not found: {db_path}")
    uri = db_path.resolve().as_uri() + "?mode=ro"
    try:
        conn = sqlite3.connect(uri, uri=True)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA query_only=ON;")
    except sqlite3.Error as e:
        raise CatalogError(f"Cannot open {db_path}: {e}") from e
    return conn


class CatalogManager:
    def __init__(self, library_root: Path):
        self.library_root = library_root
        self._conns: Optional[CatalogConnections] = None

    def connect(self) -> CatalogConnections:
        """
        Opens Library, Properties and Faces databases read-only and checks
        they carry the tables we query.
        """
        if self._conns:
            return self._conns

        logging.info(f"Opening catalog: {self.library_root}")
        opened = []
        try:
            for name, rel in (('library', config.LIBRARY_DB),
                              ('properties', config.PROPERTIES_DB),
                              ('faces', config.FACES_DB)):
                conn = open_readonly(self.library_root / rel)
                opened.append(conn)
                try:
                    verify_schema(name, conn)
                except sqlite3.DatabaseError as e:
                    raise CatalogError(f"{rel} is not a readable catalog: {e}") from e
        except CatalogError:
            for conn in opened:
                conn.close()
            raise

        self._conns = CatalogConnections(*opened)
        return self._conns

    def close(self):
        if self._conns:
            self._conns.close()
            self._conns = None

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
