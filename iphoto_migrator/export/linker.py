import logging
import os
from pathlib import Path
from typing import List, Optional, Set, TextIO

from .. import config
from ..exceptions import FileOperationError


class HardLinker:
    """
    Materializes files as hard links. Never overwrites: an existing
    destination is either the same file (left alone) or a conflict the
    caller must resolve.
    """

    def is_same(self, src: Path, dest: Path) -> bool:
        """True if dest is already a link to src."""
        try:
            return os.path.samefile(src, dest)
        except OSError:
            return False

    def same_size(self, a: Path, b: Path) -> bool:
        try:
            return a.stat().st_size == b.stat().st_size
        except OSError:
            return False

    def link(self, src: Path, dest: Path) -> str:
        """
        Hard-links src to dest. Returns 'linked' or 'existing'.
        Raises FileOperationError when the link cannot be made.
        """
        if dest.exists():
            if self.is_same(src, dest):
                return "existing"
            raise FileOperationError(f"{dest} is occupied by a different file")

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            os.link(src, dest)
        except FileExistsError:
            # Appeared between the check and the link
            if self.is_same(src, dest):
                return "existing"
            raise FileOperationError(f"{dest} is occupied by a different file")
        except OSError as e:
            raise FileOperationError(f"Failed to link {src} -> {dest}: {e}") from e
        return "linked"


class MissingReport:
    """
    missing.log in the destination root: one absent source path per line.
    The file is removed again when the run finds nothing missing.
    """
    def __init__(self, dest_root: Path):
        self.path = dest_root / config.MISSING_LOG
        self.entries: List[Path] = []
        self._seen: Set[Path] = set()
        self._fh: Optional[TextIO] = None

    def open(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self.path.open("w", encoding="utf-8")

    def add(self, path: Path):
        if path in self._seen:
            return
        self._seen.add(path)
        self.entries.append(path)
        logging.warning(f"Missing source file: {path}")
        if self._fh:
            self._fh.write(f"{path}\n")
            self._fh.flush()

    @property
    def has_problems(self) -> bool:
        return bool(self.entries)

    def close(self):
        if self._fh:
            self._fh.close()
            self._fh = None
        if not self.entries and self.path.exists():
            self.path.unlink()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
