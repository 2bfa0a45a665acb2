import logging
import os
from pathlib import Path
from typing import Iterator, List, Set

from tqdm import tqdm

from .. import config
from ..exceptions import FileOperationError
from ..models import LinkResult
from .linker import HardLinker


def classify(path: Path) -> str:
    if path.name.startswith("._"):
        return 'other'
    return config.EXT_TO_TYPE.get(path.suffix.lower(), 'other')


class OrphanScanner:
    """
    Post-pass over Masters/: every media file the export loop never touched
    is linked into 'Lost and Found', mirroring its path below Masters/.
    """
    def __init__(self, masters_root: Path, dest_root: Path, known: Set[Path],
                 linker: HardLinker = None):
        self.masters_root = masters_root
        self.lost_root = dest_root / config.LOST_AND_FOUND_DIR
        self.known = known
        self.linker = linker or HardLinker()

    def scan(self) -> List[LinkResult]:
        if not self.masters_root.is_dir():
            logging.warning(f"No masters directory at {self.masters_root}")
            return []

        results = []
        orphans = [p for p in self._iter_files(self.masters_root)
                   if classify(p) in config.ORPHAN_TYPES and p.absolute() not in self.known]

        for path in tqdm(orphans, desc="Lost and Found", disable=not orphans):
            rel = path.relative_to(self.masters_root)
            dest = self.lost_root / rel
            try:
                status = self.linker.link(path, dest)
            except FileOperationError as e:
                logging.error(str(e))
                results.append(LinkResult("orphan", path, None, "failed"))
                continue
            logging.info(f"  Found {rel}")
            results.append(LinkResult("orphan", path, dest, status))
        return results

    def _iter_files(self, root: Path) -> Iterator[Path]:
        """Depth-first walker using os.scandir for speed."""
        stack = [root]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError:
                logging.warning(f"Cannot read directory: {current}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    yield Path(e.path)

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)
