import logging
import re
from pathlib import Path, PurePosixPath
from typing import List, Optional, Set

from .. import config
from ..exceptions import FileOperationError
from ..models import LinkResult, PhotoRecord
from .linker import HardLinker, MissingReport

_UNSAFE = re.compile(r'[/\x00]')


def safe_component(name: str) -> str:
    """Event names become directory names; keep them to a single path component."""
    cleaned = _UNSAFE.sub('_', name).strip()
    if cleaned in ('', '.', '..'):
        return '_'
    return cleaned


def versioned_name(name: str, n: int) -> str:
    p = PurePosixPath(name)
    return f"{p.stem}{config.VERSION_SUFFIX.format(n=n)}{p.suffix}"


class ExportPlanner:
    """
    Decides where each rendition of a photo goes and links it there.

    Owns the two run-wide sets:
      known   - source files consumed by the main pass (read by the orphan scan)
      written - sidecar paths already claimed in this run (first writer wins)
    """
    def __init__(self,
                 library_root: Path,
                 dest_root: Path,
                 missing: MissingReport,
                 linker: Optional[HardLinker] = None):
        self.library_root = library_root
        self.masters_root = library_root / config.MASTERS_DIR
        self.previews_root = library_root / config.PREVIEWS_DIR
        self.dest_root = dest_root
        self.missing = missing
        self.linker = linker or HardLinker()
        self.known: Set[Path] = set()
        self.written: Set[Path] = set()
        self.results: List[LinkResult] = []

    # --- Path Planning ---

    def event_dir(self, record: PhotoRecord) -> Optional[Path]:
        if record.event is None:
            return None
        name = safe_component(record.event.name)
        year = record.event.year
        if year is not None:
            return self.dest_root / str(year) / name
        return self.dest_root / name

    def destination_for(self, record: PhotoRecord, relative_source: str, name: Optional[str] = None) -> Path:
        """
        root/<year>/<event>/<name>, root/<event>/<name>, or
        root/00_ImagesWithoutEvents/<relative source path> for event-less photos.
        """
        folder = self.event_dir(record)
        rel = PurePosixPath(relative_source)
        if folder is None:
            folder = self.dest_root / config.NO_EVENT_DIR / Path(*rel.parent.parts)
        return folder / (name or rel.name)

    def master_path(self, image_path: str) -> Path:
        return self.masters_root / Path(*PurePosixPath(image_path).parts)

    def master_source(self, record: PhotoRecord) -> Path:
        return self.master_path(record.image_path)

    def preview_candidates(self, record: PhotoRecord) -> List[str]:
        """Preview paths (relative to Previews/) for both historical layouts."""
        image = PurePosixPath(record.image_path)
        dirname = str(image.parent) if str(image.parent) != '.' else ''
        names = [image.name]
        jpg_name = image.stem + config.PREVIEW_EXT
        if jpg_name != image.name:
            names.append(jpg_name)

        candidates = []
        for layout in config.PREVIEW_LAYOUTS:
            for name in names:
                rel = layout.format(dirname=dirname, version_uuid=record.version_uuid, name=name)
                candidates.append(rel.lstrip('/'))
        return candidates

    def find_preview(self, record: PhotoRecord) -> Optional[str]:
        for rel in self.preview_candidates(record):
            if (self.previews_root / rel).is_file():
                return rel
        return None

    def holds(self, src: Path, candidate: Path, master: Optional[Path] = None) -> bool:
        """
        True if candidate already stands for src: a link to it, or, for an edited
        rendition, a link to its own master with the same byte size.
        """
        if self.linker.is_same(src, candidate):
            return True
        return (master is not None
                and self.linker.is_same(master, candidate)
                and self.linker.same_size(src, candidate))

    def resolve_collision(self, src: Path, desired: Path, master: Optional[Path] = None) -> Path:
        """
        First path, starting at desired, that is free or already holds src.
        Occupied paths get _v2, _v3, ... appended to the stem; the counter only grows.
        """
        candidate = desired
        n = config.FIRST_VERSION_SUFFIX
        while candidate.exists() and not self.holds(src, candidate, master):
            candidate = desired.with_name(versioned_name(desired.name, n))
            n += 1
        return candidate

    # --- Materialization ---

    def _report_missing(self, record: PhotoRecord, rendition: str, src: Path) -> LinkResult:
        self.missing.add(src)
        result = LinkResult(rendition, src, None, "missing", record.version_id)
        self.results.append(result)
        return result

    def _materialize(self, record: PhotoRecord, rendition: str, src: Path, desired: Path,
                     master: Optional[Path] = None) -> LinkResult:
        if not src.is_file():
            return self._report_missing(record, rendition, src)

        self.known.add(src.absolute())
        dest = self.resolve_collision(src, desired, master)
        if dest.exists():
            status = "existing"
        else:
            try:
                status = self.linker.link(src, dest)
            except FileOperationError as e:
                logging.error(str(e))
                status = "failed"
        if status == "linked":
            logging.debug(f"  {rendition}: {src} -> {dest}")

        result = LinkResult(rendition, src, dest if status != "failed" else None, status, record.version_id)
        self.results.append(result)
        return result

    def mark_known(self, image_path: str):
        """Masters of filtered-out versions are still cataloged; keeps them out of Lost and Found."""
        self.known.add(self.master_path(image_path).absolute())

    def link_master(self, record: PhotoRecord) -> LinkResult:
        src = self.master_source(record)
        desired = self.destination_for(record, record.image_path)
        return self._materialize(record, "master", src, desired)

    def link_edited(self, record: PhotoRecord) -> Optional[LinkResult]:
        """
        Links the edited rendition next to the master. Videos are skipped: the
        catalog only keeps placeholder previews for them.
        """
        if not record.has_edit or record.is_video:
            return None

        rel = self.find_preview(record)
        if rel is None:
            src = self.previews_root / self.preview_candidates(record)[0]
            return self._report_missing(record, "edited", src)

        name = PurePosixPath(rel).name
        if name.lower() == record.master_name.lower():
            name = record.master_name
        desired = self.destination_for(record, rel, name=name)
        return self._materialize(record, "edited", self.previews_root / rel, desired,
                                 master=self.master_source(record))

    def claim_sidecar(self, result: Optional[LinkResult]) -> Optional[Path]:
        """
        Returns the sidecar path if this caller should write it, else None.
        A path is handed out once per run and never if it already exists on disk.
        """
        if result is None or result.sidecar_path is None:
            return None
        path = result.sidecar_path
        if path in self.written:
            return None
        self.written.add(path)
        if path.exists():
            logging.debug(f"Sidecar exists, leaving it alone: {path}")
            return None
        return path
