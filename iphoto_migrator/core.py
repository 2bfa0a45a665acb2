import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from . import config
from .aggregate.records import RecordAggregator
from .catalog.db import CatalogManager
from .catalog.reader import CatalogReader
from .exceptions import FileOperationError
from .export.linker import HardLinker, MissingReport
from .export.orphans import OrphanScanner
from .export.planner import ExportPlanner
from .geometry.faces import GeometryEngine
from .metadata.exif import MetadataExtractor
from .models import LinkResult, MigrationOptions, PhotoRecord, RotationPolicy
from .reporting import ReportGenerator
from .sidecar.writer import XmpSidecarWriter


@dataclass
class MigrationSummary:
    records: int = 0
    skipped: int = 0
    dropped: int = 0
    linked: int = 0
    existing: int = 0
    missing: int = 0
    failed: int = 0
    orphans: int = 0
    sidecars: int = 0
    missing_paths: List[Path] = field(default_factory=list)

    def count(self, result: Optional[LinkResult]):
        if result is None:
            return
        if result.rendition == "orphan" and result.status in ("linked", "existing"):
            self.orphans += 1
        elif result.status == "linked":
            self.linked += 1
        elif result.status == "existing":
            self.existing += 1
        elif result.status == "missing":
            self.missing += 1
        elif result.status == "failed":
            self.failed += 1

    @property
    def has_problems(self) -> bool:
        return bool(self.missing or self.failed)


class MigratorApp:
    def __init__(self, library_root: Path):
        self.library_root = library_root
        self.catalog = CatalogManager(library_root)

    def migrate(self, dest_root: Path, options: Optional[MigrationOptions] = None) -> MigrationSummary:
        """
        Runs the export pipeline.
        1. Aggregate (one PhotoRecord per catalog version)
        2. Link master and edited renditions into the event tree
        3. Compute face regions and write sidecars
        4. Lost and Found pass over untouched masters
        """
        options = options or MigrationOptions()
        summary = MigrationSummary()
        linker = HardLinker()

        with self.catalog as conns, MissingReport(dest_root) as missing:
            reader = CatalogReader(conns)
            aggregator = RecordAggregator(reader)
            engine = GeometryEngine(options.rotation_policy, options.use_crop_edits)
            extractor = MetadataExtractor()
            planner = ExportPlanner(self.library_root, dest_root, missing, linker)
            writer = XmpSidecarWriter()

            if options.from_id:
                for image_path in reader.fetch_master_paths(options.from_id):
                    planner.mark_known(image_path)

            # --- Step 1-3: Export ---
            logging.info(f"Exporting {self.library_root} -> {dest_root}")
            for record in tqdm(aggregator.iter_records(options.from_id), desc="Exporting", unit="photo"):
                if not options.accepts(record):
                    summary.skipped += 1
                    planner.mark_known(record.image_path)
                    continue
                summary.records += 1
                self._export_record(record, planner, engine, extractor, writer, options, summary)
            summary.dropped = aggregator.dropped

            # --- Step 4: Lost and Found ---
            logging.info("Scanning masters for files outside the catalog...")
            scanner = OrphanScanner(planner.masters_root, dest_root, planner.known, linker)
            orphan_results = scanner.scan()
            for result in orphan_results:
                summary.count(result)

            summary.missing_paths = list(missing.entries)

            if options.report_csv:
                ReportGenerator(planner.results + orphan_results).write_csv(options.report_csv)

        self._log_summary(summary, dest_root)
        return summary

    def _export_record(self,
                       record: PhotoRecord,
                       planner: ExportPlanner,
                       engine: GeometryEngine,
                       extractor: MetadataExtractor,
                       writer: XmpSidecarWriter,
                       options: MigrationOptions,
                       summary: MigrationSummary):
        logging.debug(f"#{record.version_id} {record.image_path} ({record.caption or ''})")

        master = planner.link_master(record)
        summary.count(master)

        exif_rotation = 0
        if options.rotation_policy != RotationPolicy.CATALOG or (record.rotation and record.detected_faces):
            if master.status != "missing":
                exif_rotation = extractor.get_rotation(master.source)
        engine.annotate(record, exif_rotation)

        self._write_sidecar(planner, writer, master, record, "master", summary)

        edited = planner.link_edited(record)
        summary.count(edited)
        self._write_sidecar(planner, writer, edited, record, "edited", summary)

    def _write_sidecar(self,
                       planner: ExportPlanner,
                       writer: XmpSidecarWriter,
                       result: Optional[LinkResult],
                       record: PhotoRecord,
                       rendition: str,
                       summary: MigrationSummary):
        path = planner.claim_sidecar(result)
        if path is None:
            return
        try:
            writer.write(path, record, rendition)
            summary.sidecars += 1
        except FileOperationError as e:
            logging.error(str(e))

    def _log_summary(self, summary: MigrationSummary, dest_root: Path):
        logging.info("Migration complete.")
        logging.info(
            f"  records={summary.records} skipped={summary.skipped} dropped={summary.dropped} "
            f"linked={summary.linked} existing={summary.existing} sidecars={summary.sidecars} "
            f"orphans={summary.orphans} missing={summary.missing} failed={summary.failed}"
        )
        if summary.has_problems:
            logging.warning(f"There were problems; see {dest_root / config.MISSING_LOG} and {config.RUN_LOG}.")
            for path in summary.missing_paths:
                logging.warning(f"  missing: {path}")
