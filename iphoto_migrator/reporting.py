import csv
import logging
from pathlib import Path
from typing import Iterable, List

from .models import LinkResult


class ReportGenerator:
    """Per-file CSV report of what a migration run did."""

    headers = [
        "Version ID",
        "Rendition",
        "Status",
        "Source Path",
        "Destination Path",
        "Sidecar Path",
    ]

    def __init__(self, results: Iterable[LinkResult]):
        self.results: List[LinkResult] = list(results)

    def _row(self, result: LinkResult) -> List[str]:
        sidecar = result.sidecar_path
        return [
            "" if result.version_id is None else str(result.version_id),
            result.rendition,
            result.status,
            str(result.source),
            str(result.destination) if result.destination else "",
            str(sidecar) if sidecar and result.rendition != "orphan" else "",
        ]

    def write_csv(self, output_csv: Path):
        logging.info(f"Writing export report -> {output_csv}")
        output_csv.parent.mkdir(parents=True, exist_ok=True)
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(self.headers)
            for result in self.results:
                writer.writerow(self._row(result))
        logging.info(f"Report complete. {len(self.results)} rows.")
