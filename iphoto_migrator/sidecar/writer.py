"""
XMP sidecar rendering.

The record-to-XMP mapping lives in templates/sidecar.xmp.j2; this module
only prepares the values the template needs.
"""
import hashlib
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader

from .. import config
from ..exceptions import FileOperationError
from ..geometry.transform import swaps_axes
from ..models import FaceRegion, PhotoRecord

_TEMPLATE_DIR = Path(__file__).parent / "templates"


def gps_coordinate(value: float, positive: str, negative: str) -> str:
    """Decimal degrees -> XMP 'DDD,MM.mmmmmmR' notation."""
    ref = positive if value >= 0 else negative
    value = abs(float(value))
    degrees = int(value)
    minutes = (value - degrees) * 60
    return f"{degrees},{minutes:.6f}{ref}"


def email_digest(email: Optional[str]) -> str:
    if not email:
        return ""
    return hashlib.sha1(email.strip().lower().encode("utf-8")).hexdigest()


class XmpSidecarWriter:
    """Writes one XMP sidecar for a linked master or edited rendition."""

    def __init__(self):
        env = Environment(
            loader=FileSystemLoader(str(_TEMPLATE_DIR)),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        env.filters["gps"] = gps_coordinate
        env.filters["email_digest"] = email_digest
        self.template = env.get_template("sidecar.xmp.j2")

    def _dimensions(self, record: PhotoRecord, rendition: str) -> Optional[Tuple[int, int]]:
        if rendition == "edited" and record.processed_width and record.processed_height:
            return record.processed_width, record.processed_height
        if not (record.master_width and record.master_height):
            return None
        if record.rotation in config.VALID_ROTATIONS and swaps_axes(record.rotation):
            return record.master_height, record.master_width
        return record.master_width, record.master_height

    def _hierarchy(self, record: PhotoRecord, regions: List[FaceRegion]) -> List[str]:
        tags = set(record.keywords)
        tags.update(f"{config.ALBUM_KEYWORD_ROOT}/{album}" for album in record.albums)
        tags.update(f"People/{face.name}" for face in regions if face.name != config.UNKNOWN_PERSON)
        return sorted(tags)

    def render(self, record: PhotoRecord, rendition: str = "master") -> str:
        edited = rendition == "edited"
        regions = record.edited_regions if edited else record.master_regions
        return self.template.render(
            bom="\ufeff",
            record=record,
            document_id=record.version_uuid if edited else record.master_uuid,
            derived_from=record.master_uuid if edited else None,
            date_created=record.date_taken.rfc3339(),
            date_modified=record.date_modified.rfc3339(),
            date_metadata=record.description_modified.rfc3339(),
            keywords=sorted(record.keywords),
            hierarchy=self._hierarchy(record, regions),
            history=record.edit_names if edited else [],
            regions=regions,
            dimensions=self._dimensions(record, rendition),
        )

    def write(self, path: Path, record: PhotoRecord, rendition: str = "master"):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.render(record, rendition), encoding="utf-8")
        except OSError as e:
            raise FileOperationError(f"Failed to write sidecar {path}: {e}") from e
        logging.debug(f"  sidecar: {path}")
