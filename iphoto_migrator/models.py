import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional, Pattern, Set, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from . import config

Point = Tuple[float, float]


@dataclass(frozen=True)
class CatalogTimestamp:
    """
    A catalog time value: seconds since CATALOG_EPOCH plus the zone it was recorded in.
    """
    offset: Optional[float]
    tz_name: Optional[str] = None

    def to_datetime(self) -> Optional[datetime]:
        if self.offset is None:
            return None
        utc = config.CATALOG_EPOCH + timedelta(seconds=float(self.offset))
        tz = timezone.utc
        if self.tz_name:
            try:
                tz = ZoneInfo(self.tz_name)
            except (ZoneInfoNotFoundError, ValueError):
                logging.debug(f"Unknown time zone {self.tz_name!r}, using UTC")
        return utc.astimezone(tz)

    def rfc3339(self) -> str:
        dt = self.to_datetime()
        return dt.isoformat(timespec="seconds") if dt else ""


@dataclass(frozen=True)
class Event:
    """An event (iPhoto 'roll'): a named folder of photos."""
    name: str
    start: CatalogTimestamp = CatalogTimestamp(None)
    end: CatalogTimestamp = CatalogTimestamp(None)

    @property
    def year(self) -> Optional[int]:
        dt = self.start.to_datetime()
        return dt.year if dt else None


@dataclass(frozen=True)
class CorrectionFactor:
    width: float = 1.0
    height: float = 1.0

    @property
    def is_identity(self) -> bool:
        return self.width == 1.0 and self.height == 1.0

    def swapped(self) -> "CorrectionFactor":
        return CorrectionFactor(width=self.height, height=self.width)


IDENTITY = CorrectionFactor()


class RotationPolicy(str, Enum):
    """Which rotation source the geometry engine trusts."""
    CATALOG = "catalog"
    EXIF = "exif"
    COMBINED = "combined"


@dataclass(frozen=True)
class DetectedFace:
    """
    A face rectangle as the detector stored it: corners relative to the
    unrotated master, with y counted upward from the bottom edge.
    """
    top_left: Point
    top_right: Point
    bottom_left: Point
    bottom_right: Point
    face_key: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def corners(self) -> List[Point]:
        return [self.top_left, self.top_right, self.bottom_left, self.bottom_right]


@dataclass(frozen=True)
class StoredFaceRect:
    """
    Post-edit face rectangle kept by the catalog, relative to the edited image, y up.
    The catalog calls the origin faceRectTop, but like every Cocoa rect it is the
    lower-left corner: `bottom` is the lower edge measured from the bottom of the image.
    """
    left: float
    bottom: float
    width: float
    height: float
    face_key: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class FaceRegion:
    """Display-space face region, relative (0..1), y counted downward."""
    x: float
    y: float
    width: float
    height: float
    center_x: float
    center_y: float
    name: str = config.UNKNOWN_PERSON
    email: Optional[str] = None


# --- Edit Operations ---

@dataclass(frozen=True)
class CropEdit:
    name: str
    x: float          # pixels from the left edge
    y: float          # pixels from the bottom edge
    width: float
    height: float


@dataclass(frozen=True)
class StraightenEdit:
    name: str
    angle: float


@dataclass(frozen=True)
class OtherEdit:
    name: str


EditOperation = Union[CropEdit, StraightenEdit, OtherEdit]


@dataclass
class PhotoRecord:
    """
    Denormalized view of one (master, version) pair. Built by the aggregator,
    annotated with face regions by the geometry engine, then handed to the
    sidecar writer.
    """
    version_id: int
    version_uuid: str
    master_uuid: str
    image_path: str
    master_id: Optional[int] = None
    version_number: int = 0
    media_kind: str = "still"            # still/video

    # Provenance
    event: Optional[Event] = None
    import_group: Optional[str] = None

    # Descriptive
    caption: Optional[str] = None
    description: Optional[str] = None
    rating: int = 0
    hidden: bool = False
    flagged: bool = False
    in_trash: bool = False
    is_original: bool = False

    # Temporal
    date_taken: CatalogTimestamp = CatalogTimestamp(None)
    date_imported: CatalogTimestamp = CatalogTimestamp(None)
    date_modified: CatalogTimestamp = CatalogTimestamp(None)
    description_modified: CatalogTimestamp = CatalogTimestamp(None)

    # Geometric
    master_width: Optional[int] = None
    master_height: Optional[int] = None
    processed_width: Optional[int] = None
    processed_height: Optional[int] = None
    rotation: int = 0
    correction: CorrectionFactor = IDENTITY

    # Location
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    place_name: Optional[str] = None

    # Collections
    keywords: Set[str] = field(default_factory=set)
    albums: Set[str] = field(default_factory=set)
    edits: List[EditOperation] = field(default_factory=list)

    # Faces
    detected_faces: List[DetectedFace] = field(default_factory=list)
    edited_faces: List[StoredFaceRect] = field(default_factory=list)
    master_regions: List[FaceRegion] = field(default_factory=list)
    edited_regions: List[FaceRegion] = field(default_factory=list)

    @property
    def has_edit(self) -> bool:
        return self.version_number > 0

    @property
    def is_video(self) -> bool:
        return self.media_kind == "video"

    @property
    def master_name(self) -> str:
        return Path(self.image_path).name

    @property
    def edit_names(self) -> List[str]:
        return [op.name for op in self.edits]

    @property
    def crop(self) -> Optional[CropEdit]:
        """The last crop in the edit stack, if any."""
        crops = [op for op in self.edits if isinstance(op, CropEdit)]
        return crops[-1] if crops else None


@dataclass
class MigrationOptions:
    """Run-time switches. Filters only choose which records get exported."""
    from_id: int = 0
    caption_pattern: Optional[Pattern] = None
    rotation_policy: RotationPolicy = RotationPolicy.CATALOG
    use_crop_edits: bool = False
    report_csv: Optional[Path] = None

    def accepts(self, record: PhotoRecord) -> bool:
        if record.version_id < self.from_id:
            return False
        if self.caption_pattern and not self.caption_pattern.search(record.caption or ""):
            return False
        return True


@dataclass
class LinkResult:
    """Outcome of materializing one file."""
    rendition: str                 # master/edited/orphan
    source: Path
    destination: Optional[Path]
    status: str                    # linked/existing/missing
    version_id: Optional[int] = None

    @property
    def sidecar_path(self) -> Optional[Path]:
        if self.destination is None:
            return None
        return self.destination.with_name(self.destination.name + config.SIDECAR_SUFFIX)
