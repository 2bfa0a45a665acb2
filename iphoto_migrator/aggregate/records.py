import logging
import sqlite3
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from .. import config
from ..catalog.reader import CatalogReader
from ..edits.decoder import parse_edit
from ..exceptions import EditBlobError, UnresolvableReferenceError
from ..models import (
    CatalogTimestamp, CorrectionFactor, DetectedFace, EditOperation, Event,
    IDENTITY, OtherEdit, PhotoRecord, StoredFaceRect,
)
from .albums import resolve_albums

# Edits after which the catalog keeps its own post-edit face rectangles
_REGION_EDITS = {config.CROP_OPERATION, config.STRAIGHTEN_OPERATION}


def sensor_correction(image_path: str,
                      width: Optional[int],
                      height: Optional[int]) -> Tuple[Optional[int], Optional[int], CorrectionFactor]:
    """
    Returns (width, height, factor) for a master. Masters whose recorded size is
    known to be wrong get the real size and the factor between the two.
    """
    ext = Path(image_path).suffix.lower()
    for rule_ext, wrong_height, real_width, real_height in config.SENSOR_CORRECTIONS:
        if ext == rule_ext and height and int(height) == wrong_height and width:
            factor = CorrectionFactor(
                width=real_width / float(width),
                height=real_height / float(height),
            )
            return real_width, real_height, factor
    return width, height, IDENTITY


class RecordAggregator:
    """
    Builds one PhotoRecord per catalog version by joining the version row
    with its event, master, place, description, keywords, albums, edits and faces.
    """
    def __init__(self, reader: CatalogReader):
        self.reader = reader
        self.dropped = 0
        self._places: Dict[int, str] = {}
        self._descriptions: Dict[int, Tuple[str, Optional[float]]] = {}
        self._folder_names: Dict[str, str] = {}
        self._face_names: Dict[int, Tuple[Optional[str], Optional[str]]] = {}

    def load_lookups(self):
        """Loads the small lookup tables that are shared by every record."""
        self._places = self.reader.fetch_places()
        self._descriptions = self.reader.fetch_descriptions()
        self._folder_names = self.reader.fetch_folder_names()
        self._face_names = self.reader.fetch_face_names()
        logging.info(
            f"Catalog lookups: {len(self._places)} places; {len(self._descriptions)} descriptions; "
            f"{len(self._folder_names)} folders; {len(self._face_names)} named faces"
        )

    def iter_records(self, from_id: int = 0) -> Iterator[PhotoRecord]:
        self.load_lookups()
        rows = self.reader.fetch_versions(from_id)
        logging.info(f"Catalog holds {len(rows)} versions from id {from_id}.")

        for row in rows:
            try:
                record = self.build_record(row)
            except UnresolvableReferenceError as e:
                self.dropped += 1
                logging.warning(f"Skipping version #{row['id']}: {e}")
                continue
            yield record

    def build_record(self, row: sqlite3.Row) -> PhotoRecord:
        version_id = row['id']
        if row['master_uuid'] is None or not row['imagepath']:
            raise UnresolvableReferenceError(f"master of version {row['uuid']} not found")

        tz = row['timezone']
        width, height, correction = sensor_correction(
            row['imagepath'], row['master_width'], row['master_height']
        )

        record = PhotoRecord(
            version_id=version_id,
            version_uuid=row['uuid'],
            master_uuid=row['master_uuid'],
            master_id=row['master_id'],
            image_path=row['imagepath'],
            version_number=int(row['version_number'] or 0),
            media_kind="video" if row['mediatype'] == config.MEDIA_TYPE_VIDEO else "still",
            event=self._resolve_event(row),
            import_group=row['import_group'],
            caption=row['caption'],
            rating=max(0, min(5, int(row['rating'] or 0))),
            hidden=bool(row['hidden']),
            flagged=bool(row['flagged']),
            in_trash=bool(row['in_trash']),
            is_original=bool(row['original']),
            date_taken=CatalogTimestamp(row['date_taken'], tz),
            date_imported=CatalogTimestamp(row['date_imported'], tz),
            date_modified=CatalogTimestamp(row['date_modified'], tz),
            master_width=width,
            master_height=height,
            processed_width=row['processed_width'],
            processed_height=row['processed_height'],
            rotation=int(row['rotation'] or 0),
            correction=correction,
            latitude=row['latitude'],
            longitude=row['longitude'],
            place_name=self._resolve_place(row['place_id']),
        )

        desc = self._descriptions.get(version_id)
        if desc:
            record.description = desc[0]
            record.description_modified = CatalogTimestamp(desc[1], tz)

        record.keywords = set(self.reader.fetch_keywords(version_id))
        record.keywords.update(self._status_keywords(record))
        record.albums = resolve_albums(self.reader.fetch_albums(version_id), self._folder_names)

        if record.has_edit:
            record.edits = self._load_edits(record)
            if _REGION_EDITS.intersection(record.edit_names):
                record.edited_faces = self._load_stored_faces(version_id)

        record.detected_faces = self._load_detected_faces(record.master_uuid)

        if not correction.is_identity:
            logging.debug(
                f"#{version_id}: corrected master size to {width}x{height} "
                f"({correction.width:.5f}/{correction.height:.5f})"
            )
        return record

    def _resolve_event(self, row: sqlite3.Row) -> Optional[Event]:
        if row['rollname'] is None:
            if row['project_uuid']:
                logging.warning(f"#{row['id']}: event {row['project_uuid']} not found, exporting without event")
            return None
        tz = row['roll_timezone']
        return Event(
            name=row['rollname'],
            start=CatalogTimestamp(row['roll_min_date'], tz),
            end=CatalogTimestamp(row['roll_max_date'], tz),
        )

    def _resolve_place(self, place_id: Optional[int]) -> Optional[str]:
        if place_id is None:
            return None
        if place_id not in self._places:
            raise UnresolvableReferenceError(f"place {place_id} not found")
        return self._places[place_id]

    def _status_keywords(self, record: PhotoRecord) -> List[str]:
        return [
            keyword for flag, keyword in config.STATUS_KEYWORDS.items()
            if getattr(record, flag)
        ]

    def _load_edits(self, record: PhotoRecord) -> List[EditOperation]:
        edits: List[EditOperation] = []
        for name, data in self.reader.fetch_adjustments(record.version_uuid):
            try:
                edits.append(parse_edit(name, data))
            except EditBlobError as e:
                logging.warning(f"#{record.version_id}: ignoring region change of {name}: {e}")
                edits.append(OtherEdit(name))
        return edits

    def _load_stored_faces(self, version_id: int) -> List[StoredFaceRect]:
        rects = []
        for row in self.reader.fetch_version_faces(version_id):
            rect = [row['faceRectLeft'], row['faceRectTop'], row['faceRectWidth'], row['faceRectHeight']]
            if any(v is None for v in rect):
                continue
            name, email = self._face_names.get(row['faceKey'], (None, None))
            rects.append(StoredFaceRect(
                left=row['faceRectLeft'], bottom=row['faceRectTop'],
                width=row['faceRectWidth'], height=row['faceRectHeight'],
                face_key=row['faceKey'], name=name, email=email,
            ))
        return rects

    def _load_detected_faces(self, master_uuid: str) -> List[DetectedFace]:
        faces = []
        for row in self.reader.fetch_detected_faces(master_uuid):
            coords = [row[c] for c in ('topLeftX', 'topLeftY', 'topRightX', 'topRightY',
                                       'bottomLeftX', 'bottomLeftY', 'bottomRightX', 'bottomRightY')]
            if any(c is None for c in coords):
                logging.debug(f"Face {row['modelId']} of {master_uuid} has no rectangle")
                continue
            faces.append(DetectedFace(
                top_left=(coords[0], coords[1]),
                top_right=(coords[2], coords[3]),
                bottom_left=(coords[4], coords[5]),
                bottom_right=(coords[6], coords[7]),
                face_key=row['faceKey'],
                name=row['fullName'] or row['name'],
                email=row['email'],
            ))
        return faces
