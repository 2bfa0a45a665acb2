import logging
from typing import List, Optional

from .. import config
from ..models import (
    CorrectionFactor, DetectedFace, FaceRegion, IDENTITY, PhotoRecord,
    RotationPolicy, StoredFaceRect,
)
from . import transform
from .transform import Rect


def _region(rect: Rect, name: Optional[str], email: Optional[str]) -> FaceRegion:
    cx, cy = rect.center
    return FaceRegion(
        x=rect.x, y=rect.y, width=rect.width, height=rect.height,
        center_x=cx, center_y=cy,
        name=name or config.UNKNOWN_PERSON, email=email,
    )


def normalize(face: DetectedFace, rotation: int, correction: CorrectionFactor = IDENTITY) -> FaceRegion:
    """
    Maps a detector rectangle (unrotated master, y up) into the display image.

    1. flip y to top-down
    2. rotate through the rotation table
    3. scale by the sensor correction, each factor following its master axis
    4. clamp and recompute the center
    """
    rect = transform.rect_from_corners(face.corners)
    rect = transform.rotate(rect, rotation)
    if transform.swaps_axes(rotation):
        correction = correction.swapped()
    rect = transform.clamp(transform.scale(rect, correction))
    return _region(rect, face.name, face.email)


def normalize_stored(rect: StoredFaceRect) -> FaceRegion:
    """Post-edit rectangles are already in edited-image space; only y needs flipping."""
    flipped = transform.rect_from_bottom_up(rect.left, rect.bottom, rect.width, rect.height)
    return _region(transform.clamp(flipped), rect.name, rect.email)


class GeometryEngine:
    """
    Computes master and edited-rendition face regions for a PhotoRecord.

    Catalog rotation and EXIF rotation are separate inputs; the policy
    decides which one is applied. Some libraries carry both, which rotates
    those images twice, so that case is always reported.
    """
    def __init__(self,
                 policy: RotationPolicy = RotationPolicy.CATALOG,
                 use_crop_edits: bool = False):
        self.policy = RotationPolicy(policy)
        self.use_crop_edits = use_crop_edits

    def resolve_rotation(self, catalog_rotation: int, exif_rotation: int = 0, label: str = "") -> int:
        catalog_rotation = transform.normalize_rotation(catalog_rotation)
        exif_rotation = transform.normalize_rotation(exif_rotation)

        if catalog_rotation and exif_rotation:
            logging.warning(
                f"{label or 'Photo'}: catalog rotation {catalog_rotation} and EXIF rotation "
                f"{exif_rotation} are both set (policy={self.policy.value}); face regions may be off"
            )

        if self.policy == RotationPolicy.EXIF:
            return exif_rotation
        if self.policy == RotationPolicy.COMBINED:
            return (catalog_rotation + exif_rotation) % 360
        return catalog_rotation

    def master_regions(self, record: PhotoRecord, rotation: int) -> List[FaceRegion]:
        return [normalize(face, rotation, record.correction) for face in record.detected_faces]

    def edited_regions(self,
                       record: PhotoRecord,
                       rotation: int,
                       master_regions: List[FaceRegion]) -> List[FaceRegion]:
        """
        Preference order: catalog-stored post-edit rectangles, then (opt-in)
        regions recomputed through the decoded crop window, then the master regions.
        """
        if record.edited_faces:
            return [normalize_stored(rect) for rect in record.edited_faces]

        if self.use_crop_edits and record.crop is not None:
            cropped = self._crop_regions(record, rotation)
            if cropped is not None:
                return cropped

        return list(master_regions)

    def _crop_regions(self, record: PhotoRecord, rotation: int) -> Optional[List[FaceRegion]]:
        crop = record.crop
        if not (record.master_width and record.master_height):
            logging.debug(f"#{record.version_id}: no master size, cannot apply crop")
            return None
        if crop.width <= 0 or crop.height <= 0:
            logging.debug(f"#{record.version_id}: empty crop window {crop}")
            return None

        # Crop offsets are stored against the catalog's own (uncorrected) pixel size
        width = record.master_width / record.correction.width
        height = record.master_height / record.correction.height

        regions = []
        for face in record.detected_faces:
            rect = transform.rect_from_corners(face.corners)
            rect = transform.apply_crop(rect, crop, width, height)
            rect = transform.clamp(transform.rotate(rect, rotation))
            regions.append(_region(rect, face.name, face.email))
        return regions

    def annotate(self, record: PhotoRecord, exif_rotation: int = 0) -> PhotoRecord:
        """Fills record.master_regions and record.edited_regions."""
        rotation = self.resolve_rotation(record.rotation, exif_rotation, label=f"#{record.version_id}")
        record.master_regions = self.master_regions(record, rotation)
        if record.has_edit:
            record.edited_regions = self.edited_regions(record, rotation, record.master_regions)
        else:
            record.edited_regions = []

        for region in record.master_regions:
            logging.debug(
                f"  FaceOrig: {region.x:.8f} / {region.y:.8f} +{region.width:.8f} +{region.height:.8f}; {region.name}"
            )
        return record
