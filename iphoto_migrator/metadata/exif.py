import logging
from pathlib import Path
from typing import Optional

import exifread

from .. import config


class MetadataExtractor:
    """
    Reads the bits of embedded metadata the migration needs from master files.

    Uses 'exifread' (fast, Python-native, handles most RAW containers).
    """

    def get_orientation(self, path: Path) -> Optional[int]:
        """Returns the raw EXIF Orientation value (1..8), or None if absent/unreadable."""
        try:
            with path.open('rb') as f:
                # details=False skips makernotes and thumbnails
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            logging.warning(f"ExifRead failed for {path}: {e}")
            return None

        tag = tags.get('Image Orientation')
        if tag is None:
            return None
        try:
            return int(tag.values[0])
        except (AttributeError, IndexError, TypeError, ValueError):
            logging.debug(f"Unparseable orientation {tag!r} in {path}")
            return None

    def get_rotation(self, path: Path) -> int:
        """
        Clockwise display rotation implied by the EXIF orientation.
        Mirrored orientations (2, 4, 5, 7) carry no rotation we can use and map to 0.
        """
        if not path.is_file():
            return 0
        orientation = self.get_orientation(path)
        if orientation is None:
            return 0
        return config.EXIF_ORIENTATION_ROTATION.get(orientation, 0)
