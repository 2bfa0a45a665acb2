"""
Configuration constants for the iPhoto library migrator.
"""
from datetime import datetime, timezone
from pathlib import Path

# --- Catalog Layout ---
# All catalog timestamps are float seconds counted from this instant.
CATALOG_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)

LIBRARY_DB = Path("Database/apdb/Library.apdb")
PROPERTIES_DB = Path("Database/apdb/Properties.apdb")
FACES_DB = Path("Database/apdb/Faces.db")

MASTERS_DIR = "Masters"
PREVIEWS_DIR = "Previews"

# Preview locations used by different iPhoto releases, relative to Previews/.
# Probed in order; the first existing file wins.
PREVIEW_LAYOUTS = [
    "{dirname}/{version_uuid}/{name}",
    "{dirname}/{name}",
]
PREVIEW_EXT = ".jpg"

MEDIA_TYPE_VIDEO = "VIDT"

# --- File Type Definitions ---
RAW_EXTS = {'.cr2', '.crw', '.cr3', '.nef', '.arw', '.orf', '.rw2', '.dng', '.dcr', '.raw'}
JPEG_EXTS = {'.jpg', '.jpeg', '.jpe', '.gif', '.png', '.bmp', '.heic'}
VIDEO_EXTS = {'.mp4', '.mov', '.m4v', '.avi', '.mts', '.m2ts', '.3gp', '.mpg', '.mpeg'}
TIFF_EXTS = {'.tif', '.tiff'}

EXT_TO_TYPE = {}
for ext in RAW_EXTS: EXT_TO_TYPE[ext] = 'raw'
for ext in JPEG_EXTS: EXT_TO_TYPE[ext] = 'jpeg'
for ext in VIDEO_EXTS: EXT_TO_TYPE[ext] = 'video'
for ext in TIFF_EXTS: EXT_TO_TYPE[ext] = 'tiff'

# Types picked up by the Lost and Found pass
ORPHAN_TYPES = {'raw', 'jpeg', 'tiff', 'video'}

# --- Sensor Size Corrections ---
# (extension, recorded height, real width, real height)
# The catalog stores the wrong pixel size for Panasonic LX3 RW2 files.
SENSOR_CORRECTIONS = [
    ('.rw2', 2520, 3792, 2538),
]

# --- Edit Operations ---
CROP_OPERATION = "RKCropOperation"
STRAIGHTEN_OPERATION = "RKStraightenCropOperation"

CROP_TAGS = {
    'x': 'inputXOrigin',
    'y': 'inputYOrigin',       # measured from the bottom edge
    'width': 'inputWidth',
    'height': 'inputHeight',
}
STRAIGHTEN_TAG = 'inputRotation'

# --- Keywords ---
STATUS_KEYWORDS = {
    'hidden': "iPhoto/Hidden",
    'flagged': "iPhoto/Flagged",
    'is_original': "iPhoto/Original",
    'in_trash': "iPhoto/inTrash",
}
ALBUM_KEYWORD_ROOT = "Albums"
UNKNOWN_PERSON = "Unknown"

# --- Output Layout ---
NO_EVENT_DIR = "00_ImagesWithoutEvents"
LOST_AND_FOUND_DIR = "Lost and Found"
MISSING_LOG = "missing.log"
RUN_LOG = "migrate.log"
SIDECAR_SUFFIX = ".xmp"
VERSION_SUFFIX = "_v{n}"
FIRST_VERSION_SUFFIX = 2

# --- Geometry ---
COORD_EPSILON = 1e-9
VALID_ROTATIONS = (0, 90, 180, 270)

# EXIF Orientation tag value -> clockwise display rotation
EXIF_ORIENTATION_ROTATION = {1: 0, 3: 180, 6: 90, 8: 270}

# --- Environment switches (CLI defaults) ---
ENV_VERBOSE = "IPHOTO_MIGRATE_DEBUG"
ENV_FROM_ID = "IPHOTO_MIGRATE_FROM_ID"
ENV_CAPTION = "IPHOTO_MIGRATE_CAPTION"
