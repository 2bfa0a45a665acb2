"""
The part of the iPhoto catalog schema this tool reads.
"""
import logging
import sqlite3
from typing import Dict, Tuple

from ..exceptions import CatalogError

# database -> table -> columns read by CatalogReader
REQUIRED_TABLES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    'library': {
        'RKVersion': (
            'modelId', 'uuid', 'name', 'masterUuid', 'masterId', 'projectUuid',
            'versionNumber', 'mainRating', 'imageDate', 'imageTimeZoneName',
            'exifLatitude', 'exifLongitude', 'isHidden', 'isFlagged', 'isOriginal',
            'masterHeight', 'masterWidth', 'processedHeight', 'processedWidth',
            'rotation', 'overridePlaceId',
        ),
        'RKMaster': (
            'modelId', 'uuid', 'type', 'imagePath', 'imageDate', 'createDate',
            'importGroupUuid', 'isInTrash',
        ),
        'RKFolder': (
            'modelId', 'uuid', 'name', 'folderPath', 'minImageDate', 'maxImageDate',
            'minImageTimeZoneName',
        ),
        'RKImportGroup': ('uuid', 'name'),
        'RKKeyword': ('modelId', 'name'),
        'RKKeywordForVersion': ('versionId', 'keywordId'),
        'RKAlbum': ('modelId', 'name', 'folderUuid', 'isInTrash'),
        'RKAlbumVersion': ('versionId', 'albumId'),
        'RKImageAdjustment': ('versionUuid', 'name', 'adjIndex', 'data'),
        'RKVersionFaceContent': (
            'modelId', 'versionId', 'faceKey', 'faceRectLeft', 'faceRectTop',
            'faceRectWidth', 'faceRectHeight',
        ),
    },
    'properties': {
        'RKPlace': ('modelId', 'defaultName'),
        'RKIptcProperty': ('versionId', 'propertyKey', 'stringId', 'modDate'),
        'RKUniqueString': ('modelId', 'stringProperty'),
    },
    'faces': {
        'RKDetectedFace': (
            'modelId', 'masterUuid', 'faceKey',
            'topLeftX', 'topLeftY', 'topRightX', 'topRightY',
            'bottomLeftX', 'bottomLeftY', 'bottomRightX', 'bottomRightY',
            'rejected', 'ignore',
        ),
        'RKFaceName': ('faceKey', 'name', 'fullName', 'email'),
    },
}


def verify_schema(db_name: str, conn: sqlite3.Connection):
    """
    Checks that every table/column we query exists.
    Raises CatalogError naming everything that is missing.
    """
    problems = []
    for table, columns in REQUIRED_TABLES[db_name].items():
        cur = conn.execute(f'PRAGMA table_info("{table}")')
        present = {row[1] for row in cur.fetchall()}
        if not present:
            problems.append(table)
            continue
        missing = [c for c in columns if c not in present]
        if missing:
            problems.append(f"{table}({', '.join(missing)})")

    if problems:
        raise CatalogError(f"{db_name} database is missing: {'; '.join(problems)}")
    logging.debug(f"Catalog schema '{db_name}' verified.")
