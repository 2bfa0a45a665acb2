import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest

from iphoto_migrator import config
from iphoto_migrator.catalog.schema import REQUIRED_TABLES

_DB_PATHS = {
    'library': config.LIBRARY_DB,
    'properties': config.PROPERTIES_DB,
    'faces': config.FACES_DB,
}


def catalog_seconds(year, month, day, hour=12):
    """Catalog offset (seconds since 2001-01-01 UTC) for a UTC wall time."""
    dt = datetime(year, month, day, hour, tzinfo=timezone.utc)
    return (dt - config.CATALOG_EPOCH).total_seconds()


class LibraryBuilder:
    """Creates a minimal iPhoto library on disk: three catalogs plus Masters/ and Previews/."""

    def __init__(self, root: Path):
        self.root = root
        self.masters = root / config.MASTERS_DIR
        self.previews = root / config.PREVIEWS_DIR
        self.masters.mkdir(parents=True)
        self.previews.mkdir(parents=True)
        self.conns = {}
        for name, rel in _DB_PATHS.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(path, isolation_level=None)
            for table, columns in REQUIRED_TABLES[name].items():
                cols = ", ".join(f'"{c}"' for c in columns)
                conn.execute(f'CREATE TABLE "{table}" ({cols})')
            self.conns[name] = conn
        self._next_id = 100

    def close(self):
        for conn in self.conns.values():
            conn.close()

    def insert(self, db: str, table: str, **values):
        cols = ", ".join(f'"{c}"' for c in values)
        marks = ", ".join("?" for _ in values)
        self.conns[db].execute(f'INSERT INTO "{table}" ({cols}) VALUES ({marks})', list(values.values()))

    def _id(self) -> int:
        self._next_id += 1
        return self._next_id

    # --- Files ---

    def write_master(self, rel: str, data: bytes = b"master") -> Path:
        path = self.masters / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    def write_preview(self, rel: str, data: bytes = b"preview") -> Path:
        path = self.previews / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    # --- Rows ---

    def add_event(self, name: str, start=None, tz=None, uuid=None, model_id=None, folder_path=None) -> str:
        uuid = uuid or f"event-{name}"
        model_id = model_id or self._id()
        self.insert('library', 'RKFolder', modelId=model_id, uuid=uuid, name=name,
                    folderPath=folder_path if folder_path is not None else f"{model_id}/",
                    minImageDate=start, maxImageDate=start, minImageTimeZoneName=tz)
        return uuid

    def add_photo(self, version_id: int, image_path: str, event_uuid=None, version_number=0,
                  master_type="IMGT", master_uuid=None, master_kw=None, **version_kw) -> dict:
        master_uuid = master_uuid or f"master-{version_id}"
        master_id = self._id()
        master_row = dict(modelId=master_id, uuid=master_uuid, type=master_type,
                          imagePath=image_path, isInTrash=0)
        master_row.update(master_kw or {})
        self.insert('library', 'RKMaster', **master_row)

        row = dict(modelId=version_id, uuid=f"version-{version_id}", masterUuid=master_uuid,
                   masterId=master_id, projectUuid=event_uuid, versionNumber=version_number,
                   mainRating=0, isHidden=0, isFlagged=0, isOriginal=int(version_number == 0),
                   rotation=0)
        row.update(version_kw)
        self.insert('library', 'RKVersion', **row)
        return row

    def add_keyword(self, version_id: int, name: str):
        keyword_id = self._id()
        self.insert('library', 'RKKeyword', modelId=keyword_id, name=name)
        self.insert('library', 'RKKeywordForVersion', versionId=version_id, keywordId=keyword_id)

    def add_album(self, version_id: int, name: str, folder_uuid=None, in_trash=0):
        album_id = self._id()
        self.insert('library', 'RKAlbum', modelId=album_id, name=name, folderUuid=folder_uuid, isInTrash=in_trash)
        self.insert('library', 'RKAlbumVersion', versionId=version_id, albumId=album_id)

    def add_description(self, version_id: int, text: str, mod_date: float):
        string_id = self._id()
        self.insert('properties', 'RKUniqueString', modelId=string_id, stringProperty=text)
        self.insert('properties', 'RKIptcProperty', versionId=version_id,
                    propertyKey='Caption/Abstract', stringId=string_id, modDate=mod_date)

    def add_place(self, place_id: int, name: str):
        self.insert('properties', 'RKPlace', modelId=place_id, defaultName=name)

    def add_adjustment(self, version_uuid: str, name: str, data, index: int = 0):
        self.insert('library', 'RKImageAdjustment', versionUuid=version_uuid, name=name, adjIndex=index, data=data)

    def add_face(self, master_uuid: str, corners, face_key=None, name=None, email=None,
                 rejected=0, ignore=0):
        (tlx, tly), (trx, try_), (blx, bly), (brx, bry) = corners
        if face_key is not None and name is not None:
            self.insert('faces', 'RKFaceName', faceKey=face_key, name=name, fullName=None, email=email)
        self.insert('faces', 'RKDetectedFace', modelId=self._id(), masterUuid=master_uuid, faceKey=face_key,
                    topLeftX=tlx, topLeftY=tly, topRightX=trx, topRightY=try_,
                    bottomLeftX=blx, bottomLeftY=bly, bottomRightX=brx, bottomRightY=bry,
                    rejected=rejected, ignore=ignore)

    def add_stored_face(self, version_id: int, left, top, width, height, face_key=None):
        self.insert('library', 'RKVersionFaceContent', modelId=self._id(), versionId=version_id,
                    faceKey=face_key, faceRectLeft=left, faceRectTop=top,
                    faceRectWidth=width, faceRectHeight=height)


@pytest.fixture
def library(tmp_path):
    """An empty library under tmp_path/Library.photolibrary."""
    builder = LibraryBuilder(tmp_path / "Library.photolibrary")
    try:
        yield builder
    finally:
        builder.close()


@pytest.fixture
def dest(tmp_path):
    path = tmp_path / "export"
    path.mkdir()
    return path


# Corners of the IMG_0001 face: (0.10, 0.20) / (0.30, 0.50), y up
FACE_CORNERS = [(0.10, 0.50), (0.30, 0.50), (0.10, 0.20), (0.30, 0.20)]
