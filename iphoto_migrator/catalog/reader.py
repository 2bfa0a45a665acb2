import logging
import sqlite3
from typing import Dict, List, Optional, Tuple

from .db import CatalogConnections


class CatalogReader:
    """
    Read-only queries against the catalog. Returns raw rows; all
    interpretation happens in the aggregator.
    """
    def __init__(self, conns: CatalogConnections):
        self.conns = conns

    def fetch_versions(self, from_id: int = 0) -> List[sqlite3.Row]:
        """One row per image version, joined to its event, master and import group."""
        cur = self.conns.library.cursor()
        cur.execute("""
            SELECT v.modelId            AS id
                  ,v.uuid               AS uuid
                  ,v.masterId           AS master_id
                  ,m.uuid               AS master_uuid
                  ,v.name               AS caption
                  ,v.versionNumber      AS version_number
                  ,v.mainRating         AS rating
                  ,m.type               AS mediatype
                  ,m.imagePath          AS imagepath
                  ,v.imageDate          AS date_modified
                  ,m.imageDate          AS date_taken
                  ,m.createDate         AS date_imported
                  ,i.name               AS import_group
                  ,v.imageTimeZoneName  AS timezone
                  ,v.exifLatitude       AS latitude
                  ,v.exifLongitude      AS longitude
                  ,v.isHidden           AS hidden
                  ,v.isFlagged          AS flagged
                  ,v.isOriginal         AS original
                  ,m.isInTrash          AS in_trash
                  ,v.masterHeight       AS master_height
                  ,v.masterWidth        AS master_width
                  ,v.processedHeight    AS processed_height
                  ,v.processedWidth     AS processed_width
                  ,v.rotation           AS rotation
                  ,v.overridePlaceId    AS place_id
                  ,v.projectUuid        AS project_uuid
                  ,f.name               AS rollname
                  ,f.minImageDate       AS roll_min_date
                  ,f.maxImageDate       AS roll_max_date
                  ,f.minImageTimeZoneName AS roll_timezone
              FROM RKVersion v
              LEFT JOIN RKFolder f ON v.projectUuid = f.uuid
              LEFT JOIN RKMaster m ON m.uuid = v.masterUuid
              LEFT JOIN RKImportGroup i ON m.importGroupUuid = i.uuid
             WHERE v.modelId >= ?
             ORDER BY v.modelId
        """, (from_id,))
        return cur.fetchall()

    def fetch_folder_names(self) -> Dict[str, str]:
        """Maps folder modelId (as it appears in folderPath) to its name."""
        cur = self.conns.library.cursor()
        cur.execute("SELECT modelId, name FROM RKFolder")
        return {str(model_id): name or "" for model_id, name in cur.fetchall()}

    def fetch_keywords(self, version_id: int) -> List[str]:
        cur = self.conns.library.cursor()
        cur.execute("""
            SELECT k.name
              FROM RKKeywordForVersion kv
              JOIN RKKeyword k ON kv.keywordId = k.modelId
             WHERE kv.versionId = ?
        """, (version_id,))
        return [name for (name,) in cur.fetchall() if name]

    def fetch_albums(self, version_id: int) -> List[Tuple[str, Optional[str]]]:
        """Returns (album name, numeric folder path) for each album holding the version."""
        cur = self.conns.library.cursor()
        cur.execute("""
            SELECT a.name, f.folderPath
              FROM RKAlbumVersion av
              JOIN RKAlbum a ON av.albumId = a.modelId
              LEFT JOIN RKFolder f ON a.folderUuid = f.uuid
             WHERE av.versionId = ? AND COALESCE(a.isInTrash, 0) = 0
             ORDER BY a.modelId
        """, (version_id,))
        return [(name, path) for name, path in cur.fetchall() if name]

    def fetch_adjustments(self, version_uuid: str) -> List[Tuple[str, Optional[bytes]]]:
        """Edit stack of a version, in the order it was applied."""
        cur = self.conns.library.cursor()
        cur.execute("""
            SELECT name, data
              FROM RKImageAdjustment
             WHERE versionUuid = ?
             ORDER BY adjIndex
        """, (version_uuid,))
        return [(name, data) for name, data in cur.fetchall()]

    def fetch_version_faces(self, version_id: int) -> List[sqlite3.Row]:
        """Face rectangles the catalog stored for the edited version."""
        cur = self.conns.library.cursor()
        cur.execute("""
            SELECT faceKey, faceRectLeft, faceRectTop, faceRectWidth, faceRectHeight
              FROM RKVersionFaceContent
             WHERE versionId = ?
             ORDER BY modelId
        """, (version_id,))
        return cur.fetchall()

    def fetch_places(self) -> Dict[int, str]:
        cur = self.conns.properties.cursor()
        cur.execute("SELECT modelId, defaultName FROM RKPlace")
        return {model_id: name for model_id, name in cur.fetchall() if name}

    def fetch_descriptions(self) -> Dict[int, Tuple[str, Optional[float]]]:
        """
        versionId -> (description, modDate).
        Rows come oldest first, so the most recently modified text wins.
        """
        cur = self.conns.properties.cursor()
        cur.execute("""
            SELECT i.versionId, i.modDate, s.stringProperty
              FROM RKIptcProperty i
              LEFT JOIN RKUniqueString s ON i.stringId = s.modelId
             WHERE i.propertyKey = 'Caption/Abstract'
             ORDER BY i.versionId, i.modDate
        """)
        descs = {}
        for version_id, mod_date, text in cur.fetchall():
            if text is None:
                continue
            descs[version_id] = (text, mod_date)
        logging.debug(f"Loaded {len(descs)} descriptions.")
        return descs

    def fetch_detected_faces(self, master_uuid: str) -> List[sqlite3.Row]:
        """Detector rectangles for a master, with the person's name when known."""
        cur = self.conns.faces.cursor()
        cur.execute("""
            SELECT d.modelId, d.faceKey
                  ,d.topLeftX, d.topLeftY, d.topRightX, d.topRightY
                  ,d.bottomLeftX, d.bottomLeftY, d.bottomRightX, d.bottomRightY
                  ,n.name, n.fullName, n.email
              FROM RKDetectedFace d
              LEFT JOIN RKFaceName n ON n.faceKey = d.faceKey
             WHERE d.masterUuid = ?
               AND COALESCE(d.rejected, 0) = 0
               AND COALESCE(d."ignore", 0) = 0
             ORDER BY d.modelId
        """, (master_uuid,))
        return cur.fetchall()

    def fetch_face_names(self) -> Dict[int, Tuple[Optional[str], Optional[str]]]:
        """faceKey -> (display name, email)."""
        cur = self.conns.faces.cursor()
        cur.execute("SELECT faceKey, name, fullName, email FROM RKFaceName")
        return {
            face_key: (full_name or name, email)
            for face_key, name, full_name, email in cur.fetchall()
        }

    def fetch_master_paths(self, below_id: int) -> List[str]:
        """Master paths of versions below an id threshold."""
        cur = self.conns.library.cursor()
        cur.execute("""
            SELECT DISTINCT m.imagePath
              FROM RKVersion v
              JOIN RKMaster m ON m.uuid = v.masterUuid
             WHERE v.modelId < ? AND m.imagePath IS NOT NULL
        """, (below_id,))
        return [path for (path,) in cur.fetchall()]
