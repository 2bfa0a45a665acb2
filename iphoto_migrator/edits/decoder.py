"""
Decoding of serialized edit operations (RKImageAdjustment.data).

Each blob is a binary property list written by NSKeyedArchiver: a flat
`$objects` array in which containers refer to their members by UID. The
decoder first de-references that graph into plain dicts and lists, then
looks parameters up by name instead of by array position.
"""
import plistlib
from xml.parsers.expat import ExpatError
from typing import Any, Dict, Iterator, List, Optional

from .. import config
from ..exceptions import EditBlobError
from ..models import CropEdit, EditOperation, OtherEdit, StraightenEdit

_NULL = "$null"


class KeyedArchive:
    """De-references an NSKeyedArchiver object graph."""

    def __init__(self, archive: Dict[str, Any]):
        self.raw = archive
        self.objects: List[Any] = archive.get("$objects") or []
        self.top = archive.get("$top") or {}
        if not isinstance(self.objects, list):
            raise EditBlobError(f"$objects is a {type(self.objects).__name__}, not an array")
        if not isinstance(self.top, dict):
            raise EditBlobError(f"$top is a {type(self.top).__name__}, not a dictionary")
        self._cache: Dict[int, Any] = {}
        self._resolving = set()

    @classmethod
    def from_bytes(cls, data: bytes) -> "KeyedArchive":
        try:
            archive = plistlib.loads(data)
        except (plistlib.InvalidFileException, ExpatError, ValueError, TypeError) as e:
            raise EditBlobError(f"not a property list: {e}") from e
        if not isinstance(archive, dict):
            raise EditBlobError("property list root is not a dictionary")
        return cls(archive)

    def materialize(self) -> Any:
        """Returns the root object as native Python values."""
        if not self.objects:
            return {}
        root = self.top.get("root", plistlib.UID(1) if len(self.objects) > 1 else plistlib.UID(0))
        return self._resolve(root)

    def _resolve(self, value: Any) -> Any:
        if isinstance(value, plistlib.UID):
            return self._resolve_uid(value.data)
        if isinstance(value, list):
            return [self._resolve(v) for v in value]
        if isinstance(value, dict):
            return self._resolve_container(value)
        if value == _NULL:
            return None
        return value

    def _resolve_uid(self, index: int) -> Any:
        if index in self._cache:
            return self._cache[index]
        if index in self._resolving:
            # Back-reference; cut the cycle
            return None
        if index < 0 or index >= len(self.objects):
            raise EditBlobError(f"dangling object reference {index}")

        self._resolving.add(index)
        try:
            value = self._resolve(self.objects[index])
        finally:
            self._resolving.discard(index)
        self._cache[index] = value
        return value

    def _resolve_container(self, obj: Dict[str, Any]) -> Any:
        if "NS.keys" in obj and "NS.objects" in obj:
            keys = [self._resolve(k) for k in obj["NS.keys"]]
            values = [self._resolve(v) for v in obj["NS.objects"]]
            return dict(zip(keys, values))
        if "NS.objects" in obj:
            return [self._resolve(v) for v in obj["NS.objects"]]
        if "NS.string" in obj:
            return obj["NS.string"]
        return {k: self._resolve(v) for k, v in obj.items() if k != "$class"}


def iter_mappings(value: Any) -> Iterator[Dict[Any, Any]]:
    """Depth-first walk over every dict in a materialized graph."""
    stack = [value]
    while stack:
        current = stack.pop()
        if isinstance(current, dict):
            yield current
            stack.extend(reversed(list(current.values())))
        elif isinstance(current, list):
            stack.extend(reversed(current))


def find_tag(value: Any, tag: str) -> Optional[Any]:
    for mapping in iter_mappings(value):
        if tag in mapping:
            return mapping[tag]
    return None


def decode_blob(data: bytes) -> Any:
    """Blob bytes -> plain Python structure. Plain (non-archived) plists pass through."""
    archive = KeyedArchive.from_bytes(data)
    if not archive.objects:
        return archive.raw
    try:
        return archive.materialize()
    except (TypeError, AttributeError, KeyError, RecursionError) as e:
        raise EditBlobError(f"malformed object graph: {e}") from e


def _number(graph: Any, tag: str, op_name: str) -> float:
    value = find_tag(graph, tag)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EditBlobError(f"{op_name}: field {tag!r} missing or not numeric ({value!r})")
    return float(value)


def parse_edit(name: str, data: Optional[bytes]) -> EditOperation:
    """
    Turns one adjustment row into a typed edit.
    Raises EditBlobError for crop/straighten blobs lacking their fields.
    """
    if name not in (config.CROP_OPERATION, config.STRAIGHTEN_OPERATION):
        return OtherEdit(name)
    if not data:
        raise EditBlobError(f"{name}: empty parameter blob")

    graph = decode_blob(data)

    if name == config.CROP_OPERATION:
        return CropEdit(
            name=name,
            x=_number(graph, config.CROP_TAGS['x'], name),
            y=_number(graph, config.CROP_TAGS['y'], name),
            width=_number(graph, config.CROP_TAGS['width'], name),
            height=_number(graph, config.CROP_TAGS['height'], name),
        )

    return StraightenEdit(name=name, angle=_number(graph, config.STRAIGHTEN_TAG, name))
