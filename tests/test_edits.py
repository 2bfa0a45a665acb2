import plistlib

import pytest

from iphoto_migrator.edits.decoder import KeyedArchive, decode_blob, find_tag, parse_edit
from iphoto_migrator.exceptions import EditBlobError
from iphoto_migrator.models import CropEdit, OtherEdit, StraightenEdit


def keyed_archive(root: dict) -> bytes:
    """Serializes a nested dict the way NSKeyedArchiver lays out an NSDictionary graph."""
    objects = ["$null"]

    def add(value):
        if isinstance(value, dict):
            index = len(objects)
            objects.append(None)
            keys = [add(k) for k in value]
            values = [add(v) for v in value.values()]
            objects.append({"$classname": "NSMutableDictionary",
                            "$classes": ["NSMutableDictionary", "NSDictionary", "NSObject"]})
            objects[index] = {"$class": plistlib.UID(len(objects) - 1), "NS.keys": keys, "NS.objects": values}
            return plistlib.UID(index)
        objects.append(value)
        return plistlib.UID(len(objects) - 1)

    top = add(root)
    archive = {
        "$archiver": "NSKeyedArchiver",
        "$version": 100000,
        "$top": {"root": top},
        "$objects": objects,
    }
    return plistlib.dumps(archive, fmt=plistlib.FMT_BINARY)


CROP_PARAMS = {
    "inputKeys": {
        "inputXOrigin": 120,
        "inputYOrigin": 80.5,
        "inputWidth": 2000,
        "inputHeight": 1500,
        "inputConstrainAspectRatio": False,
    },
}


def test_materialize_nested_dictionaries():
    graph = KeyedArchive.from_bytes(keyed_archive(CROP_PARAMS)).materialize()
    assert graph["inputKeys"]["inputWidth"] == 2000
    assert find_tag(graph, "inputYOrigin") == 80.5


def test_parse_crop():
    edit = parse_edit("RKCropOperation", keyed_archive(CROP_PARAMS))
    assert edit == CropEdit("RKCropOperation", x=120.0, y=80.5, width=2000.0, height=1500.0)


def test_parse_straighten():
    edit = parse_edit("RKStraightenCropOperation", keyed_archive({"inputKeys": {"inputRotation": -1.75}}))
    assert isinstance(edit, StraightenEdit)
    assert edit.angle == pytest.approx(-1.75)


def test_plain_property_list_passes_through():
    data = plistlib.dumps({"inputRotation": 2.5})
    assert decode_blob(data) == {"inputRotation": 2.5}
    assert parse_edit("RKStraightenCropOperation", data).angle == pytest.approx(2.5)


def test_other_operations_are_not_decoded():
    assert parse_edit("RKWhiteBalanceOperation", b"garbage") == OtherEdit("RKWhiteBalanceOperation")


def test_crop_missing_field_raises():
    params = {"inputKeys": {"inputXOrigin": 1, "inputYOrigin": 2, "inputWidth": 3}}
    with pytest.raises(EditBlobError, match="inputHeight"):
        parse_edit("RKCropOperation", keyed_archive(params))


def test_non_numeric_field_raises():
    with pytest.raises(EditBlobError):
        parse_edit("RKStraightenCropOperation", keyed_archive({"inputRotation": "left"}))


@pytest.mark.parametrize("data", [None, b"", b"not a plist at all"])
def test_malformed_blob_raises(data):
    with pytest.raises(EditBlobError):
        parse_edit("RKCropOperation", data)


def test_dangling_reference_raises():
    archive = {
        "$archiver": "NSKeyedArchiver",
        "$top": {"root": plistlib.UID(1)},
        "$objects": ["$null", {"NS.keys": [plistlib.UID(9)], "NS.objects": [plistlib.UID(9)]}],
    }
    with pytest.raises(EditBlobError, match="dangling"):
        decode_blob(plistlib.dumps(archive, fmt=plistlib.FMT_BINARY))


@pytest.mark.parametrize("archive", [
    {"$objects": ["$null", {}], "$top": ["x"]},
    {"$objects": {"root": 1}, "$top": {"root": plistlib.UID(1)}},
    {"$objects": "not an array", "$top": {}},
])
def test_misshapen_archive_raises(archive):
    data = plistlib.dumps(archive, fmt=plistlib.FMT_BINARY)
    with pytest.raises(EditBlobError):
        parse_edit("RKCropOperation", data)
