import hashlib
import xml.etree.ElementTree as ET

import pytest

from iphoto_migrator.geometry.faces import GeometryEngine
from iphoto_migrator.models import CatalogTimestamp, DetectedFace, PhotoRecord, StoredFaceRect
from iphoto_migrator.sidecar.writer import XmpSidecarWriter, email_digest, gps_coordinate

from conftest import FACE_CORNERS, catalog_seconds

NS = {
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "dc": "http://purl.org/dc/elements/1.1/",
    "xmp": "http://ns.adobe.com/xap/1.0/",
    "xmpMM": "http://ns.adobe.com/xap/1.0/mm/",
    "stRef": "http://ns.adobe.com/xap/1.0/sType/ResourceRef#",
    "lr": "http://ns.adobe.com/lightroom/1.0/",
    "mwg-rs": "http://www.metadataworkinggroup.com/schemas/regions/",
    "stArea": "http://ns.adobe.com/xmp/sType/Area#",
    "stDim": "http://ns.adobe.com/xap/1.0/sType/Dimensions#",
    "MPReg": "http://ns.microsoft.com/photo/1.2/t/Region#",
}


def _attr(prefix, name):
    return f"{{{NS[prefix]}}}{name}"


@pytest.fixture
def record():
    rec = PhotoRecord(
        version_id=9, version_uuid="V-9", master_uuid="M-9", image_path="a/IMG_9.jpg",
        version_number=1, caption="Beach & Sun", description="A <windy> day", rating=4,
        date_taken=CatalogTimestamp(catalog_seconds(2015, 4, 27), "Europe/Berlin"),
        latitude=52.5, longitude=-13.25, place_name="Somewhere",
        master_width=4000, master_height=3000, processed_width=1000, processed_height=800,
        rotation=90, keywords={"beach", "iPhoto/Flagged"}, albums={"Trips/Italy"},
        detected_faces=[DetectedFace(*FACE_CORNERS, name="Ann", email="Ann@Example.com")],
        edited_faces=[StoredFaceRect(0.1, 0.1, 0.2, 0.2, name="Ann")],
    )
    return GeometryEngine().annotate(rec)


def _parse(text):
    assert text.startswith('<?xpacket begin="\ufeff"')
    return ET.fromstring(text.split("?>", 1)[1].rsplit("<?xpacket", 1)[0])


def _description(root):
    return root.find("rdf:RDF/rdf:Description", NS)


def test_filters():
    assert gps_coordinate(52.5, "N", "S") == "52,30.000000N"
    assert gps_coordinate(-13.25, "E", "W") == "13,15.000000W"
    assert email_digest(" Ann@Example.com ") == hashlib.sha1(b"ann@example.com").hexdigest()
    assert email_digest(None) == ""


def test_master_sidecar(record):
    desc = _description(_parse(XmpSidecarWriter().render(record, "master")))

    assert desc.get(_attr("xmpMM", "DocumentID")) == "M-9"
    assert desc.get(_attr("xmp", "Rating")) == "4"
    assert desc.get(_attr("xmp", "CreateDate")) == "2015-04-27T14:00:00+02:00"
    assert desc.find("xmpMM:DerivedFrom", NS) is None

    assert desc.find("dc:title/rdf:Alt/rdf:li", NS).text == "Beach & Sun"
    assert desc.find("dc:description/rdf:Alt/rdf:li", NS).text == "A <windy> day"
    subjects = [li.text for li in desc.findall("dc:subject/rdf:Bag/rdf:li", NS)]
    assert subjects == ["beach", "iPhoto/Flagged"]
    hierarchy = [li.text for li in desc.findall("lr:hierarchicalSubject/rdf:Bag/rdf:li", NS)]
    assert "Albums|Trips|Italy" in hierarchy
    assert "People|Ann" in hierarchy

    dims = desc.find("mwg-rs:Regions/mwg-rs:AppliedToDimensions", NS)
    assert (dims.get(_attr("stDim", "w")), dims.get(_attr("stDim", "h"))) == ("3000", "4000")

    area = desc.find("mwg-rs:Regions/mwg-rs:RegionList/rdf:Bag/rdf:li/rdf:Description/mwg-rs:Area", NS)
    assert float(area.get(_attr("stArea", "x"))) == pytest.approx(0.65)
    assert float(area.get(_attr("stArea", "w"))) == pytest.approx(0.30)


def test_edited_sidecar(record):
    desc = _description(_parse(XmpSidecarWriter().render(record, "edited")))

    assert desc.get(_attr("xmpMM", "DocumentID")) == "V-9"
    assert desc.find("xmpMM:DerivedFrom", NS).get(_attr("stRef", "documentID")) == "M-9"

    dims = desc.find("mwg-rs:Regions/mwg-rs:AppliedToDimensions", NS)
    assert dims.get(_attr("stDim", "w")) == "1000"

    face = [li for li in desc.iter(_attr("rdf", "li")) if li.get(_attr("MPReg", "Rectangle"))][0]
    x, y, w, h = (float(v) for v in face.get(_attr("MPReg", "Rectangle")).split(","))
    assert (x, y, w, h) == (pytest.approx(0.1), pytest.approx(0.7), pytest.approx(0.2), pytest.approx(0.2))


def test_write_creates_file(tmp_path, record):
    path = tmp_path / "deep" / "IMG_9.jpg.xmp"
    XmpSidecarWriter().write(path, record)
    assert path.read_text(encoding="utf-8").rstrip().endswith('<?xpacket end="w"?>')
