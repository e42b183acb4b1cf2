"""/uploads endpoints: single-file storage, previews, shapefile batches."""
from __future__ import annotations

import json

from app import config
from conftest import KML, point_feature, write_points_shapefile


class TestUploadPreview:

    def test_geojson_preview(self, client):
        fc = {"type": "FeatureCollection", "features": [point_feature(1, 2, name="a", kind="x")]}
        res = client.post(
            "/uploads/preview",
            files=[("files", ("points.geojson", json.dumps(fc).encode(), "application/geo+json"))],
        )
        assert res.status_code == 200
        body = res.json()
        assert body["fileName"] == "points.geojson"
        assert body["fields"] == ["name", "kind"]
        assert body["features"] == [{"geojson": point_feature(1, 2, name="a", kind="x")}]

    def test_kml_preview(self, client):
        res = client.post("/uploads/preview", files=[("files", ("h.kml", KML.encode(), "application/octet-stream"))])
        assert res.status_code == 200
        assert len(res.json()["features"]) == 3

    def test_unsupported_is_415(self, client):
        res = client.post("/uploads/preview", files=[("files", ("notes.txt", b"hello", "text/plain"))])
        assert res.status_code == 415

    def test_shapefile_parts_in_one_request(self, client, tmp_path):
        shp = write_points_shapefile(tmp_path / "pts", [((1, 2), "A", "", 0), ((3, 4), "B", "", 0)])
        parts = [p for p in sorted(tmp_path.iterdir(), reverse=True)]
        res = client.post(
            "/uploads/preview",
            files=[("files", (p.name, p.read_bytes(), "application/octet-stream")) for p in parts],
        )
        assert res.status_code == 200
        assert [f["geojson"]["properties"]["name"] for f in res.json()["features"]] == ["A", "B"]
        assert shp.exists()


class TestUploadBatch:

    def test_parts_uploaded_one_by_one(self, client, tmp_path):
        write_points_shapefile(tmp_path / "pts", [((1, 2), "A", "", 0)])
        batch = None
        urls = []
        for p in sorted(tmp_path.iterdir(), key=lambda p: p.suffix != ".dbf"):
            data = {"batch": batch} if batch else {}
            res = client.post("/uploads", files={"file": (p.name, p.read_bytes())}, data=data)
            assert res.status_code == 200
            batch = res.json()["batch"]
            urls.append(res.json()["url"])
        assert all(u.startswith(f"/uploads/{batch}/") for u in urls)

        res = client.post(f"/uploads/{batch}/load")
        assert res.status_code == 200
        assert res.json()["fileName"] == "pts.shp"
        assert res.json()["fields"] == ["name", "note", "count"]

    def test_bad_batch_ids(self, client):
        assert client.post("/uploads/not-a-batch/load").status_code == 400
        assert client.post("/uploads/0123456789ab/load").status_code == 404


class TestBrokenShapefile:

    def _post(self, client, parts):
        return client.post(
            "/uploads/preview",
            files=[("files", (p.name, p.read_bytes(), "application/octet-stream")) for p in parts],
        )

    def test_missing_dbf_is_400(self, client, tmp_path):
        write_points_shapefile(tmp_path / "h", [((1, 2), "A", "", 0)], prj_epsg=None)
        res = self._post(client, [tmp_path / "h.shp", tmp_path / "h.shx"])
        assert res.status_code == 400

    def test_garbage_prj_is_400(self, client, tmp_path):
        write_points_shapefile(tmp_path / "h", [((1, 2), "A", "", 0)])
        (tmp_path / "h.prj").write_text("not a crs")
        res = self._post(client, sorted(tmp_path.iterdir()))
        assert res.status_code == 400
        assert "h.prj" in res.json()["detail"]

    def test_garbage_prj_in_batch_is_400(self, client, tmp_path):
        write_points_shapefile(tmp_path / "h", [((1, 2), "A", "", 0)])
        (tmp_path / "h.prj").write_text("not a crs")
        batch = None
        for p in sorted(tmp_path.iterdir()):
            res = client.post("/uploads", files={"file": (p.name, p.read_bytes())}, data={"batch": batch} if batch else {})
            batch = res.json()["batch"]
        assert client.post(f"/uploads/{batch}/load").status_code == 400


def test_preview_leaves_no_batch_behind(client, tmp_path):
    def batches():
        root = config.UPLOAD_DIR
        return set(root.iterdir()) if root.is_dir() else set()

    write_points_shapefile(tmp_path / "pts", [((1, 2), "A", "", 0)])
    before = batches()
    res = client.post(
        "/uploads/preview",
        files=[("files", (p.name, p.read_bytes(), "application/octet-stream")) for p in sorted(tmp_path.iterdir())],
    )
    assert res.status_code == 200
    assert batches() == before
