# backend/app/services/geometry/loader.py
from __future__ import annotations

import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal, Optional, Sequence

from loguru import logger

from app.errors import UnsupportedFormat, MalformedInput
from app.services.geometry.geojson import parse_geojson
from app.services.geometry.kml import parse_kml
from app.services.geometry.shapefile import read_shapefile
from app.services.storage.uploads import store_upload, new_batch_id

Format = Literal["kml", "geojson", "shapefile"]

SHAPEFILE_EXTS = {".shp", ".dbf", ".shx", ".prj", ".cpg"}
KML_MIME = {"application/vnd.google-earth.kml+xml"}
GEOJSON_MIME = {"application/geo+json", "application/json"}


@dataclass
class UploadedGeometry:
    filename: str
    data: bytes
    content_type: Optional[str] = None

    @property
    def suffix(self) -> str:
        return Path(self.filename or "").suffix.lower()


def _sniff(data: bytes) -> Optional[Format]:
    head = data[:1024].lstrip(b"\xef\xbb\xbf").lstrip()
    if head.startswith(b"<") and b"<kml" in head:
        return "kml"
    if head.startswith(b"{"):
        return "geojson"
    return None


def detect_format(files: Sequence[UploadedGeometry]) -> Format:
    if not files:
        raise UnsupportedFormat("no file uploaded")

    if len(files) > 1 or files[0].suffix in SHAPEFILE_EXTS:
        # 順不同で届くため .shp は拡張子で探す
        if not any(f.suffix == ".shp" for f in files):
            raise UnsupportedFormat("multi-file upload without a .shp file")
        return "shapefile"

    f = files[0]
    ctype = (f.content_type or "").split(";")[0].strip().lower()
    if f.suffix == ".kml" or ctype in KML_MIME:
        return "kml"
    if f.suffix in (".geojson", ".json") or ctype in GEOJSON_MIME:
        return "geojson"
    sniffed = _sniff(f.data)
    if sniffed is None:
        raise UnsupportedFormat(f"unsupported geometry file: {f.filename}")
    return sniffed


def _decode(f: UploadedGeometry) -> str:
    try:
        return f.data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedInput(f"{f.filename} is not UTF-8 text") from e


def load_shapefile(files: Sequence[UploadedGeometry], upload_root: Optional[Path] = None) -> List[dict]:
    # 全ファイルを同じバッチに保存してから .shp のパスで読む
    batch = new_batch_id()
    shp_path = None
    for f in files:
        stored = store_upload(f.filename, f.data, batch, root=upload_root)
        if f.suffix == ".shp":
            shp_path = stored
    if shp_path is None:
        raise UnsupportedFormat("multi-file upload without a .shp file")
    return read_shapefile(shp_path)


def load_features(files: Sequence[UploadedGeometry], upload_root: Optional[Path] = None) -> List[dict]:
    fmt = detect_format(files)
    if fmt == "shapefile":
        if upload_root is None:
            with tempfile.TemporaryDirectory() as tmpdir:
                features = load_shapefile(files, Path(tmpdir))
        else:
            features = load_shapefile(files, upload_root)
    elif fmt == "kml":
        features = parse_kml(_decode(files[0]))
    else:
        features = parse_geojson(_decode(files[0]))
    logger.info("loaded {} features from {} ({})", len(features), files[0].filename, fmt)
    return features


def load_stored_shapefile(directory: Path) -> List[dict]:
    shp_files = sorted(p for p in Path(directory).iterdir() if p.suffix.lower() == ".shp")
    if not shp_files:
        raise UnsupportedFormat("no .shp file in upload batch")
    return read_shapefile(shp_files[0])
