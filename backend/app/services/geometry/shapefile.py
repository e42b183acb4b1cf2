# backend/app/services/geometry/shapefile.py
import shapefile  # pyshp
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError
from shapely.geometry import shape, mapping
from shapely.ops import transform
from loguru import logger
from pathlib import Path
from datetime import date
from typing import List, Optional

from app.errors import MalformedInput

WGS84 = CRS.from_epsg(4326)


def _json_safe(value):
    # DBF の日付・バイト列を JSON に載る形へ
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _source_crs(shp_path: Path) -> Optional[CRS]:
    prj = shp_path.with_suffix(".prj")
    if not prj.exists():
        logger.warning("shapefile {} has no .prj; assuming EPSG:4326", shp_path.name)
        return None
    try:
        return CRS.from_wkt(prj.read_text(errors="replace"))
    except CRSError as e:
        raise MalformedInput(f"cannot read {prj.name}: {e}") from e


def read_shapefile(shp_path: Path, encoding: str = "utf-8") -> List[dict]:
    shp_path = Path(shp_path)
    src_crs = _source_crs(shp_path)
    tf = None
    if src_crs is not None and not src_crs.equals(WGS84, ignore_axis_order=True):
        tf = Transformer.from_crs(src_crs, WGS84, always_xy=True)

    features = []
    # .dbf はレコード読み出し時に初めて開かれる
    try:
        with shapefile.Reader(str(shp_path), encoding=encoding, encodingErrors="replace") as sf:
            fields = [f[0] for f in sf.fields[1:]]
            for rec in sf.iterShapeRecords():
                if rec.shape.shapeType == shapefile.NULL:
                    continue
                geometry = rec.shape.__geo_interface__
                if tf is not None:
                    geometry = mapping(transform(tf.transform, shape(geometry)))
                features.append({
                    "type": "Feature",
                    "geometry": _plain(geometry),
                    "properties": {k: _json_safe(v) for k, v in zip(fields, rec.record)},
                })
    except shapefile.ShapefileException as e:
        raise MalformedInput(f"cannot read shapefile: {e}") from e
    return features


def _plain(geometry) -> dict:
    # shapely.mapping / pyshp はタプルを返すので JSON 用にリストへ
    def conv(v):
        if isinstance(v, (list, tuple)):
            return [conv(x) for x in v]
        if isinstance(v, dict):
            return {k: conv(x) for k, x in v.items()}
        return v
    return conv(dict(geometry))
