# backend/app/services/geometry/geojson.py
from __future__ import annotations

import json
from typing import List

from app.errors import MalformedInput

GEOMETRY_TYPES = (
    "Point", "MultiPoint", "LineString", "MultiLineString",
    "Polygon", "MultiPolygon", "GeometryCollection",
)


def parse_geojson(text: str) -> List[dict]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedInput(f"invalid GeoJSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedInput("GeoJSON root must be an object")

    gtype = data.get("type")
    if gtype == "FeatureCollection":
        raw_features = data.get("features") or []
    elif gtype == "Feature":
        raw_features = [data]
    elif gtype in GEOMETRY_TYPES:
        raw_features = [{"type": "Feature", "geometry": data, "properties": {}}]
    else:
        raise MalformedInput(f"unknown GeoJSON type: {gtype!r}")

    features = []
    for raw in raw_features:
        feat = _parse_feature(raw)
        if feat is not None:
            features.append(feat)
    return features


def _parse_feature(raw) -> dict | None:
    if not isinstance(raw, dict):
        return None
    geometry = raw.get("geometry")
    # geometry: null のフィーチャは取り込まない
    if not isinstance(geometry, dict) or geometry.get("type") not in GEOMETRY_TYPES:
        return None
    properties = raw.get("properties") or {}
    if not isinstance(properties, dict):
        properties = {}
    feat = {"type": "Feature", "geometry": geometry, "properties": properties}
    if "id" in raw:
        feat["id"] = raw["id"]
    return feat
