# backend/app/services/geometry/kml.py
from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import List, Optional

from app.errors import MalformedInput

_SIMPLE_GEOMS = ("Point", "LineString", "Polygon")


def parse_kml(text: str) -> List[dict]:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedInput(f"invalid KML: {e}") from e

    ns = _namespace(root)
    features = []
    for pm in root.iter(f"{ns}Placemark"):
        geometry = _placemark_geometry(pm, ns)
        if geometry is None:
            continue
        features.append({
            "type": "Feature",
            "geometry": geometry,
            "properties": _properties(pm, ns),
        })
    return features


def _namespace(root: ET.Element) -> str:
    if root.tag.startswith("{"):
        return root.tag.split("}")[0] + "}"
    return ""


def _text(elem: Optional[ET.Element]) -> Optional[str]:
    if elem is None or elem.text is None:
        return None
    return elem.text.strip()


def _properties(pm: ET.Element, ns: str) -> dict:
    props: dict = {}
    name = _text(pm.find(f"{ns}name"))
    if name:
        props["name"] = name
    description = _text(pm.find(f"{ns}description"))
    if description:
        props["description"] = description

    ext = pm.find(f"{ns}ExtendedData")
    if ext is not None:
        for data in ext.iter(f"{ns}Data"):
            key = data.get("name")
            if key:
                props[key] = _text(data.find(f"{ns}value")) or ""
        for sd in ext.iter(f"{ns}SimpleData"):
            key = sd.get("name")
            if key:
                props[key] = _text(sd) or ""
    return props


def _coords(elem: ET.Element, ns: str) -> List[List[float]]:
    node = elem.find(f"{ns}coordinates")
    raw = _text(node) or ""
    out = []
    for token in raw.split():
        parts = token.split(",")
        if len(parts) < 2:
            continue
        try:
            out.append([float(p) for p in parts[:3]])
        except ValueError:
            continue
    return out


def _geometry(elem: ET.Element, ns: str) -> Optional[dict]:
    tag = elem.tag[len(ns):]
    if tag == "Point":
        coords = _coords(elem, ns)
        return {"type": "Point", "coordinates": coords[0]} if coords else None
    if tag == "LineString":
        coords = _coords(elem, ns)
        return {"type": "LineString", "coordinates": coords} if coords else None
    if tag == "Polygon":
        rings = []
        outer = elem.find(f"{ns}outerBoundaryIs/{ns}LinearRing")
        if outer is not None:
            rings.append(_coords(outer, ns))
        for inner in elem.findall(f"{ns}innerBoundaryIs/{ns}LinearRing"):
            rings.append(_coords(inner, ns))
        rings = [r for r in rings if r]
        return {"type": "Polygon", "coordinates": rings} if rings else None
    if tag == "MultiGeometry":
        parts = [g for g in (_geometry(child, ns) for child in elem) if g is not None]
        return {"type": "GeometryCollection", "geometries": parts} if parts else None
    return None


def _placemark_geometry(pm: ET.Element, ns: str) -> Optional[dict]:
    for child in pm:
        tag = child.tag[len(ns):]
        if tag in _SIMPLE_GEOMS or tag == "MultiGeometry":
            return _geometry(child, ns)
    return None
