# backend/app/services/normalize/features.py
from __future__ import annotations

import json
from typing import Iterable, List, Optional

from loguru import logger

from app.errors import MalformedInput, MissingLabelProperty
from app.schemas.commons import JSONValue

# 上流ローダの不具合: DBF の文字列フィールドが同一文字 254 個で埋まることがある
FILLER_LENGTH = 254


def _is_filler(value: str) -> bool:
    return len(value) == FILLER_LENGTH and len(set(value)) == 1


def scrub_filler_strings(value: JSONValue) -> JSONValue:
    # キーはそのまま、値は深さに関係なく置換
    if isinstance(value, str):
        return "" if _is_filler(value) else value
    if isinstance(value, list):
        return [scrub_filler_strings(v) for v in value]
    if isinstance(value, dict):
        return {k: scrub_filler_strings(v) for k, v in value.items()}
    return value


def _as_feature(raw) -> dict:
    if not isinstance(raw, dict):
        raise MalformedInput("feature must be a JSON object")
    geometry = raw.get("geometry")
    if not isinstance(geometry, dict) or "type" not in geometry:
        raise MalformedInput("feature has no geometry")
    properties = raw.get("properties") or {}
    if not isinstance(properties, dict):
        raise MalformedInput("feature properties must be a JSON object")
    feat = {"type": "Feature", "geometry": geometry, "properties": properties}
    if "id" in raw:
        feat["id"] = raw["id"]
    return feat


def normalize_records(data) -> List[dict]:
    if isinstance(data, dict) and data.get("type") == "FeatureCollection":
        data = data.get("features") or []
    if not isinstance(data, list):
        raise MalformedInput("features must be a list")

    records: List[dict] = []
    for item in data:
        if isinstance(item, dict) and "geojson" in item:
            records.append({"geojson": _as_feature(item["geojson"])})
        else:
            records.append({"geojson": _as_feature(item)})
    return records


def parse_features_text(text: str) -> List[dict]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedInput(f"features is not valid JSON: {e}") from e

    scrubbed = scrub_filler_strings(data)
    if scrubbed != data:
        logger.warning("scrubbed filler strings from uploaded features")
    return normalize_records(scrubbed)


def derive_label(geojson: dict, label_field: str, strict: bool = False) -> Optional[str]:
    # キーが無い場合は None のまま（代替ラベルは作らない）
    properties = geojson.get("properties") or {}
    if label_field not in properties:
        if strict:
            raise MissingLabelProperty(label_field)
        return None
    value = properties[label_field]
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def property_keys(records: Iterable[dict]) -> List[str]:
    # ラベル候補は先頭フィーチャの properties のキー
    for rec in records:
        return list((rec.get("geojson") or {}).get("properties") or {})
    return []
