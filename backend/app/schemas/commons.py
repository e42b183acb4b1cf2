# backend/app/schemas/commons.py
from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional, Union

# properties の値は JSON の閉じた型集合（型注釈用。pydantic 側は dict で受ける）
JSONScalar = Union[str, int, float, bool, None]
JSONValue = Union[JSONScalar, List["JSONValue"], Dict[str, "JSONValue"]]


class GeoJSONFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    geometry: dict
    properties: dict = Field(default_factory=dict)


class FeatureRecord(BaseModel):
    """One entry of the ``features`` form field: ``{"geojson": Feature}``."""
    geojson: GeoJSONFeature


class LngLat(BaseModel):
    lng: float
    lat: float


class ViewState(BaseModel):
    longitude: float
    latitude: float
    zoom: float
    bearing: Optional[float] = None
    pitch: Optional[float] = None
