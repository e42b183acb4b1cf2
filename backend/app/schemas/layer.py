# backend/app/schemas/layer.py
from pydantic import BaseModel, Field
from typing import List, Optional
import datetime as dt

from .commons import FeatureRecord


class LayerCreate(BaseModel):
    # features: フォームの JSON テキスト（空文字なら空レイヤ）
    features: str = ""
    name: str
    label_field: str = ""
    survey_id: Optional[int] = None


class LayerSummary(BaseModel):
    id: int
    name: str
    label_field: Optional[str] = None
    default_survey_id: Optional[int] = None
    created_at: dt.datetime
    features_count: int = 0
    assigned_count: int = 0
    completed_count: int = 0


class FeatureOut(BaseModel):
    id: int
    label: Optional[str] = None
    geojson: dict
    assignment_id: Optional[int] = None
    assignee_id: Optional[int] = None
    completed: bool = False
    state: str = "unassigned"


class LayerDetail(LayerSummary):
    features: List[FeatureOut] = Field(default_factory=list)


class UploadPreview(BaseModel):
    fileName: str
    features: List[FeatureRecord]
    fields: List[str]
