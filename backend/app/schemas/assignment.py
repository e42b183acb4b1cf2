# backend/app/schemas/assignment.py
from pydantic import BaseModel, Field
from typing import List, Optional
import datetime as dt

from .commons import LngLat


class AssignIn(BaseModel):
    surveyor_id: int
    feature_ids: List[int]
    survey_id: Optional[int] = None


class PointCreateIn(LngLat):
    surveyId: Optional[int] = None


class CompleteIn(BaseModel):
    payload: dict = Field(default_factory=dict)


class AssignmentOut(BaseModel):
    id: int
    feature_id: int
    assignee_id: int
    survey_id: Optional[int] = None
    completed: bool
    completed_at: Optional[dt.datetime] = None
    coordinates: Optional[dict] = None


class SurveyorProgress(BaseModel):
    id: int
    name: str
    email: str
    admins: List[str] = Field(default_factory=list)
    completed: int
    total: int
