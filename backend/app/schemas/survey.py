# backend/app/schemas/survey.py
from pydantic import BaseModel
from typing import Optional
import datetime as dt


class SurveyIn(BaseModel):
    name: str
    date: Optional[dt.date] = None


class SurveyOut(BaseModel):
    id: int
    name: str
    date: dt.date
    admin_id: Optional[int] = None
