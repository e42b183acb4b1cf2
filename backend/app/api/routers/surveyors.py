from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from app.db import get_db
from app.models.user import Admin
from app.schemas.assignment import SurveyorProgress
from app.services.assignments.state import surveyor_progress

router = APIRouter()


@router.get("")
@router.get("/")
def list_surveyors(admin_id: Optional[int] = None, db: Session = Depends(get_db)) -> list[SurveyorProgress]:
    """Surveyors with completed / total assignment counts, optionally for one admin."""
    admin = db.get(Admin, admin_id) if admin_id is not None else None
    return [SurveyorProgress(**row) for row in surveyor_progress(db, admin)]
