from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from datetime import date as Date

from app.db import get_db
from app.errors import NotFound
from app.models.survey import Survey
from app.schemas.survey import SurveyIn, SurveyOut
from app.services.layers.create import admin_for_user
from app.session import SessionContext, require_user

router = APIRouter()


def _out(s: Survey) -> SurveyOut:
    return SurveyOut(id=s.id, name=s.name, date=s.date, admin_id=s.admin_id)


@router.get("")
@router.get("/")
def list_surveys(db: Session = Depends(get_db)) -> list[SurveyOut]:
    rows = db.query(Survey).order_by(Survey.id.asc()).all()
    return [_out(s) for s in rows]


@router.post("")
@router.post("/")
def create_survey(
    payload: SurveyIn,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_user),
) -> SurveyOut:
    try:
        admin = admin_for_user(db, ctx.user_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    obj = Survey(
        name=payload.name,
        date=payload.date or Date.today(),
        admin_id=admin.id,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return _out(obj)


@router.get("/{survey_id}")
def get_survey(survey_id: int, db: Session = Depends(get_db)) -> SurveyOut:
    s = db.get(Survey, survey_id)
    if not s:
        raise HTTPException(status_code=404, detail="survey not found")
    return _out(s)
