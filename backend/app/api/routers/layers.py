from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from typing import Optional
from urllib.parse import quote

from app.db import get_db
from app.errors import DuplicateName, InvalidTransition, MalformedInput, NotFound
from app.schemas.assignment import AssignIn, AssignmentOut, PointCreateIn
from app.schemas.layer import LayerCreate, LayerDetail, LayerSummary
from app.services.assignments.state import (
    add_field_point,
    assign_features,
    get_surveyor,
    surveyor_for_user,
)
from app.services.layers.create import create_layer
from app.services.layers.queries import get_layer, layer_detail, list_layers
from app.session import SessionContext, require_user

router = APIRouter()


def _optional_int(value: Optional[str]) -> Optional[int]:
    # 未選択の <select> は空文字やプレースホルダ文字列を送ってくる
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _assignment_out(a) -> AssignmentOut:
    return AssignmentOut(
        id=a.id,
        feature_id=a.feature_id,
        assignee_id=a.assignee_id,
        survey_id=a.survey_id,
        completed=a.completed,
        completed_at=a.completed_at,
        coordinates=a.coordinates,
    )


@router.get("")
@router.get("/")
def get_layers(db: Session = Depends(get_db)) -> list[LayerSummary]:
    return list_layers(db)


@router.post("")
@router.post("/")
def post_layer(
    request: Request,
    name: str = Form(...),
    features: str = Form(""),
    field: str = Form(""),
    surveyId: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_user),
):
    payload = LayerCreate(features=features, name=name, label_field=field, survey_id=_optional_int(surveyId))
    try:
        layer = create_layer(db, payload, ctx)
    except DuplicateName as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MalformedInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    ctx.save(request.session)
    return RedirectResponse(url=f"/layers/{quote(layer.name, safe='')}", status_code=303)


@router.get("/{name}")
def get_layer_detail(name: str, db: Session = Depends(get_db)) -> LayerDetail:
    try:
        layer = get_layer(db, name)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return layer_detail(db, layer)


@router.post("/{name}/assignments")
def post_assignments(
    name: str,
    payload: AssignIn,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_user),
) -> list[AssignmentOut]:
    try:
        layer = get_layer(db, name)
        surveyor = get_surveyor(db, payload.surveyor_id)
        created = assign_features(db, layer, surveyor, payload.feature_ids, payload.survey_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return [_assignment_out(a) for a in created]


@router.post("/{name}/features")
def post_field_point(
    name: str,
    payload: PointCreateIn,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_user),
) -> AssignmentOut:
    try:
        layer = get_layer(db, name)
        surveyor = surveyor_for_user(db, ctx.user_id)
        a = add_field_point(db, layer, surveyor, payload.lng, payload.lat, payload.surveyId)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _assignment_out(a)
