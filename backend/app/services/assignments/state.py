# backend/app/services/assignments/state.py
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from loguru import logger
from shapely.geometry import Point, mapping
from sqlalchemy.orm import Session, joinedload

from app.errors import InvalidTransition, NotFound
from app.models.assignment import Assignment
from app.models.feature import Feature
from app.models.layer import Layer
from app.models.survey import Survey
from app.models.survey_response import SurveyResponse
from app.models.user import Admin, Surveyor


class AssignmentState(str, Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    COMPLETED = "completed"


def state_of(feature: Feature) -> AssignmentState:
    a = feature.assignment
    if a is None:
        return AssignmentState.UNASSIGNED
    return AssignmentState.COMPLETED if a.completed else AssignmentState.ASSIGNED


def get_surveyor(db: Session, surveyor_id: int) -> Surveyor:
    s = db.get(Surveyor, surveyor_id) if surveyor_id is not None else None
    if s is None:
        raise NotFound(f"surveyor {surveyor_id} not found")
    return s


def surveyor_for_user(db: Session, user_id: int) -> Surveyor:
    s = db.query(Surveyor).filter(Surveyor.user_id == user_id).one_or_none()
    if s is None:
        raise NotFound(f"user {user_id} is not a surveyor")
    return s


def _survey_id(db: Session, layer: Layer, survey_id: Optional[int]) -> Optional[int]:
    # 指定が無ければレイヤ既定の調査票
    if survey_id is None:
        return layer.default_survey_id
    if db.get(Survey, survey_id) is None:
        raise NotFound(f"survey {survey_id} not found")
    return survey_id


def assign_features(
    db: Session,
    layer: Layer,
    surveyor: Surveyor,
    feature_ids: Sequence[int],
    survey_id: Optional[int] = None,
) -> List[Assignment]:
    sid = _survey_id(db, layer, survey_id)
    feats = (
        db.query(Feature)
        .filter(Feature.id.in_(list(feature_ids)), Feature.layer_id == layer.id)
        .order_by(Feature.id.asc())
        .all()
    )
    found = {f.id for f in feats}
    missing = [fid for fid in feature_ids if fid not in found]
    if missing:
        raise NotFound(f"features not in layer {layer.name!r}: {missing}")

    taken = [f.id for f in feats if f.assignment is not None]
    if taken:
        raise InvalidTransition(f"features already assigned: {taken}")

    created = []
    for f in feats:
        a = Assignment(feature=f, assignee=surveyor, survey_id=sid, completed=False)
        db.add(a)
        created.append(a)
    db.commit()
    logger.info("assigned {} features of {!r} to surveyor {}", len(created), layer.name, surveyor.id)
    return created


def add_field_point(
    db: Session,
    layer: Layer,
    surveyor: Surveyor,
    lng: float,
    lat: float,
    survey_id: Optional[int] = None,
) -> Assignment:
    sid = _survey_id(db, layer, survey_id)
    geometry = mapping(Point(lng, lat))
    feature = Feature(
        layer=layer,
        geojson={
            "type": "Feature",
            "geometry": {"type": geometry["type"], "coordinates": list(geometry["coordinates"])},
            "properties": {},
        },
        label=None,
    )
    assignment = Assignment(
        feature=feature,
        assignee=surveyor,
        survey_id=sid,
        completed=False,
        coordinates={"lng": lng, "lat": lat},
    )
    db.add_all([feature, assignment])
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(assignment)
    logger.info("surveyor {} added point ({}, {}) to layer {!r}", surveyor.id, lng, lat, layer.name)
    return assignment


def complete_assignment(
    db: Session,
    assignment_id: int,
    surveyor: Surveyor,
    payload: Optional[dict] = None,
    layer: Optional[Layer] = None,
) -> Assignment:
    """Assigned → Completed. Only the assignee, only once."""
    a = db.get(Assignment, assignment_id)
    if a is None or (layer is not None and a.feature.layer_id != layer.id):
        raise NotFound(f"assignment {assignment_id} not found")
    if a.assignee_id != surveyor.id:
        raise InvalidTransition(f"assignment {assignment_id} belongs to another surveyor")
    if a.completed:
        raise InvalidTransition(f"assignment {assignment_id} is already completed")

    a.completed = True
    a.completed_at = datetime.now(timezone.utc)
    a.response = SurveyResponse(surveyor_id=surveyor.id, payload=payload or {})
    db.add(a)
    try:
        db.commit()
    except Exception:
        # 同時完了は survey_responses.assignment_id の一意制約で片方が落ちる
        db.rollback()
        raise
    db.refresh(a)
    logger.info("assignment {} completed by surveyor {}", a.id, surveyor.id)
    return a


def assigned_features(db: Session, layer: Layer, surveyor: Surveyor) -> List[Feature]:
    return (
        db.query(Feature)
        .join(Assignment, Assignment.feature_id == Feature.id)
        .options(joinedload(Feature.assignment))
        .filter(Feature.layer_id == layer.id, Assignment.assignee_id == surveyor.id)
        .order_by(Feature.id.asc())
        .all()
    )


def _to_map_feature(f: Feature) -> dict:
    a = f.assignment
    geojson = f.geojson or {}
    return {
        "type": "Feature",
        "id": f.id,
        "geometry": geojson.get("geometry"),
        "properties": {
            **(geojson.get("properties") or {}),
            "surveyId": a.survey_id,
            "assignmentId": a.id,
            "completed": bool(a.completed),
        },
    }


def partition_assignments(features: Iterable[Feature]) -> Tuple[dict, dict]:
    done, todo = [], []
    for f in features:
        if f.assignment is None:
            continue
        (done if f.assignment.completed else todo).append(_to_map_feature(f))
    return (
        {"type": "FeatureCollection", "features": done},
        {"type": "FeatureCollection", "features": todo},
    )


def surveyor_progress(db: Session, admin: Optional[Admin] = None) -> List[dict]:
    q = db.query(Surveyor).options(joinedload(Surveyor.user), joinedload(Surveyor.assignments))
    if admin is not None:
        q = q.filter(Surveyor.admins.any(Admin.id == admin.id))
    rows = []
    for s in q.order_by(Surveyor.id.asc()).all():
        rows.append({
            "id": s.id,
            "name": s.user.full_name,
            "email": s.user.email,
            "admins": [a.user.full_name or a.user.email for a in s.admins],
            "completed": sum(1 for a in s.assignments if a.completed),
            "total": len(s.assignments),
        })
    return rows
