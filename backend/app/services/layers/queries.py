# backend/app/services/layers/queries.py
from __future__ import annotations

from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.errors import NotFound
from app.models.assignment import Assignment
from app.models.feature import Feature
from app.models.layer import Layer
from app.schemas.layer import FeatureOut, LayerDetail, LayerSummary
from app.services.assignments.state import state_of


def get_layer(db: Session, name: str) -> Layer:
    layer = db.query(Layer).filter(Layer.name == name).one_or_none()
    if layer is None:
        raise NotFound(f"layer {name!r} not found")
    return layer


def _counts(db: Session, layer_id: int):
    feats = db.query(func.count(Feature.id)).filter(Feature.layer_id == layer_id).scalar() or 0
    q = db.query(Assignment).join(Feature, Assignment.feature_id == Feature.id).filter(Feature.layer_id == layer_id)
    assigned = q.count()
    completed = q.filter(Assignment.completed.is_(True)).count()
    return feats, assigned, completed


def summarize(db: Session, layer: Layer) -> LayerSummary:
    feats, assigned, completed = _counts(db, layer.id)
    return LayerSummary(
        id=layer.id,
        name=layer.name,
        label_field=layer.label_field,
        default_survey_id=layer.default_survey_id,
        created_at=layer.created_at,
        features_count=feats,
        assigned_count=assigned,
        completed_count=completed,
    )


def list_layers(db: Session) -> List[LayerSummary]:
    rows = db.query(Layer).order_by(Layer.id.asc()).all()
    return [summarize(db, layer) for layer in rows]


def layer_detail(db: Session, layer: Layer) -> LayerDetail:
    summary = summarize(db, layer)
    features = []
    for f in layer.features:
        a = f.assignment
        features.append(FeatureOut(
            id=f.id,
            label=f.label,
            geojson=f.geojson,
            assignment_id=a.id if a else None,
            assignee_id=a.assignee_id if a else None,
            completed=bool(a and a.completed),
            state=state_of(f).value,
        ))
    return LayerDetail(**summary.model_dump(), features=features)
