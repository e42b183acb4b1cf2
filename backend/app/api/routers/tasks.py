from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.errors import InvalidTransition, NotFound
from app.schemas.assignment import AssignmentOut, CompleteIn
from app.schemas.commons import ViewState
from app.services.assignments.state import (
    assigned_features,
    complete_assignment,
    partition_assignments,
    surveyor_for_user,
)
from app.services.layers.queries import get_layer
from app.services.mapview.interaction import (
    INTERACTIVE_LAYER_IDS,
    MapInteraction,
    basemap_styles,
    render_sources,
)
from app.session import SessionContext, require_user

router = APIRouter()


# 地図位置はセッションに保存し、調査完了後の復帰時に戻す
@router.put("/view-state")
def put_view_state(payload: ViewState, request: Request, ctx: SessionContext = Depends(require_user)):
    ctx.view_state = payload
    ctx.save(request.session)
    return {"ok": True}


@router.get("/{name}")
def get_task_map(name: str, db: Session = Depends(get_db), ctx: SessionContext = Depends(require_user)):
    try:
        layer = get_layer(db, name)
        surveyor = surveyor_for_user(db, ctx.user_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    done, todo = partition_assignments(assigned_features(db, layer, surveyor))
    view = MapInteraction.restore(layer.id, ctx.view_state)
    return {
        "layer": {"id": layer.id, "name": layer.name, "labelField": layer.label_field},
        "todo": todo,
        "done": done,
        "sources": render_sources(done, todo),
        "interactiveLayerIds": list(INTERACTIVE_LAYER_IDS),
        "viewState": view.view_state.model_dump(),
        "basemap": view.basemap.value,
        "basemaps": basemap_styles(),
    }


@router.post("/{name}/assignments/{assignment_id}/complete")
def post_complete(
    name: str,
    assignment_id: int,
    payload: CompleteIn,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_user),
) -> AssignmentOut:
    try:
        layer = get_layer(db, name)
        surveyor = surveyor_for_user(db, ctx.user_id)
        a = complete_assignment(db, assignment_id, surveyor, payload.payload, layer=layer)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return AssignmentOut(
        id=a.id,
        feature_id=a.feature_id,
        assignee_id=a.assignee_id,
        survey_id=a.survey_id,
        completed=a.completed,
        completed_at=a.completed_at,
        coordinates=a.coordinates,
    )
