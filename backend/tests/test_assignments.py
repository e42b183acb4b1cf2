"""Assignment lifecycle: bulk assign, field-added points, completion, partitioning."""
from __future__ import annotations

import json

import pytest
from sqlalchemy.exc import IntegrityError

from app.db import SessionLocal
from app.errors import InvalidTransition, NotFound
from app.models.assignment import Assignment
from app.models.feature import Feature
from app.models.survey_response import SurveyResponse
from app.schemas.layer import LayerCreate
from app.services.assignments.state import (
    AssignmentState,
    add_field_point,
    assign_features,
    assigned_features,
    complete_assignment,
    partition_assignments,
    state_of,
    surveyor_progress,
)
from app.services.layers.create import create_layer
from app.session import SessionContext
from conftest import point_feature


@pytest.fixture
def layer(db, admin_user):
    text = json.dumps([
        {"geojson": point_feature(-122.40, 37.80, name="A")},
        {"geojson": point_feature(-122.41, 37.81, name="B")},
        {"geojson": point_feature(-122.42, 37.82, name="C")},
    ])
    return create_layer(db, LayerCreate(features=text, name="Hydrants", label_field="name"), SessionContext(user_id=admin_user.id))


class TestLifecycle:

    def test_unassigned_to_completed(self, db, layer, make_surveyor):
        s = make_surveyor("sam@example.org")
        feat = layer.features[0]
        assert state_of(feat) is AssignmentState.UNASSIGNED

        (a,) = assign_features(db, layer, s, [feat.id])
        db.refresh(feat)
        assert state_of(feat) is AssignmentState.ASSIGNED
        assert a.completed is False

        done = complete_assignment(db, a.id, s, {"pressure": "ok"})
        db.refresh(feat)
        assert state_of(feat) is AssignmentState.COMPLETED
        assert done.completed_at is not None
        assert db.query(SurveyResponse).one().payload == {"pressure": "ok"}

    def test_complete_only_once(self, db, layer, make_surveyor):
        s = make_surveyor("sam@example.org")
        (a,) = assign_features(db, layer, s, [layer.features[0].id])
        complete_assignment(db, a.id, s)
        with pytest.raises(InvalidTransition):
            complete_assignment(db, a.id, s)
        assert db.get(Assignment, a.id).completed is True

    def test_racing_completion_rolls_back(self, db, layer, make_surveyor, monkeypatch):
        s = make_surveyor("sam@example.org")
        (a,) = assign_features(db, layer, s, [layer.features[0].id])
        assignment_id, surveyor_id = a.id, s.id
        real_commit = db.commit

        def racing_commit():
            # 別の端末が同じ割り当てを先に完了させる
            other = SessionLocal()
            try:
                other.add(SurveyResponse(assignment_id=assignment_id, surveyor_id=surveyor_id, payload={}))
                other.commit()
            finally:
                other.close()
            real_commit()

        monkeypatch.setattr(db, "commit", racing_commit)
        with pytest.raises(IntegrityError):
            complete_assignment(db, assignment_id, s, {"pressure": "low"})
        monkeypatch.undo()

        assert db.get(Assignment, assignment_id).completed is False
        assert db.query(SurveyResponse).count() == 1

    def test_only_assignee_completes(self, db, layer, make_surveyor):
        s1 = make_surveyor("one@example.org")
        s2 = make_surveyor("two@example.org")
        (a,) = assign_features(db, layer, s1, [layer.features[0].id])
        with pytest.raises(InvalidTransition):
            complete_assignment(db, a.id, s2)
        assert db.get(Assignment, a.id).completed is False

    def test_assign_twice_rejected(self, db, layer, make_surveyor):
        s = make_surveyor("sam@example.org")
        ids = [f.id for f in layer.features]
        assign_features(db, layer, s, ids[:1])
        with pytest.raises(InvalidTransition):
            assign_features(db, layer, s, ids)
        assert db.query(Assignment).count() == 1

    def test_assign_foreign_feature(self, db, layer, make_surveyor):
        s = make_surveyor("sam@example.org")
        with pytest.raises(NotFound):
            assign_features(db, layer, s, [9999])


class TestFieldPoint:

    def test_point_at_center(self, db, layer, make_surveyor):
        s = make_surveyor("sam@example.org")
        before = db.query(Feature).count()
        a = add_field_point(db, layer, s, -122.4, 37.8)

        assert db.query(Feature).count() == before + 1
        assert a.completed is False
        assert a.assignee_id == s.id
        assert a.feature.layer_id == layer.id
        assert a.feature.geojson["geometry"] == {"type": "Point", "coordinates": [-122.4, 37.8]}
        assert a.coordinates == {"lng": -122.4, "lat": 37.8}

    def test_uses_layer_default_survey(self, db, admin_user, make_surveyor):
        from app.models.survey import Survey
        import datetime

        survey = Survey(name="Check", date=datetime.date(2024, 1, 1))
        db.add(survey)
        db.commit()
        layer = create_layer(db, LayerCreate(name="Empty", survey_id=survey.id), SessionContext(user_id=admin_user.id))
        a = add_field_point(db, layer, make_surveyor("sam@example.org"), 1.0, 2.0)
        assert a.survey_id == survey.id


class TestPartition:

    def test_split_by_completion(self, db, layer, make_surveyor):
        s = make_surveyor("sam@example.org")
        other = make_surveyor("other@example.org")
        fa, fb, fc = layer.features
        a, b = assign_features(db, layer, s, [fa.id, fb.id])
        assign_features(db, layer, other, [fc.id])
        complete_assignment(db, a.id, s)

        done, todo = partition_assignments(assigned_features(db, layer, s))
        assert [f["properties"]["assignmentId"] for f in done["features"]] == [a.id]
        assert [f["properties"]["assignmentId"] for f in todo["features"]] == [b.id]
        assert done["features"][0]["properties"]["completed"] is True
        assert todo["features"][0]["properties"]["name"] == "B"
        assert todo["features"][0]["id"] == fb.id

    def test_progress_table(self, db, layer, admin_user, make_surveyor):
        from app.models.user import Admin

        admin = db.query(Admin).filter(Admin.user_id == admin_user.id).one()
        s = make_surveyor("sam@example.org", first_name="Sam", admins=[admin])
        make_surveyor("loose@example.org")
        a, _ = assign_features(db, layer, s, [layer.features[0].id, layer.features[1].id])
        complete_assignment(db, a.id, s)

        rows = surveyor_progress(db, admin)
        assert rows == [{
            "id": s.id,
            "name": "Sam Field",
            "email": "sam@example.org",
            "admins": ["Dana Dispatch"],
            "completed": 1,
            "total": 2,
        }]
        assert len(surveyor_progress(db)) == 2
