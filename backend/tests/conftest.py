"""Shared fixtures: a throwaway SQLite database and upload dir per test session.

Environment variables are set before ``app`` is imported so ``app.config``
and ``app.db`` pick them up.
"""
from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="field-survey-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ["SESSION_SECRET"] = "test-secret"

import pytest
import shapefile  # pyshp
from fastapi.testclient import TestClient
from pyproj import CRS

from app.db import SessionLocal, engine, init_db
from app.main import app
from app.models.base import Base
from app.models.user import Admin, Surveyor, User


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def admin_user(db) -> User:
    user = User(email="dispatch@example.org", first_name="Dana", last_name="Dispatch")
    db.add(user)
    db.flush()
    db.add(Admin(user_id=user.id))
    db.commit()
    return user


@pytest.fixture
def make_surveyor(db):
    def _make(email: str, first_name: str = "", admins=()) -> Surveyor:
        user = User(email=email, first_name=first_name, last_name="Field")
        db.add(user)
        db.flush()
        s = Surveyor(user_id=user.id, admins=list(admins))
        db.add(s)
        db.commit()
        return s
    return _make


def login(client: TestClient, email: str) -> None:
    res = client.post("/auth/login", json={"email": email})
    assert res.status_code == 200, res.text


def point_feature(lng: float, lat: float, **properties) -> dict:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
        "properties": properties,
    }


KML = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
    <name>Hydrants</name>
    <Placemark>
      <name>H-1</name>
      <description>corner</description>
      <ExtendedData>
        <Data name="status"><value>active</value></Data>
        <SchemaData><SimpleData name="district">7</SimpleData></SchemaData>
      </ExtendedData>
      <Point><coordinates>-122.41,37.77,0</coordinates></Point>
    </Placemark>
    <Placemark>
      <name>Route</name>
      <LineString><coordinates>-122.4,37.7 -122.5,37.8</coordinates></LineString>
    </Placemark>
    <Placemark>
      <name>Block</name>
      <Polygon>
        <outerBoundaryIs><LinearRing><coordinates>0,0 4,0 4,4 0,4 0,0</coordinates></LinearRing></outerBoundaryIs>
        <innerBoundaryIs><LinearRing><coordinates>1,1 2,1 2,2 1,1</coordinates></LinearRing></innerBoundaryIs>
      </Polygon>
    </Placemark>
    <Placemark><name>no geometry</name></Placemark>
  </Document>
</kml>
"""


def write_points_shapefile(base: Path, rows, prj_epsg: int | None = 4326) -> Path:
    w = shapefile.Writer(str(base), shapeType=shapefile.POINT)
    w.field("name", "C", 50, 0)
    w.field("note", "C", 254, 0)
    w.field("count", "N", 10, 0)
    for (x, y), name, note, count in rows:
        w.point(x, y)
        w.record(name, note, count)
    w.close()
    if prj_epsg is not None:
        base.with_suffix(".prj").write_text(CRS.from_epsg(prj_epsg).to_wkt())
    return base.with_suffix(".shp")
