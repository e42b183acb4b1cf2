# backend/app/services/mapview/interaction.py
"""Map interaction state for the surveyor task map.

One instance per open map; events arrive one at a time from the UI.

    IDLE ──click feature──▶ POPUP_OPEN ──camera move / click empty──▶ IDLE
    IDLE ◀──toggle add point──▶ ADD_POINT_PENDING ──confirm / click──▶ IDLE (+ CreatePointRequest)

New points are placed at the current map center (crosshair), not where the
user clicked.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from app import config
from app.schemas.commons import LngLat, ViewState

# クリック対象になるレイヤ
INTERACTIVE_LAYER_IDS = ("todo", "done")


class Basemap(str, Enum):
    SATELLITE = "satellite"
    STREETS = "streets"
    OUTDOORS = "outdoors"
    DARK = "dark"

    @property
    def style_url(self) -> str:
        return "mapbox://styles/mapbox/" + _STYLES[self]


_STYLES = {
    Basemap.SATELLITE: "satellite-v9",
    Basemap.STREETS: "streets-v11",
    Basemap.OUTDOORS: "outdoors-v11",
    Basemap.DARK: "dark-v10",
}


class Mode(str, Enum):
    IDLE = "idle"
    POPUP_OPEN = "popup_open"
    ADD_POINT_PENDING = "add_point_pending"


@dataclass
class FeatureHit:
    layer_id: str
    assignment_id: int
    completed: bool


@dataclass
class Popup:
    assignment_id: int
    completed: bool
    at: LngLat


@dataclass
class CreatePointRequest:
    layer_id: int
    lng: float
    lat: float


@dataclass
class MapInteraction:
    layer_id: int
    center: LngLat = field(default_factory=lambda: LngLat(lng=config.MAP_CENTER_LNG, lat=config.MAP_CENTER_LAT))
    zoom: float = config.MAP_ZOOM
    basemap: Basemap = Basemap.STREETS
    mode: Mode = Mode.IDLE
    popup: Optional[Popup] = None

    @classmethod
    def restore(cls, layer_id: int, view_state: Optional[ViewState]) -> "MapInteraction":
        m = cls(layer_id=layer_id)
        if view_state is not None:
            m.center = LngLat(lng=view_state.longitude, lat=view_state.latitude)
            m.zoom = view_state.zoom
        return m

    @property
    def view_state(self) -> ViewState:
        return ViewState(longitude=self.center.lng, latitude=self.center.lat, zoom=self.zoom)

    @property
    def can_complete(self) -> bool:
        return self.popup is not None and not self.popup.completed

    def click(self, at: LngLat, hit: Optional[FeatureHit] = None) -> Optional[CreatePointRequest]:
        if hit is not None and hit.layer_id in INTERACTIVE_LAYER_IDS:
            self.popup = Popup(assignment_id=hit.assignment_id, completed=hit.completed, at=at)
            self.mode = Mode.POPUP_OPEN
            return None
        if self.mode == Mode.ADD_POINT_PENDING:
            return self.confirm_add_point()
        self._close_popup()
        return None

    def toggle_add_point(self) -> Mode:
        if self.mode == Mode.ADD_POINT_PENDING:
            self.mode = Mode.IDLE
        else:
            self.popup = None
            self.mode = Mode.ADD_POINT_PENDING
        return self.mode

    def camera_moved(self, center: LngLat, zoom: Optional[float] = None) -> None:
        # ポップアップは閉じるが追加モードは維持
        self.center = center
        if zoom is not None:
            self.zoom = zoom
        self._close_popup()

    def confirm_add_point(self) -> Optional[CreatePointRequest]:
        if self.mode != Mode.ADD_POINT_PENDING:
            return None
        self.mode = Mode.IDLE
        return CreatePointRequest(layer_id=self.layer_id, lng=self.center.lng, lat=self.center.lat)

    def select_basemap(self, basemap: Basemap) -> None:
        self.basemap = Basemap(basemap)

    def _close_popup(self) -> None:
        self.popup = None
        if self.mode == Mode.POPUP_OPEN:
            self.mode = Mode.IDLE


def render_sources(done_fc: dict, todo_fc: dict) -> list[dict]:
    return [
        {"id": "todo", "type": "geojson", "data": todo_fc},
        {"id": "done", "type": "geojson", "data": done_fc},
    ]


def basemap_styles() -> dict:
    return {b.value: b.style_url for b in Basemap}
