# backend/app/session.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

from app.schemas.commons import ViewState


@dataclass
class SessionContext:
    """Cookie-backed session values handed explicitly to the pipelines."""

    user_id: Optional[int] = None
    task: Optional[str] = None
    view_state: Optional[ViewState] = None

    @classmethod
    def from_session(cls, session: dict) -> "SessionContext":
        raw_view = session.get("view_state")
        return cls(
            user_id=session.get("user_id"),
            task=session.get("task"),
            view_state=ViewState(**raw_view) if raw_view else None,
        )

    def save(self, session: dict) -> None:
        for key, value in (
            ("user_id", self.user_id),
            ("task", self.task),
            ("view_state", self.view_state.model_dump() if self.view_state else None),
        ):
            if value is None:
                session.pop(key, None)
            else:
                session[key] = value


def get_session_context(request: Request) -> SessionContext:
    return SessionContext.from_session(request.session)


def require_user(request: Request) -> SessionContext:
    ctx = get_session_context(request)
    if ctx.user_id is None:
        raise HTTPException(status_code=401, detail="login required")
    return ctx
