# backend/app/services/layers/create.py
from __future__ import annotations

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import DuplicateName, NotFound
from app.models.feature import Feature
from app.models.layer import Layer
from app.models.survey import Survey
from app.models.user import Admin, User
from app.schemas.layer import LayerCreate
from app.services.normalize.features import derive_label, parse_features_text
from app.session import SessionContext


def admin_for_user(db: Session, user_id: int) -> Admin:
    user = db.get(User, user_id) if user_id is not None else None
    if user is None:
        raise NotFound(f"user {user_id} not found")
    admin = db.query(Admin).filter(Admin.user_id == user_id).one_or_none()
    if admin is None:
        admin = Admin(user_id=user_id)
        db.add(admin)
        db.flush()
    return admin


def create_layer(db: Session, payload: LayerCreate, ctx: SessionContext) -> Layer:
    # 解析は書き込み前。features が空文字ならフィーチャ無しのレイヤ
    features_text = payload.features or ""
    records = parse_features_text(features_text) if features_text.strip() else []

    if db.query(Layer.id).filter(Layer.name == payload.name).first() is not None:
        raise DuplicateName(payload.name)

    survey = None
    if payload.survey_id is not None:
        survey = db.get(Survey, payload.survey_id)
        if survey is None:
            raise NotFound(f"survey {payload.survey_id} not found")

    try:
        owner = admin_for_user(db, ctx.user_id)
        layer = Layer(
            name=payload.name,
            label_field=payload.label_field or None,
            dispatcher=owner,
            admins=[owner],
            default_survey=survey,
        )

        missing = 0
        for rec in records:
            geojson = rec["geojson"]
            label = derive_label(geojson, payload.label_field) if payload.label_field else None
            if label is None:
                missing += 1
            layer.features.append(Feature(geojson=geojson, label=label))

        db.add(layer)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # 同名レイヤの同時作成は DB の一意制約で後勝ちが失敗する
        if db.query(Layer.id).filter(Layer.name == payload.name).first() is not None:
            raise DuplicateName(payload.name) from e
        raise
    except Exception:
        db.rollback()
        raise

    if records and missing:
        logger.warning(
            "layer {!r}: {} of {} features have no {!r} property; labels left empty",
            payload.name, missing, len(records), payload.label_field,
        )
    db.refresh(layer)
    ctx.task = layer.name
    logger.info("created layer {!r} with {} features", layer.name, len(records))
    return layer
