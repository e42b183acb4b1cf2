# backend/app/models/layer.py
from sqlalchemy import Integer, String, Column, ForeignKey, DateTime, Table
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from .base import Base

layer_admins = Table(
    "layer_admins",
    Base.metadata,
    Column("layer_id", Integer, ForeignKey("layers.id", ondelete="CASCADE"), primary_key=True),
    Column("admin_id", Integer, ForeignKey("admins.id", ondelete="CASCADE"), primary_key=True),
)


class Layer(Base):
    __tablename__ = "layers"
    id = Column(Integer, primary_key=True)
    # 名前はURLのキー（/layers/{name}）にもなるため一意
    name = Column(String, nullable=False, unique=True)
    label_field = Column(String, nullable=True)
    dispatcher_id = Column(Integer, ForeignKey("admins.id"), nullable=False)
    default_survey_id = Column(Integer, ForeignKey("surveys.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    dispatcher = relationship("Admin")
    admins = relationship("Admin", secondary=layer_admins)
    default_survey = relationship("Survey")
    features = relationship(
        "Feature", back_populates="layer", cascade="all, delete-orphan", order_by="Feature.id"
    )
