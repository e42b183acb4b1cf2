# backend/app/models/feature.py
from sqlalchemy import Integer, String, Column, ForeignKey, JSON
from sqlalchemy.orm import relationship
from .base import Base


class Feature(Base):
    __tablename__ = "features"
    id = Column(Integer, primary_key=True)
    layer_id = Column(Integer, ForeignKey("layers.id", ondelete="CASCADE"), nullable=False)
    geojson = Column(JSON, nullable=False)  # GeoJSON Feature (geometry + properties, EPSG:4326)
    # 取込時に properties[label_field] から決定（以後再計算しない）
    label = Column(String, nullable=True)

    layer = relationship("Layer", back_populates="features")
    assignment = relationship(
        "Assignment", back_populates="feature", uselist=False, cascade="all, delete-orphan"
    )
