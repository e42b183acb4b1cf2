# backend/app/models/assignment.py
from sqlalchemy import Integer, Column, ForeignKey, Boolean, DateTime, JSON
from sqlalchemy.orm import relationship
from .base import Base


class Assignment(Base):
    __tablename__ = "assignments"
    id = Column(Integer, primary_key=True)
    # Feature と 1:1
    feature_id = Column(Integer, ForeignKey("features.id", ondelete="CASCADE"), nullable=False, unique=True)
    assignee_id = Column(Integer, ForeignKey("surveyors.id", ondelete="CASCADE"), nullable=False)
    survey_id = Column(Integer, ForeignKey("surveys.id", ondelete="SET NULL"), nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)
    coordinates = Column(JSON, nullable=True)  # {"lng":...,"lat":...} 現地追加ポイントのみ

    feature = relationship("Feature", back_populates="assignment")
    assignee = relationship("Surveyor", back_populates="assignments")
    response = relationship(
        "SurveyResponse", back_populates="assignment", uselist=False, cascade="all, delete-orphan"
    )
