# backend/app/models/survey_response.py
from sqlalchemy import Integer, Column, ForeignKey, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from .base import Base


class SurveyResponse(Base):
    __tablename__ = "survey_responses"
    id = Column(Integer, primary_key=True)
    assignment_id = Column(Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, unique=True)
    surveyor_id = Column(Integer, ForeignKey("surveyors.id", ondelete="CASCADE"), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    submitted_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    assignment = relationship("Assignment", back_populates="response")
