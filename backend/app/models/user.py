# backend/app/models/user.py
from sqlalchemy import Integer, String, Column, ForeignKey, Table
from sqlalchemy.orm import relationship
from .base import Base

# 調査員を管理する管理者（多対多）
surveyor_admins = Table(
    "surveyor_admins",
    Base.metadata,
    Column("surveyor_id", Integer, ForeignKey("surveyors.id", ondelete="CASCADE"), primary_key=True),
    Column("admin_id", Integer, ForeignKey("admins.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String, nullable=False, unique=True)
    first_name = Column(String, default="")
    last_name = Column(String, default="")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class Admin(Base):
    __tablename__ = "admins"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    user = relationship("User")


class Surveyor(Base):
    __tablename__ = "surveyors"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    user = relationship("User")
    admins = relationship("Admin", secondary=surveyor_admins)
    assignments = relationship("Assignment", back_populates="assignee")
