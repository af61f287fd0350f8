"""SQLAlchemy models for person records."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class PersonRecord(Base):
    __tablename__ = "people"
    __table_args__ = (
        CheckConstraint("sex IN ('male', 'female')", name="people_sex_check"),
        CheckConstraint("age >= 0", name="people_age_check"),
        CheckConstraint("length(nationality) = 2", name="people_nationality_check"),
    )

    person_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    surname: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    patronymic: Mapped[str] = mapped_column(Text, nullable=False, default="")
    nationality: Mapped[str] = mapped_column(String(2), nullable=False)
    sex: Mapped[str] = mapped_column(String(6), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
