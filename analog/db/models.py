import datetime
from typing import Any
from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

from analog.schemas.condition import BOOLEAN_CONDITION, ENUM_CONDITION, NUMBER_CONDITION, TEXT_CONDITION

class Base(DeclarativeBase):
    pass

class Procedure(Base):
    """
    A logged procedure. This is the record type filters match against.
    """
    __tablename__ = "procedures"
    __table_args__ = (
        CheckConstraint("asa_score BETWEEN 1 AND 6", name="ck_procedures_asa_score"),
    )

    case_number: Mapped[str] = mapped_column(String, primary_key=True)

    # Patient age is stored split; the virtual 'age' field combines both
    age_years: Mapped[int] = mapped_column(Integer)
    age_months: Mapped[int] = mapped_column(Integer, default=0)

    date: Mapped[datetime.date] = mapped_column(Date, index=True)
    asa_score: Mapped[int] = mapped_column(Integer)
    airway_management: Mapped[str] = mapped_column(String, index=True)
    department: Mapped[str] = mapped_column(String, index=True)
    department_other: Mapped[str | None] = mapped_column(String, nullable=True)
    specials: Mapped[str | None] = mapped_column(String, nullable=True)

    special_features: Mapped[bool] = mapped_column(Boolean, default=False)
    special_features_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    local_anesthetics: Mapped[bool] = mapped_column(Boolean, default=False)
    local_anesthetics_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    outpatient: Mapped[bool] = mapped_column(Boolean, default=False)
    emergency: Mapped[bool] = mapped_column(Boolean, default=False)
    favorite: Mapped[bool] = mapped_column(Boolean, default=False)

    procedure: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

class Filter(Base):
    """
    A named conjunction of conditions with an optional goal (target count).
    """
    __tablename__ = "filters"
    # Never reuse ids of deleted filters
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String)
    goal: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

class FilterCondition(Base):
    """
    One stored condition. `type` holds the condition tag and exactly one of
    the value_* columns is set, matching that tag.
    """
    __tablename__ = "filter_conditions"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Rows go away with their filter (store-level cascade)
    filter_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("filters.id", ondelete="CASCADE", onupdate="CASCADE"), index=True
    )

    type: Mapped[str] = mapped_column(String)
    field: Mapped[str] = mapped_column(String)
    operator: Mapped[str | None] = mapped_column(String, nullable=True)

    value_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    value_number: Mapped[float | None] = mapped_column(Float, nullable=True)
    value_boolean: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    value_enum: Mapped[str | None] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    @property
    def tag(self) -> str:
        return self.type

    @property
    def value(self) -> Any:
        if self.type == TEXT_CONDITION:
            return self.value_text
        if self.type == NUMBER_CONDITION:
            return self.value_number
        if self.type == BOOLEAN_CONDITION:
            return self.value_boolean
        if self.type == ENUM_CONDITION:
            return self.value_enum
        return None
