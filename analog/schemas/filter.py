from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from analog.schemas.condition import Condition


# 1. Input Schemas (Client -> API)
class FilterFields(BaseModel):
    """
    The scalar part of a filter; replaced as a whole on edit.
    """
    name: str = Field(..., min_length=1, description="Display name, e.g. 'Emergencies'")
    goal: Optional[int] = Field(None, ge=0, description="Target number of matching procedures")

    model_config = ConfigDict(str_strip_whitespace=True)


class FilterCreate(FilterFields):
    conditions: List[Condition] = Field(..., min_length=1, description="All must match")

    model_config = ConfigDict(extra="forbid")


# Edits are a full replace of name, goal and conditions
FilterUpdate = FilterCreate


# 2. Output Schemas (API -> Client)
class FilterCreated(BaseModel):
    id: int


class FilterRead(FilterFields):
    id: int
    conditions: List[Condition]
    summary: str
    created_at: datetime
    updated_at: datetime


class FilterOverview(BaseModel):
    id: int
    name: str
    goal: Optional[int] = None
    summary: str
    match_count: int


class FilterMatchCount(BaseModel):
    filter_id: int
    count: int
    goal: Optional[int] = None


class FieldEntry(BaseModel):
    field: str
    kind: str
    operators: List[str]
    options: Optional[List[str]] = None
    virtual: bool
    label: str
    default_condition: Condition
