from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat

from analog.schemas.procedure import ProcedureBase


# Conditions as they appear in a backup: no `operators` / `options`,
# those are re-derived from the field registry on import.
class _ExportedCondition(BaseModel):
    # Older exports may still carry operators/options; they are ignored
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    field: str = Field(..., min_length=1)


class ExportedTextCondition(_ExportedCondition):
    tag: Literal["TEXT_CONDITION"] = Field("TEXT_CONDITION", alias="_tag")
    operator: Optional[str] = None
    value: str


class ExportedNumberCondition(_ExportedCondition):
    tag: Literal["NUMBER_CONDITION"] = Field("NUMBER_CONDITION", alias="_tag")
    operator: Optional[str] = None
    value: FiniteFloat


class ExportedBooleanCondition(_ExportedCondition):
    tag: Literal["BOOLEAN_CONDITION"] = Field("BOOLEAN_CONDITION", alias="_tag")
    value: bool


class ExportedEnumCondition(_ExportedCondition):
    tag: Literal["ENUM_CONDITION"] = Field("ENUM_CONDITION", alias="_tag")
    value: str


ExportedCondition = Annotated[
    Union[ExportedTextCondition, ExportedNumberCondition, ExportedBooleanCondition, ExportedEnumCondition],
    Field(discriminator="tag"),
]


class ExportedFilter(BaseModel):
    name: str = Field(..., min_length=1)
    goal: Optional[int] = Field(None, ge=0)
    conditions: List[ExportedCondition] = Field(..., min_length=1)


class BackupDocument(BaseModel):
    """
    The portable JSON document written by export and accepted by import.
    """
    filters: List[ExportedFilter]
    procedures: List[ProcedureBase]


class ImportSummary(BaseModel):
    filters_count: int
    procedures_count: int
    procedures_skipped: int
