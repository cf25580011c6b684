import datetime
from typing import Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Department = Literal[
    "TC", "NC", "AC", "GC", "HNO", "HG", "DE", "PC",
    "UC", "URO", "GYN", "MKG", "RAD", "NRAD", "PSY", "other",
]
AirwayManagement = Literal[
    "tube", "lama", "tracheostomy", "mask", "spontaneous", "cricothyrotomy", "doppel-lumen-tube",
]
Special = Literal[
    "outpatient",
    "analgosedation",
    "emergency",
    "difficult-airway",
    "rapid-sequence-induction",
    "arterial-line",
    "central-venous-catheter",
]

DEPARTMENT_OPTIONS = get_args(Department)
AIRWAY_OPTIONS = get_args(AirwayManagement)
SPECIALS_OPTIONS = get_args(Special)


class ProcedureBase(BaseModel):
    """
    One logged procedure. Serialized with camelCase keys, which is also the
    shape of the `procedures` array in backup documents.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )

    case_number: str = Field(..., min_length=1)
    age_years: int = Field(..., ge=0)
    age_months: int = Field(0, ge=0)
    date: datetime.date
    asa_score: int = Field(..., ge=1, le=6)
    airway_management: AirwayManagement
    department: Department
    department_other: Optional[str] = None
    specials: Optional[Special] = None
    special_features: bool = False
    special_features_text: Optional[str] = None
    local_anesthetics: bool = False
    local_anesthetics_text: Optional[str] = None
    outpatient: bool = False
    emergency: bool = False
    favorite: bool = False
    procedure: str


class ProcedureCreate(ProcedureBase):
    model_config = ConfigDict(extra="forbid")


class ProcedureUpdate(BaseModel):
    """
    Partial patch. The case number is the primary key and cannot change.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    age_years: Optional[int] = Field(None, ge=0)
    age_months: Optional[int] = Field(None, ge=0)
    date: Optional[datetime.date] = None
    asa_score: Optional[int] = Field(None, ge=1, le=6)
    airway_management: Optional[AirwayManagement] = None
    department: Optional[Department] = None
    department_other: Optional[str] = None
    specials: Optional[Special] = None
    special_features: Optional[bool] = None
    special_features_text: Optional[str] = None
    local_anesthetics: Optional[bool] = None
    local_anesthetics_text: Optional[str] = None
    outpatient: Optional[bool] = None
    emergency: Optional[bool] = None
    favorite: Optional[bool] = None
    procedure: Optional[str] = None

    # Omitting a field leaves it unchanged; null is only valid for nullable columns
    @field_validator(
        "age_years", "age_months", "date", "asa_score", "airway_management", "department",
        "special_features", "local_anesthetics", "outpatient", "emergency", "favorite", "procedure",
    )
    @classmethod
    def _reject_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class ProcedureRead(ProcedureBase):
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None
