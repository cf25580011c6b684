from typing import Annotated, Any, ClassVar, FrozenSet, Literal, Optional, Protocol, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, field_serializer, field_validator, model_validator

from analog.core.errors import InvalidConditionValueError

# Condition kinds (the `_tag` discriminator)
TEXT_CONDITION = "TEXT_CONDITION"
NUMBER_CONDITION = "NUMBER_CONDITION"
BOOLEAN_CONDITION = "BOOLEAN_CONDITION"
ENUM_CONDITION = "ENUM_CONDITION"
CONDITION_TAGS = (TEXT_CONDITION, NUMBER_CONDITION, BOOLEAN_CONDITION, ENUM_CONDITION)

# Operators, in the order the field picker shows them
TEXT_OPERATORS: Tuple[str, ...] = ("eq", "ct")
NUMBER_OPERATORS: Tuple[str, ...] = ("eq", "gt", "gte", "lt", "lte")

# Spellings accepted from older clients
OPERATOR_ALIASES = {
    "contains": "ct",
    "equals": "eq",
    "greater_than": "gt",
    "less_than": "lt",
}


def normalize_operator(operator: Optional[str]) -> str:
    """
    Maps an unset operator to 'eq' and legacy spellings to their short form.
    """
    if operator is None:
        return "eq"
    return OPERATOR_ALIASES.get(operator, operator)


class ConditionLike(Protocol):
    """
    Anything the compiler and formatter can read: a Condition model or a
    stored filter_conditions row.
    """
    tag: str
    field: str
    operator: Optional[str]
    value: Any


class _ConditionBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    field: str

    @model_validator(mode="after")
    def _check_field(self):
        if not self.field or not self.field.strip():
            raise InvalidConditionValueError("Condition field must not be empty")
        return self


class _OperatorCondition(_ConditionBase):
    """
    Shared validation for conditions that carry an explicit operator.
    """
    # Subclasses set the full operator universe of their kind
    UNIVERSE: ClassVar[Tuple[str, ...]] = ()

    @field_validator("operator", mode="before", check_fields=False)
    @classmethod
    def _normalize_operator(cls, value):
        return normalize_operator(value)

    @field_validator("operators", mode="before", check_fields=False)
    @classmethod
    def _normalize_operators(cls, value):
        if value is None:
            return frozenset(cls.UNIVERSE)
        return frozenset(normalize_operator(op) for op in value)

    @model_validator(mode="after")
    def _check_operator(self):
        unknown = set(self.operators) - set(self.UNIVERSE)
        if unknown:
            raise InvalidConditionValueError(
                f"Operators {sorted(unknown)} are not valid for {self.tag}", field=self.field
            )
        if self.operator not in self.operators:
            raise InvalidConditionValueError(
                f"Operator '{self.operator}' is not allowed for field '{self.field}'", field=self.field
            )
        return self

    @field_serializer("operators", check_fields=False)
    def _serialize_operators(self, operators: FrozenSet[str]):
        return [op for op in self.UNIVERSE if op in operators]


class TextCondition(_OperatorCondition):
    UNIVERSE: ClassVar[Tuple[str, ...]] = TEXT_OPERATORS

    tag: Literal["TEXT_CONDITION"] = Field(TEXT_CONDITION, alias="_tag")
    operators: FrozenSet[str] = frozenset(TEXT_OPERATORS)
    operator: str = "eq"
    value: str


class NumberCondition(_OperatorCondition):
    UNIVERSE: ClassVar[Tuple[str, ...]] = NUMBER_OPERATORS

    tag: Literal["NUMBER_CONDITION"] = Field(NUMBER_CONDITION, alias="_tag")
    operators: FrozenSet[str] = frozenset(NUMBER_OPERATORS)
    operator: str = "eq"
    value: FiniteFloat


class BooleanCondition(_ConditionBase):
    tag: Literal["BOOLEAN_CONDITION"] = Field(BOOLEAN_CONDITION, alias="_tag")
    value: bool

    @property
    def operator(self) -> str:
        return "eq"


class EnumCondition(_ConditionBase):
    tag: Literal["ENUM_CONDITION"] = Field(ENUM_CONDITION, alias="_tag")
    options: Tuple[str, ...]
    value: str

    @property
    def operator(self) -> str:
        return "eq"

    @model_validator(mode="after")
    def _check_value(self):
        if not self.options:
            raise InvalidConditionValueError(
                f"Enum field '{self.field}' needs at least one option", field=self.field
            )
        if self.value not in self.options:
            raise InvalidConditionValueError(
                f"'{self.value}' is not an option of field '{self.field}'", field=self.field
            )
        return self


Condition = Annotated[
    Union[TextCondition, NumberCondition, BooleanCondition, EnumCondition],
    Field(discriminator="tag"),
]
