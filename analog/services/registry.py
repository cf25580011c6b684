"""
Static catalog of filterable procedure fields.

Every condition a user can build names one of these fields. A descriptor
says which condition kind the field takes, which operators are legal, the
enum options, and how the field reaches the store: either a plain column on
`procedures` or, for virtual fields, a compile hook that builds the SQL
expression itself.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable, Optional, Tuple

from sqlalchemy import ColumnElement

from analog.core.errors import InvalidConditionValueError, UnknownFieldError
from analog.db.models import Procedure
from analog.schemas.condition import (
    BOOLEAN_CONDITION,
    ENUM_CONDITION,
    NUMBER_CONDITION,
    NUMBER_OPERATORS,
    TEXT_CONDITION,
    TEXT_OPERATORS,
    BooleanCondition,
    Condition,
    ConditionLike,
    EnumCondition,
    NumberCondition,
    TextCondition,
)
from analog.schemas.procedure import AIRWAY_OPTIONS, DEPARTMENT_OPTIONS, SPECIALS_OPTIONS
from analog.services.labels import LabelLookup, format_number


@dataclass(frozen=True)
class FieldContext:
    """
    Runtime parameters the hooks of virtual fields depend on.
    """
    age_threshold_years: float = 5.0


CompileHook = Callable[[ConditionLike, FieldContext], ColumnElement[bool]]
FormatHook = Callable[[ConditionLike, LabelLookup, FieldContext], str]


@dataclass(frozen=True)
class FieldDescriptor:
    field: str
    kind: str
    column: Optional[str] = None
    allowed_operators: Tuple[str, ...] = ()
    enum_options: Optional[Tuple[str, ...]] = None
    # Label namespace used to render enum values
    value_namespace: Optional[str] = None
    default_value: Any = None
    compile_hook: Optional[CompileHook] = None
    format_hook: Optional[FormatHook] = None

    @property
    def is_virtual(self) -> bool:
        return self.column is None


def age_expression():
    # Age in fractional years from the two stored components
    return Procedure.age_years + Procedure.age_months / 12.0


def _compile_age(condition: ConditionLike, context: FieldContext) -> ColumnElement[bool]:
    if condition.value:
        return age_expression() < context.age_threshold_years
    return age_expression() >= context.age_threshold_years


def _format_age(condition: ConditionLike, labels: LabelLookup, context: FieldContext) -> str:
    key = "age.younger-than" if condition.value else "age.at-least"
    return labels.label("field", key).format(threshold=format_number(context.age_threshold_years))


class FieldRegistry:

    def __init__(self, descriptors: Iterable[FieldDescriptor]):
        ordered = tuple(descriptors)
        self._ordered = ordered
        self._by_field = MappingProxyType({d.field: d for d in ordered})

    def fields(self) -> Tuple[FieldDescriptor, ...]:
        return self._ordered

    def __contains__(self, field: str) -> bool:
        return field in self._by_field

    def describe(self, field: str) -> FieldDescriptor:
        try:
            return self._by_field[field]
        except KeyError:
            raise UnknownFieldError(field) from None

    def default_condition(self, field: str) -> Condition:
        """
        Zero-value condition for a freshly added row in the filter form.
        """
        d = self.describe(field)
        if d.kind == TEXT_CONDITION:
            return TextCondition(field=field, operators=d.allowed_operators, operator=d.allowed_operators[0], value=d.default_value or "")
        if d.kind == NUMBER_CONDITION:
            return NumberCondition(field=field, operators=d.allowed_operators, operator=d.allowed_operators[0], value=d.default_value or 0)
        if d.kind == BOOLEAN_CONDITION:
            return BooleanCondition(field=field, value=bool(d.default_value))
        if d.kind == ENUM_CONDITION:
            return EnumCondition(field=field, options=d.enum_options, value=d.enum_options[0])
        raise AssertionError(f"Unhandled condition kind {d.kind}")

    def expand(self, field: str, tag: str, operator: Optional[str], value: Any) -> Condition:
        """
        Builds the full condition for a stored or imported shape, taking the
        allowed operators and enum options from the catalog.

        Raises:
            UnknownFieldError: the field is not registered.
            InvalidConditionValueError: wrong kind for the field, missing value,
                operator not allowed or enum value outside the options.
        """
        d = self.describe(field)
        if tag != d.kind:
            raise InvalidConditionValueError(f"Field '{field}' takes {d.kind}, got {tag}", field=field)
        if value is None:
            raise InvalidConditionValueError(f"Condition on '{field}' has no value", field=field)

        if d.kind == TEXT_CONDITION:
            return TextCondition(field=field, operators=d.allowed_operators, operator=operator, value=value)
        if d.kind == NUMBER_CONDITION:
            return NumberCondition(field=field, operators=d.allowed_operators, operator=operator, value=value)
        if d.kind == BOOLEAN_CONDITION:
            return BooleanCondition(field=field, value=value)
        if d.kind == ENUM_CONDITION:
            return EnumCondition(field=field, options=d.enum_options, value=value)
        raise AssertionError(f"Unhandled condition kind {d.kind}")

    def validate(self, condition: Condition) -> Condition:
        """
        Checks a client-built condition against the catalog and returns the
        canonical version (registry operators/options).
        """
        return self.expand(condition.field, condition.tag, condition.operator, condition.value)


def _number(field: str, column: str, default: float = 0) -> FieldDescriptor:
    return FieldDescriptor(field, NUMBER_CONDITION, column=column, allowed_operators=NUMBER_OPERATORS, default_value=default)


def _text(field: str, column: str) -> FieldDescriptor:
    return FieldDescriptor(field, TEXT_CONDITION, column=column, allowed_operators=TEXT_OPERATORS, default_value="")


def _boolean(field: str, column: str) -> FieldDescriptor:
    return FieldDescriptor(field, BOOLEAN_CONDITION, column=column, default_value=False)


def _enum(field: str, column: str, options: Tuple[str, ...], namespace: str) -> FieldDescriptor:
    return FieldDescriptor(field, ENUM_CONDITION, column=column, enum_options=options, value_namespace=namespace)


FIELD_REGISTRY = FieldRegistry([
    _number("asa-score", "asa_score", default=1),
    _text("case-number", "case_number"),
    _enum("department", "department", DEPARTMENT_OPTIONS, "department-enum"),
    _enum("airway-management", "airway_management", AIRWAY_OPTIONS, "airway-enum"),
    _boolean("emergency", "emergency"),
    _boolean("favorite", "favorite"),
    _enum("specials", "specials", SPECIALS_OPTIONS, "specials-enum"),
    _boolean("local-anesthetics", "local_anesthetics"),
    _text("procedure", "procedure"),
    _boolean("outpatient", "outpatient"),
    _boolean("special-features", "special_features"),
    _number("age-years", "age_years"),
    _number("age-months", "age_months"),
    # Virtual: true = younger than the threshold, false = at or above it
    FieldDescriptor(
        "age",
        BOOLEAN_CONDITION,
        default_value=False,
        compile_hook=_compile_age,
        format_hook=_format_age,
    ),
])
