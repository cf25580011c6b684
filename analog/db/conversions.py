from typing import Iterable, List

from analog.db.models import FilterCondition
from analog.schemas.condition import (
    BooleanCondition,
    Condition,
    EnumCondition,
    NumberCondition,
    TextCondition,
)
from analog.services.registry import FieldRegistry


def condition_to_row(filter_id: int, condition: Condition) -> FilterCondition:
    """
    Builds the filter_conditions row for one condition. Only the value column
    that belongs to the condition's tag is populated; the allowed operators
    and enum options are not stored, the registry owns them.
    """
    if isinstance(condition, TextCondition):
        return FilterCondition(
            filter_id=filter_id,
            type=condition.tag,
            field=condition.field,
            operator=condition.operator,
            value_text=condition.value,
        )
    if isinstance(condition, NumberCondition):
        return FilterCondition(
            filter_id=filter_id,
            type=condition.tag,
            field=condition.field,
            operator=condition.operator,
            value_number=condition.value,
        )
    if isinstance(condition, BooleanCondition):
        return FilterCondition(
            filter_id=filter_id,
            type=condition.tag,
            field=condition.field,
            value_boolean=condition.value,
        )
    if isinstance(condition, EnumCondition):
        return FilterCondition(
            filter_id=filter_id,
            type=condition.tag,
            field=condition.field,
            value_enum=condition.value,
        )
    raise TypeError(f"Unsupported condition type: {type(condition).__name__}")


def conditions_to_rows(filter_id: int, conditions: Iterable[Condition]) -> List[FilterCondition]:
    return [condition_to_row(filter_id, condition) for condition in conditions]


def row_to_condition(row: FilterCondition, registry: FieldRegistry) -> Condition:
    """
    Rebuilds a Condition from its row, re-deriving operators/options.
    Raises UnknownFieldError for rows that point at a removed field.
    """
    return registry.expand(field=row.field, tag=row.type, operator=row.operator, value=row.value)
