import pytest
from pydantic import TypeAdapter, ValidationError

from analog.core.errors import InvalidConditionValueError
from analog.schemas.condition import (
    BooleanCondition,
    Condition,
    EnumCondition,
    NumberCondition,
    TextCondition,
)

condition_adapter = TypeAdapter(Condition)

# --- Construction rules ---

def test_enum_value_outside_options_is_rejected():
    with pytest.raises(InvalidConditionValueError):
        EnumCondition(field="department", options=("AC", "UC"), value="URO")

def test_enum_needs_options():
    with pytest.raises(InvalidConditionValueError):
        EnumCondition(field="department", options=(), value="AC")

@pytest.mark.parametrize("field", ["", "   "])
def test_empty_field_is_rejected(field):
    with pytest.raises(InvalidConditionValueError):
        BooleanCondition(field=field, value=True)

def test_number_operator_not_valid_for_text():
    with pytest.raises(InvalidConditionValueError):
        TextCondition(field="procedure", operator="gt", value="hernia")

def test_operator_outside_declared_set_is_rejected():
    # 'ct' exists for text conditions, but this one only allows equality
    with pytest.raises(InvalidConditionValueError):
        TextCondition(field="case-number", operators=["eq"], operator="ct", value="A-1")

def test_declared_operators_must_belong_to_the_kind():
    with pytest.raises(InvalidConditionValueError):
        NumberCondition(field="asa-score", operators=["eq", "ct"], operator="eq", value=1)

def test_value_type_errors_stay_validation_errors():
    with pytest.raises(ValidationError):
        NumberCondition(field="asa-score", operator="gt", value="three")

# --- Operators ---

def test_operator_defaults_to_eq():
    assert TextCondition(field="procedure", value="hernia").operator == "eq"
    assert NumberCondition(field="asa-score", operator=None, value=2).operator == "eq"

def test_contains_spelling_is_normalized():
    condition = TextCondition(field="procedure", operator="contains", value="hernia")
    assert condition.operator == "ct"

def test_boolean_and_enum_use_implicit_equality():
    assert BooleanCondition(field="outpatient", value=False).operator == "eq"
    assert EnumCondition(field="department", options=("AC",), value="AC").operator == "eq"

# --- Tagged union ---

def test_union_decodes_by_tag():
    condition = condition_adapter.validate_python(
        {"_tag": "NUMBER_CONDITION", "field": "asa-score", "operator": "gt", "value": 3}
    )
    assert isinstance(condition, NumberCondition)
    assert condition.value == 3

    condition = condition_adapter.validate_python(
        {"_tag": "ENUM_CONDITION", "field": "airway-management", "options": ["tube", "mask"], "value": "mask"}
    )
    assert isinstance(condition, EnumCondition)

def test_union_rejects_unknown_tag():
    with pytest.raises(ValidationError):
        condition_adapter.validate_python({"_tag": "DATE_CONDITION", "field": "date", "value": "2025-01-01"})

def test_dump_uses_tag_alias_and_ordered_operators():
    dumped = NumberCondition(field="asa-score", operators=["lte", "eq", "gt"], operator="gt", value=3).model_dump(by_alias=True)

    assert dumped["_tag"] == "NUMBER_CONDITION"
    assert dumped["operators"] == ["eq", "gt", "lte"]

def test_conditions_are_immutable():
    condition = BooleanCondition(field="outpatient", value=False)
    with pytest.raises(ValidationError):
        condition.value = True

@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf"), "NaN", "Infinity"])
def test_number_value_must_be_finite(value):
    with pytest.raises(ValidationError):
        NumberCondition(field="asa-score", operator="lt", value=value)
