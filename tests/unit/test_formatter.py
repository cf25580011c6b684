import pytest

from analog.db.models import FilterCondition
from analog.schemas.condition import BooleanCondition, EnumCondition, NumberCondition, TextCondition
from analog.services.formatter import ConditionFormatter
from analog.services.labels import LabelCatalog, format_number
from analog.services.registry import FieldContext


@pytest.fixture
def formatter():
    return ConditionFormatter(context=FieldContext(age_threshold_years=5))

def test_number_condition(formatter):
    assert formatter.format(NumberCondition(field="asa-score", operator="gt", value=3)) == "ASA score > 3"

def test_text_contains(formatter):
    condition = TextCondition(field="procedure", operator="ct", value="hernia")
    assert formatter.format(condition) == "Procedure ∋ hernia"

def test_boolean_uses_yes_no(formatter):
    assert formatter.format(BooleanCondition(field="emergency", value=True)) == "Emergency = yes"
    assert formatter.format(BooleanCondition(field="outpatient", value=False)) == "Outpatient = no"

def test_enum_uses_option_label(formatter):
    condition = EnumCondition(field="department", options=("AC", "UC"), value="UC")
    assert formatter.format(condition) == "Department = Trauma surgery"

def test_age_renders_threshold(formatter):
    assert formatter.format(BooleanCondition(field="age", value=True)) == "younger than 5"
    assert formatter.format(BooleanCondition(field="age", value=False)) == "5 or older"

def test_unknown_field_renders_raw_name(formatter):
    row = FilterCondition(type="TEXT_CONDITION", field="blood-pressure", operator="eq", value_text="120")
    assert formatter.format(row) == "blood-pressure = 120"

def test_stored_row_number_has_no_trailing_zero(formatter):
    row = FilterCondition(type="NUMBER_CONDITION", field="asa-score", operator="lte", value_number=3.0)
    assert formatter.format(row) == "ASA score ≤ 3"

def test_overridden_labels():
    labels = LabelCatalog({"field": {"asa-score": "ASA"}, "boolean": {"true": "ja"}})
    formatter = ConditionFormatter(labels=labels)

    assert formatter.format(NumberCondition(field="asa-score", operator="eq", value=1)) == "ASA = 1"
    assert formatter.format(BooleanCondition(field="favorite", value=True)) == "Favorite = ja"

# --- Summaries ---

def test_summary_of_no_conditions(formatter):
    assert formatter.format_summary([]) == "No conditions"

def test_summary_of_one_condition(formatter):
    assert formatter.format_summary([BooleanCondition(field="emergency", value=True)]) == "Emergency = yes"

def test_summary_counts_the_rest(formatter):
    conditions = [
        BooleanCondition(field="emergency", value=True),
        NumberCondition(field="asa-score", operator="gt", value=3),
        BooleanCondition(field="age", value=True),
    ]
    assert formatter.format_summary(conditions) == "Emergency = yes +2 more"

@pytest.mark.parametrize("value, expected", [(3.0, "3"), (2.5, "2.5"), (0, "0")])
def test_format_number(value, expected):
    assert format_number(value) == expected
