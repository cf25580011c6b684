from typing import Optional, Sequence

from analog.core.config import settings
from analog.core.errors import UnknownFieldError
from analog.schemas.condition import BOOLEAN_CONDITION, ENUM_CONDITION, NUMBER_CONDITION, ConditionLike, normalize_operator
from analog.services.labels import LabelCatalog, LabelLookup, format_number
from analog.services.registry import FIELD_REGISTRY, FieldContext, FieldRegistry


class ConditionFormatter:
    """
    Renders conditions as short display strings, e.g. "ASA score > 3".
    """

    def __init__(
        self,
        registry: FieldRegistry = FIELD_REGISTRY,
        labels: Optional[LabelLookup] = None,
        context: Optional[FieldContext] = None,
    ):
        self.registry = registry
        self.labels = labels or LabelCatalog()
        self.context = context or FieldContext()

    def format(self, condition: ConditionLike) -> str:
        try:
            descriptor = self.registry.describe(condition.field)
        except UnknownFieldError:
            descriptor = None

        # Virtual fields describe themselves, no "field = value" shape
        if descriptor is not None and descriptor.format_hook is not None:
            return descriptor.format_hook(condition, self.labels, self.context)

        field_label = self.labels.label("field", condition.field)
        symbol = self.labels.label("operator", normalize_operator(condition.operator))
        value = self._format_value(condition, descriptor.value_namespace if descriptor else None)
        return f"{field_label} {symbol} {value}"

    def format_summary(self, conditions: Sequence[ConditionLike]) -> str:
        if not conditions:
            return self.labels.label("filter", "summary.empty")

        first = self.format(conditions[0])
        if len(conditions) == 1:
            return first
        more = self.labels.label("filter", "summary.more").format(count=len(conditions) - 1)
        return f"{first} {more}"

    def _format_value(self, condition: ConditionLike, namespace: Optional[str]) -> str:
        value = condition.value
        if value is None:
            return ""
        if condition.tag == BOOLEAN_CONDITION:
            return self.labels.label("boolean", "true" if value else "false")
        if condition.tag == ENUM_CONDITION and namespace:
            return self.labels.label(namespace, value)
        if condition.tag == NUMBER_CONDITION:
            return format_number(value)
        return str(value)


def get_formatter() -> ConditionFormatter:
    return ConditionFormatter(FIELD_REGISTRY, LabelCatalog(), FieldContext(age_threshold_years=settings.AGE_THRESHOLD_YEARS))
