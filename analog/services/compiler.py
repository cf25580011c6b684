from typing import Iterable, List, Optional, Tuple

import structlog
from sqlalchemy import ColumnElement, and_, false, true

from analog.core.config import settings
from analog.core.errors import UnknownFieldError
from analog.core.metrics import CONDITIONS_SKIPPED
from analog.db.models import Procedure
from analog.schemas.condition import ConditionLike, normalize_operator
from analog.services.registry import FIELD_REGISTRY, FieldContext, FieldDescriptor, FieldRegistry

logger = structlog.get_logger()

# Store-level comparison per operator
_COMPARATORS = {
    "eq": lambda column, value: column == value,
    "ct": lambda column, value: column.contains(value, autoescape=True),
    "gt": lambda column, value: column > value,
    "gte": lambda column, value: column >= value,
    "lt": lambda column, value: column < value,
    "lte": lambda column, value: column <= value,
}


def _sort_key(condition: ConditionLike) -> Tuple[str, str, str, str]:
    return (
        condition.field or "",
        condition.tag or "",
        normalize_operator(condition.operator),
        repr(condition.value),
    )


class PredicateCompiler:
    """
    Turns a filter's conditions into one WHERE clause over `procedures`.

    Policy, identical for the live list and the count badge:
      * no conditions at all            -> true()  (every procedure)
      * conditions, none resolvable     -> false() (no procedure)
      * otherwise                       -> AND of the resolved clauses

    Bad persisted data never raises here: conditions with an unknown field,
    a missing value, the wrong kind or an unsupported operator are logged and
    dropped, and the rest of the filter keeps working.
    """

    def __init__(self, registry: FieldRegistry = FIELD_REGISTRY, context: Optional[FieldContext] = None):
        self.registry = registry
        self.context = context or FieldContext()

    def compile(self, conditions: Iterable[ConditionLike]) -> ColumnElement[bool]:
        conditions = list(conditions)
        if not conditions:
            return true()

        # Canonical order keeps the generated SQL identical for any input order
        clauses: List[ColumnElement[bool]] = []
        for condition in sorted(conditions, key=_sort_key):
            clause = self.compile_condition(condition)
            if clause is not None:
                clauses.append(clause)

        if not clauses:
            logger.info("filter_has_no_valid_conditions", condition_count=len(conditions))
            return false()
        return and_(*clauses)

    def compile_condition(self, condition: ConditionLike) -> Optional[ColumnElement[bool]]:
        try:
            descriptor = self.registry.describe(condition.field)
        except UnknownFieldError:
            return self._skip(condition, "unknown_field")

        if condition.value is None:
            return self._skip(condition, "missing_value")
        if condition.tag != descriptor.kind:
            return self._skip(condition, "kind_mismatch", expected=descriptor.kind)

        if descriptor.compile_hook is not None:
            return descriptor.compile_hook(condition, self.context)
        return self._compare(descriptor, condition)

    def _compare(self, descriptor: FieldDescriptor, condition: ConditionLike) -> Optional[ColumnElement[bool]]:
        operator = normalize_operator(condition.operator)
        comparator = _COMPARATORS.get(operator)
        if comparator is None:
            return self._skip(condition, "unsupported_operator", operator=operator)

        column = getattr(Procedure, descriptor.column)
        return comparator(column, condition.value)

    def _skip(self, condition: ConditionLike, reason: str, **details) -> None:
        CONDITIONS_SKIPPED.labels(reason=reason).inc()
        logger.warning(
            "condition_skipped",
            reason=reason,
            field=condition.field,
            condition_type=condition.tag,
            **details
        )
        return None


def get_compiler() -> PredicateCompiler:
    """
    Compiler wired to the configured age threshold.
    """
    return PredicateCompiler(FIELD_REGISTRY, FieldContext(age_threshold_years=settings.AGE_THRESHOLD_YEARS))
