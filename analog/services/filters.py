"""
Transactional CRUD for filters and their condition rows.

A filter owns its conditions: they are written together on create and the
whole set is deleted and reinserted on every edit, inside one transaction.
Nothing here diffs individual conditions.
"""
from typing import List, Optional, Sequence

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from analog.core.errors import FilterNotFoundError, InvalidConditionValueError
from analog.db.conversions import conditions_to_rows, row_to_condition
from analog.db.models import Filter, FilterCondition, Procedure
from analog.db.session import transaction
from analog.schemas.condition import Condition
from analog.schemas.filter import FilterFields
from analog.services.compiler import PredicateCompiler, get_compiler
from analog.services.registry import FIELD_REGISTRY, FieldRegistry

logger = structlog.get_logger()


def validate_conditions(conditions: Sequence[Condition], registry: FieldRegistry = FIELD_REGISTRY) -> List[Condition]:
    """
    Checks every condition against the registry before anything is written.
    A filter without conditions is not a valid state.
    """
    if not conditions:
        raise InvalidConditionValueError("A filter needs at least one condition")
    return [registry.validate(condition) for condition in conditions]


async def insert_filter(db: AsyncSession, fields: FilterFields, conditions: Sequence[Condition]) -> Filter:
    """
    Adds the filter row and its condition rows to the current transaction.
    Shared by create_filter and the backup import.
    """
    new_filter = Filter(name=fields.name, goal=fields.goal)
    db.add(new_filter)
    await db.flush()  # assigns new_filter.id

    db.add_all(conditions_to_rows(new_filter.id, conditions))
    await db.flush()
    return new_filter


async def create_filter(db: AsyncSession, fields: FilterFields, conditions: Sequence[Condition]) -> int:
    checked = validate_conditions(conditions)

    async with transaction(db, "create_filter"):
        new_filter = await insert_filter(db, fields, checked)

    logger.info("filter_created", filter_id=new_filter.id, condition_count=len(checked))
    return new_filter.id


async def update_filter(
    db: AsyncSession, filter_id: int, fields: FilterFields, conditions: Sequence[Condition]
) -> None:
    checked = validate_conditions(conditions)
    await get_filter(db, filter_id)

    async with transaction(db, "update_filter"):
        await db.execute(
            update(Filter)
            .where(Filter.id == filter_id)
            .values(name=fields.name, goal=fields.goal, updated_at=func.now())
        )
        await db.execute(delete(FilterCondition).where(FilterCondition.filter_id == filter_id))
        db.add_all(conditions_to_rows(filter_id, checked))
        await db.flush()

    logger.info("filter_updated", filter_id=filter_id, condition_count=len(checked))


async def delete_filter(db: AsyncSession, filter_id: int) -> None:
    await get_filter(db, filter_id)

    # Condition rows follow through ON DELETE CASCADE
    async with transaction(db, "delete_filter"):
        await db.execute(delete(Filter).where(Filter.id == filter_id))

    logger.info("filter_deleted", filter_id=filter_id)


async def get_filter(db: AsyncSession, filter_id: int) -> Filter:
    result = await db.execute(select(Filter).where(Filter.id == filter_id))
    found = result.scalars().first()
    if not found:
        raise FilterNotFoundError(filter_id)
    return found


async def list_filters(db: AsyncSession) -> Sequence[Filter]:
    result = await db.execute(select(Filter).order_by(Filter.id))
    return result.scalars().all()


async def get_condition_rows(db: AsyncSession, filter_id: int) -> Sequence[FilterCondition]:
    """
    The stored rows in the order the user entered them. One SELECT, so a
    concurrent edit is seen either fully or not at all.
    """
    result = await db.execute(
        select(FilterCondition)
        .where(FilterCondition.filter_id == filter_id)
        .order_by(FilterCondition.id)
    )
    return result.scalars().all()


async def get_conditions(
    db: AsyncSession, filter_id: int, registry: FieldRegistry = FIELD_REGISTRY
) -> List[Condition]:
    """
    Conditions of a filter as models, for editing.
    Raises UnknownFieldError if a stored row points at a removed field.
    """
    rows = await get_condition_rows(db, filter_id)
    return [row_to_condition(row, registry) for row in rows]


async def match_count(db: AsyncSession, filter_id: int, compiler: Optional[PredicateCompiler] = None) -> int:
    await get_filter(db, filter_id)
    rows = await get_condition_rows(db, filter_id)
    predicate = (compiler or get_compiler()).compile(rows)

    result = await db.execute(select(func.count()).select_from(Procedure).where(predicate))
    return result.scalar_one()


async def matching_procedures(
    db: AsyncSession, filter_id: int, compiler: Optional[PredicateCompiler] = None
) -> Sequence[Procedure]:
    await get_filter(db, filter_id)
    rows = await get_condition_rows(db, filter_id)
    predicate = (compiler or get_compiler()).compile(rows)

    result = await db.execute(
        select(Procedure).where(predicate).order_by(Procedure.date.desc(), Procedure.case_number)
    )
    return result.scalars().all()
